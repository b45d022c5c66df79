import pytest
from django.db import DatabaseError

from care.models import AuditEvent, Doctor, Nurse, ReceptionStaff, User
from care.services import identity
from care.services.identity import StaffProfileKind, kind_for_role, resolve

pytestmark = pytest.mark.django_db


def test_kind_for_role():
    assert kind_for_role(User.ROLE_DOCTOR) is StaffProfileKind.DOCTOR
    assert kind_for_role(User.ROLE_NURSE) is StaffProfileKind.NURSE
    assert kind_for_role(User.ROLE_LAB) is StaffProfileKind.RECEPTION
    assert kind_for_role(User.ROLE_ACCOUNTS) is StaffProfileKind.ACCOUNTS
    assert kind_for_role(User.ROLE_ADMIN) is None
    assert kind_for_role(User.ROLE_PATIENT) is None
    assert kind_for_role('janitor') is None


def test_linked_profile_is_returned(nurse_account, nurse_profile):
    assert resolve(nurse_account) == nurse_profile


def test_email_match_links_once(make_user):
    profile = Nurse.objects.create(id=7, first_name="Jane", email="nurse.jane@example.com")
    account = make_user("jane", User.ROLE_NURSE, email="Nurse.Jane@Example.com")

    found = resolve(account)
    assert found.pk == 7
    profile.refresh_from_db()
    assert profile.user_id == account.id
    assert AuditEvent.objects.filter(action='profile_link', object_id=7).count() == 1

    # second lookup goes through the back-reference and writes nothing new
    assert resolve(account).pk == 7
    assert AuditEvent.objects.filter(action='profile_link').count() == 1


def test_heal_disabled_does_not_write(make_user):
    profile = Nurse.objects.create(first_name="Jane", email="jane@example.com")
    account = make_user("jane", User.ROLE_NURSE, email="jane@example.com")
    assert resolve(account, heal=False) == profile
    profile.refresh_from_db()
    assert profile.user_id is None


def test_missing_profile_is_none(make_user):
    account = make_user("ghost", User.ROLE_DOCTOR, email="ghost@example.com")
    assert resolve(account) is None


def test_account_without_email_is_none(make_user):
    Doctor.objects.create(first_name="No", email="")
    account = make_user("noemail", User.ROLE_DOCTOR, email="")
    assert resolve(account) is None


def test_profileless_roles_resolve_to_none(admin_user):
    assert resolve(admin_user) is None
    assert resolve(None) is None


def test_email_conflict_returns_profile_without_relinking(make_user):
    owner = make_user("owner", User.ROLE_NURSE, email="shared@example.com")
    profile = Nurse.objects.create(first_name="Shared", email="shared@example.com", user=owner)
    intruder = make_user("intruder", User.ROLE_NURSE, email="SHARED@example.com")

    assert resolve(intruder) == profile
    profile.refresh_from_db()
    assert profile.user_id == owner.id


def test_unlinked_match_preferred_over_linked(make_user):
    owner = make_user("owner", User.ROLE_NURSE, email="dup@example.com")
    Nurse.objects.create(first_name="Linked", email="dup@example.com", user=owner)
    free = Nurse.objects.create(first_name="Free", email="dup@example.com")
    account = make_user("second", User.ROLE_NURSE, email="dup@example.com")
    assert resolve(account) == free


def test_explicit_kind_overrides_role(make_user):
    account = make_user("lab1", User.ROLE_LAB, email="lab@example.com")
    desk = ReceptionStaff.objects.create(first_name="Lab", email="lab@example.com", user=account)
    assert resolve(account, StaffProfileKind.RECEPTION) == desk
    assert resolve(account, StaffProfileKind.DOCTOR) is None


def test_heal_failure_still_returns_profile(make_user, monkeypatch):
    profile = Nurse.objects.create(first_name="Jane", email="jane@example.com")
    account = make_user("jane", User.ROLE_NURSE, email="jane@example.com")

    def boom(*args, **kwargs):
        raise DatabaseError("disk full")

    monkeypatch.setattr(identity, 'heal_link', boom)
    assert resolve(account) == profile
    profile.refresh_from_db()
    assert profile.user_id is None


def test_profile_summary(nurse_profile):
    summary = identity.profile_summary(nurse_profile)
    assert summary['kind'] == 'nurse'
    assert summary['name'] == 'Jane Doe'
    assert summary['linked'] is True
    assert identity.profile_summary(None) is None


def test_failed_link_leaves_instance_unlinked(make_user, monkeypatch):
    Nurse.objects.create(first_name="Jane", email="jane@example.com")
    account = make_user("jane", User.ROLE_NURSE, email="jane@example.com")

    def boom(*args, **kwargs):
        raise DatabaseError("disk full")

    monkeypatch.setattr(Nurse, 'save', boom)
    profile = resolve(account)
    assert profile is not None
    assert profile.user_id is None
    assert identity.profile_summary(profile)['linked'] is False
