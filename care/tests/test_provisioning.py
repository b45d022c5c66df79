from decimal import Decimal

import pytest
from django.db import DatabaseError

from care.models import AccountsStaff, AuditEvent, Doctor, Nurse, ReceptionStaff, User
from care.services.identity import StaffProfileKind
from care.services import provisioning
from care.services.provisioning import ensure_profile

pytestmark = pytest.mark.django_db


def test_creates_nurse_profile_with_defaults(make_user):
    account = make_user("n1", User.ROLE_NURSE, email="n1@example.com", first_name="Nina", phone_number="0300111")
    result = ensure_profile(account)

    assert result.ok and result.created and not result.updated
    assert result.kind is StaffProfileKind.NURSE
    profile = Nurse.objects.get(user=account)
    assert profile == result.profile
    assert profile.first_name == "Nina"
    assert profile.contact_number == "0300111"
    assert profile.department == "Nursing"
    assert profile.is_active
    assert AuditEvent.objects.filter(action='profile_provision', object_id=profile.id).exists()


def test_doctor_defaults(make_user):
    account = make_user("d1", User.ROLE_DOCTOR, email="d1@example.com", first_name="Omar")
    profile = ensure_profile(account).profile
    assert profile.specialization == "General"
    assert profile.consultation_fee == Decimal("0")


@pytest.mark.parametrize("role,model,department", [
    (User.ROLE_RECEPTION, ReceptionStaff, "Reception"),
    (User.ROLE_LAB, ReceptionStaff, "Laboratory"),
    (User.ROLE_ACCOUNTS, AccountsStaff, "Accounts"),
])
def test_registry_roles_get_their_table(make_user, role, model, department):
    account = make_user(f"u_{role}", role, email=f"{role}@example.com", first_name="Staff")
    result = ensure_profile(account)
    assert isinstance(result.profile, model)
    assert result.profile.department == department


def test_twice_keeps_one_row_with_latest_fields(make_user):
    account = make_user("n2", User.ROLE_NURSE, email="n2@example.com", first_name="First")
    ensure_profile(account)
    account.first_name = "Second"
    account.save()
    result = ensure_profile(account, fields={"department": "ICU", "license_number": "RN-9"})

    assert result.updated and not result.created
    assert Nurse.objects.filter(user=account).count() == 1
    profile = Nurse.objects.get(user=account)
    assert profile.first_name == "Second"
    assert profile.department == "ICU"
    assert profile.license_number == "RN-9"


def test_unknown_fields_are_ignored(make_user):
    account = make_user("n3", User.ROLE_NURSE, email="n3@example.com", first_name="N")
    result = ensure_profile(account, fields={"specialization": "Cardiology", "employee_id": "E1"})
    assert result.ok
    assert not hasattr(result.profile, 'specialization')


def test_long_values_are_truncated(make_user):
    account = make_user("d2", User.ROLE_DOCTOR, email="d2@example.com", first_name="A" * 150)
    result = ensure_profile(account, fields={"contact_number": "0" * 40, "specialization": "S" * 300})
    assert result.ok
    profile = Doctor.objects.get(user=account)
    assert len(profile.first_name) == 100
    assert len(profile.contact_number) == 15
    assert len(profile.specialization) == 100


@pytest.mark.parametrize("role", [User.ROLE_ADMIN, User.ROLE_PATIENT, "janitor"])
def test_no_profile_for_other_roles(make_user, role):
    account = make_user(f"x_{role}", User.ROLE_PATIENT, email="x@example.com")
    result = ensure_profile(account, role)
    assert result.kind is None and result.profile is None and result.ok
    assert not Nurse.objects.exists() and not Doctor.objects.exists()


def test_role_change_leaves_old_profile(make_user):
    account = make_user("switch", User.ROLE_NURSE, email="switch@example.com", first_name="Sam")
    nurse = ensure_profile(account).profile

    account.role = User.ROLE_DOCTOR
    account.save()
    result = ensure_profile(account)

    assert result.created
    assert Doctor.objects.get(user=account) == result.profile
    nurse_after = Nurse.objects.get(pk=nurse.pk)
    assert nurse_after.user_id == account.id
    assert nurse_after.first_name == "Sam"
    assert nurse_after.updated_at == nurse.updated_at


def test_database_failure_becomes_warning(make_user, monkeypatch):
    account = make_user("n4", User.ROLE_NURSE, email="n4@example.com", first_name="N")

    def boom(*args, **kwargs):
        raise DatabaseError("constraint")

    monkeypatch.setattr(provisioning, "log_action", boom)
    result = ensure_profile(account)

    assert not result.ok
    assert result.profile is None
    assert not Nurse.objects.filter(user=account).exists()
    assert 'repair profile' in result.warning
    # the account itself is untouched
    assert User.objects.filter(pk=account.pk, role=User.ROLE_NURSE).exists()


def test_unlinked_email_match_is_adopted(make_user):
    legacy = Nurse.objects.create(id=7, first_name="Jane", last_name="Doe", email="nurse.jane@example.com", department="Ward B")
    account = make_user("jane", User.ROLE_NURSE, email="Nurse.Jane@example.com")

    result = ensure_profile(account, fields={"license_number": "RN-7"})

    assert result.ok and result.adopted and not result.created
    assert result.profile.pk == 7
    assert list(Nurse.objects.values_list("id", flat=True)) == [7]
    legacy.refresh_from_db()
    assert legacy.user_id == account.id
    assert legacy.license_number == "RN-7"
    # blank account names do not wipe the legacy row
    assert legacy.first_name == "Jane"
    assert legacy.department == "Ward B"


def test_email_match_owned_by_another_account_is_not_taken(make_user):
    owner = make_user("first", User.ROLE_NURSE, email="shared@example.com")
    taken = Nurse.objects.create(first_name="A", email="shared@example.com", user=owner)
    account = make_user("second", User.ROLE_NURSE, email="shared@example.com")

    result = ensure_profile(account)

    assert result.created and not result.adopted
    assert result.profile.pk != taken.pk
    taken.refresh_from_db()
    assert taken.user_id == owner.id
