import datetime

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from care.models import Doctor, Nurse, Patient, User


@pytest.fixture(autouse=True)
def _isolate(settings, tmp_path):
    # throttle counters live in the cache
    cache.clear()
    settings.MEDIA_ROOT = tmp_path / "media"
    settings.SMS_ENABLE = False
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    def _make(username, role, email="", password="P@ssw0rd1", **extra):
        return User.objects.create_user(username=username, password=password, role=role, email=email, **extra)
    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user("admin1", User.ROLE_ADMIN, email="admin@clinic.test")


@pytest.fixture
def nurse_account(make_user):
    return make_user("jane", User.ROLE_NURSE, email="nurse.jane@example.com", first_name="Jane", last_name="Doe")


@pytest.fixture
def nurse_profile(nurse_account):
    return Nurse.objects.create(first_name="Jane", last_name="Doe", email="nurse.jane@example.com", user=nurse_account)


@pytest.fixture
def other_nurse(make_user):
    account = make_user("mary", User.ROLE_NURSE, email="mary@example.com")
    return Nurse.objects.create(first_name="Mary", email="mary@example.com", user=account)


@pytest.fixture
def doctor_account(make_user):
    return make_user("drsmith", User.ROLE_DOCTOR, email="smith@example.com", first_name="John", last_name="Smith")


@pytest.fixture
def doctor_profile(doctor_account):
    return Doctor.objects.create(
        first_name="John", last_name="Smith", email="smith@example.com", user=doctor_account, consultation_fee=1500,
    )


@pytest.fixture
def other_doctor(make_user):
    account = make_user("drjones", User.ROLE_DOCTOR, email="jones@example.com")
    return Doctor.objects.create(first_name="Amy", last_name="Jones", email="jones@example.com", user=account)


@pytest.fixture
def patient(db):
    return Patient.objects.create(first_name="Ali", last_name="Khan", contact_number="03001234567")


@pytest.fixture
def other_patient(db):
    return Patient.objects.create(first_name="Sara", last_name="Malik", contact_number="03007654321")


@pytest.fixture
def tomorrow():
    return timezone.now() + datetime.timedelta(days=1)


@pytest.fixture
def client_for():
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client
