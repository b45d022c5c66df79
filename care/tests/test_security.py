import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from care.models import AuditEvent, Nurse, User

pytestmark = pytest.mark.django_db


def login(client, username, password):
    return client.post(reverse('login_view'), {'username': username, 'password': password}, format='json')


def test_no_role_bypass_in_login():
    client = APIClient()
    u = User.objects.create_user(username='u1', password='P@ssw0rd1', role='nurse')
    r = client.post(reverse('login_view'), {'username': 'u1', 'password': 'P@ssw0rd1', 'role': 'admin'}, format='json')
    assert r.status_code == 200
    assert r.data['role'] == 'nurse'
    u.refresh_from_db()
    assert u.role == 'nurse'


def test_login_returns_jwt_and_legacy_token():
    User.objects.create_user(username='u_jwt', password='P@ssw0rd1', role='patient')
    r = login(APIClient(), 'u_jwt', 'P@ssw0rd1')
    assert r.status_code == 200
    assert r.data['jwt_access'] and r.data['jwt_refresh'] and r.data['token']
    assert r.data['landing'] == '/patient'


def test_login_by_email_reports_scope():
    account = User.objects.create_user(username='jane', email='nurse.jane@example.com', password='P@ssw0rd1', role='nurse')
    Nurse.objects.create(id=7, first_name='Jane', email='nurse.jane@example.com')
    r = login(APIClient(), 'NURSE.JANE@example.com', 'P@ssw0rd1')
    assert r.status_code == 200
    assert r.data['scope']['profile']['id'] == 7
    assert r.data['scope']['condition'] is None
    assert Nurse.objects.get(pk=7).user_id == account.id


def test_failed_login_is_audited():
    User.objects.create_user(username='u2', password='P@ssw0rd1', role='doctor')
    r = login(APIClient(), 'u2', 'wrong')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'invalid_credentials'
    assert AuditEvent.objects.filter(action='login', detail__result='fail').exists()


def test_token_and_jwt_both_authenticate():
    User.objects.create_user(username='u3', password='P@ssw0rd1', role='admin')
    r = login(APIClient(), 'u3', 'P@ssw0rd1')

    by_token = APIClient()
    by_token.credentials(HTTP_AUTHORIZATION=f"Token {r.data['token']}")
    assert by_token.get(reverse('me')).status_code == 200

    by_jwt = APIClient()
    by_jwt.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['jwt_access']}")
    me = by_jwt.get(reverse('me'))
    assert me.status_code == 200
    assert me.data['data']['user']['username'] == 'u3'


def test_refresh_and_logout_blacklist():
    User.objects.create_user(username='u4', password='P@ssw0rd1', role='doctor')
    r = login(APIClient(), 'u4', 'P@ssw0rd1')
    refresh = r.data['jwt_refresh']

    client = APIClient()
    rr = client.post(reverse('jwt_refresh'), {'refresh': refresh}, format='json')
    assert rr.status_code == 200
    assert rr.data['jwt_access']

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['jwt_access']}")
    out = client.post(reverse('jwt_logout'), {'refresh': rr.data.get('jwt_refresh', refresh)}, format='json')
    assert out.status_code == 200

    again = APIClient().post(reverse('jwt_refresh'), {'refresh': rr.data.get('jwt_refresh', refresh)}, format='json')
    assert again.status_code == 401


def test_bad_refresh_token_is_rejected():
    r = APIClient().post(reverse('jwt_refresh'), {'refresh': 'not-a-token'}, format='json')
    assert r.status_code == 401
    assert r.data['ok'] is False


def test_anonymous_requests_are_rejected():
    client = APIClient()
    assert client.get(reverse('patients_list')).status_code in (401, 403)
    assert client.get(reverse('nursing_dashboard')).status_code in (401, 403)


def test_patient_role_has_no_staff_access():
    u = User.objects.create_user(username='p1', password='P@ssw0rd1', role='patient')
    client = APIClient()
    client.force_authenticate(user=u)
    assert client.get(reverse('patients_list')).status_code == 403
    assert client.get(reverse('home')).data['data']['landing'] == '/patient'


def test_healthz():
    r = APIClient().get(reverse('healthz'))
    assert r.status_code == 200
    assert r.json()['ok'] is True
