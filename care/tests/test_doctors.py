from decimal import Decimal

import pytest
from django.urls import reverse
from django.utils import timezone

from care.models import Appointment, AuditEvent, Doctor, Procedure, User
from care.services.doctors import doctor_appointment_count, doctor_total_revenue
from care.services.identity import resolve

pytestmark = pytest.mark.django_db


@pytest.fixture
def desk(make_user):
    return make_user('desk', User.ROLE_RECEPTION, email='desk@example.com')


@pytest.fixture
def busy_doctor(doctor_profile, patient):
    now = timezone.now()
    Appointment.objects.create(patient=patient, doctor=doctor_profile, appointment_date=now, status='Completed', consultation_fee=1500)
    Appointment.objects.create(patient=patient, doctor=doctor_profile, appointment_date=now, consultation_fee=1500)
    Procedure.objects.create(patient=patient, doctor=doctor_profile, procedure_name='ECG', procedure_date=now, procedure_fee=800, status='Completed')
    Procedure.objects.create(patient=patient, doctor=doctor_profile, procedure_name='Echo', procedure_date=now, procedure_fee=900)
    return doctor_profile


def test_revenue_and_count(busy_doctor):
    assert doctor_total_revenue(busy_doctor) == Decimal('2300')
    assert doctor_appointment_count(busy_doctor) == 2


def test_directory_lists_stats(busy_doctor, other_doctor, desk, client_for):
    r = client_for(desk).get(reverse('doctors_list'))
    assert r.status_code == 200
    assert r.data['total'] == 2
    by_id = {d['id']: d for d in r.data['data']}
    assert by_id[busy_doctor.id]['totalAppointments'] == 2
    assert Decimal(by_id[busy_doctor.id]['totalRevenue']) == Decimal('2300')
    assert by_id[other_doctor.id]['totalAppointments'] == 0
    assert Decimal(by_id[other_doctor.id]['totalRevenue']) == Decimal('0')


def test_directory_search_and_active_filter(doctor_profile, other_doctor, desk, client_for):
    other_doctor.is_active = False
    other_doctor.save()
    client = client_for(desk)
    r = client.get(reverse('doctors_list'), {'q': 'jones'})
    assert [d['id'] for d in r.data['data']] == [other_doctor.id]
    r = client.get(reverse('doctors_list'), {'active': 'true'})
    assert [d['id'] for d in r.data['data']] == [doctor_profile.id]


def test_detail_includes_stats(busy_doctor, nurse_account, client_for):
    r = client_for(nurse_account).get(reverse('doctors_detail', args=[busy_doctor.id]))
    assert r.status_code == 200
    assert r.data['data']['name'] == 'John Smith'
    assert Decimal(r.data['data']['totalRevenue']) == Decimal('2300')


def test_unknown_doctor_is_404(admin_user, client_for):
    assert client_for(admin_user).get(reverse('doctors_detail', args=[999])).status_code == 404


def test_patients_cannot_read_directory(make_user, client_for):
    p = make_user('p1', User.ROLE_PATIENT)
    assert client_for(p).get(reverse('doctors_list')).status_code == 403


def test_only_admin_adds_doctors(admin_user, desk, client_for):
    payload = {'firstName': 'Omar', 'lastName': 'Farooq', 'email': 'Omar@Example.com', 'specialization': 'ENT', 'consultationFee': '1200'}
    assert client_for(desk).post(reverse('doctors_list'), payload, format='json').status_code == 403

    r = client_for(admin_user).post(reverse('doctors_list'), payload, format='json')
    assert r.status_code == 201
    doctor = Doctor.objects.get(pk=r.data['data']['id'])
    assert doctor.email == 'omar@example.com'
    assert doctor.user_id is None
    assert r.data['data']['totalAppointments'] == 0
    assert AuditEvent.objects.filter(action='doctor_create', object_id=doctor.id).exists()


def test_directory_entry_is_adopted_by_new_account(admin_user, client_for):
    client = client_for(admin_user)
    r = client.post(reverse('doctors_list'), {'firstName': 'Omar', 'email': 'omar@example.com'}, format='json')
    doctor_id = r.data['data']['id']
    r = client.post(reverse('users_list'), {
        'firstName': 'Omar', 'email': 'omar@example.com', 'role': 'doctor',
        'password': 'secret1', 'confirmPassword': 'secret1',
    }, format='json')
    assert r.status_code == 201
    account = User.objects.get(pk=r.data['data']['id'])
    assert resolve(account).pk == doctor_id
    assert Doctor.objects.count() == 1


def test_admin_edits_doctor(admin_user, doctor_profile, client_for):
    r = client_for(admin_user).patch(reverse('doctors_detail', args=[doctor_profile.id]), {'isActive': False, 'consultationFee': '1800'}, format='json')
    assert r.status_code == 200
    doctor_profile.refresh_from_db()
    assert doctor_profile.is_active is False
    assert doctor_profile.consultation_fee == Decimal('1800')


def test_delete_refused_while_procedures_exist(admin_user, busy_doctor, other_doctor, client_for):
    client = client_for(admin_user)
    r = client.delete(reverse('doctors_detail', args=[busy_doctor.id]))
    assert r.status_code == 409
    assert r.data['error']['code'] == 'persistence_failure'
    assert Procedure.objects.filter(doctor=busy_doctor).count() == 2

    assert client.delete(reverse('doctors_detail', args=[other_doctor.id])).status_code == 200
    assert not Doctor.objects.filter(pk=other_doctor.pk).exists()
