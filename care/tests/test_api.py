"""
API tests for user administration and the role-scoped clinical endpoints.

These run against the URL configuration with DRF's APIClient. Callers
are force-authenticated; login itself is covered in test_security.
"""
from decimal import Decimal

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.urls import reverse
from django.utils import timezone

from care.models import Appointment, AuditEvent, Doctor, LabTest, LabTestCategory, Nurse, NursingNote, Procedure, User
from care.services import provisioning

pytestmark = pytest.mark.django_db

NEW_USER = {
    'firstName': 'Nadia',
    'lastName': 'Aslam',
    'email': 'nadia@example.com',
    'role': 'nurse',
    'password': 'secret1',
    'confirmPassword': 'secret1',
}


# ---------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------
def test_admin_creates_user_and_profile(admin_user, client_for):
    r = client_for(admin_user).post(reverse('users_list'), NEW_USER, format='json')
    assert r.status_code == 201
    assert r.data['ok'] is True
    assert r.data['warnings'] == []
    user = User.objects.get(email='nadia@example.com')
    assert user.username == 'nadia'
    assert user.check_password('secret1')
    assert r.data['data']['profile']['kind'] == 'nurse'
    assert Nurse.objects.get(user=user).department == 'Nursing'


def test_new_account_takes_over_legacy_profile(admin_user, patient, client_for):
    legacy = Nurse.objects.create(id=7, first_name='Nadia', email='nadia@example.com')
    note = NursingNote.objects.create(patient=patient, nurse=legacy, notes='before the account existed')

    r = client_for(admin_user).post(reverse('users_list'), NEW_USER, format='json')
    assert r.status_code == 201
    assert r.data['data']['profile']['id'] == 7
    assert Nurse.objects.count() == 1

    account = User.objects.get(email='nadia@example.com')
    notes = client_for(account).get(reverse('nursing_notes'))
    assert [n['id'] for n in notes.data['data']] == [note.id]


def test_create_user_validation(admin_user, client_for):
    client = client_for(admin_user)
    r = client.post(reverse('users_list'), {**NEW_USER, 'confirmPassword': 'other1'}, format='json')
    assert r.status_code == 400
    assert r.data['ok'] is False
    User.objects.create_user(username='taken', email='nadia@example.com', password='x' * 8)
    r = client.post(reverse('users_list'), NEW_USER, format='json')
    assert r.status_code == 400


def test_profile_failure_is_a_warning_not_an_error(admin_user, client_for, monkeypatch):
    def boom(*args, **kwargs):
        raise DatabaseError('profile table locked')

    monkeypatch.setattr(provisioning, 'log_action', boom)
    r = client_for(admin_user).post(reverse('users_list'), NEW_USER, format='json')
    assert r.status_code == 201
    assert r.data['ok'] is True
    assert len(r.data['warnings']) == 1
    assert 'repair profile' in r.data['warnings'][0]
    assert User.objects.filter(email='nadia@example.com').exists()
    assert not Nurse.objects.exists()


def test_repair_profile(admin_user, make_user, client_for):
    account = make_user('lost', User.ROLE_DOCTOR, email='lost@example.com', first_name='Lost')
    r = client_for(admin_user).post(reverse('user_repair_profile', args=[account.id]))
    assert r.status_code == 200
    assert r.data['data']['created'] is True
    assert Doctor.objects.filter(user=account).exists()


def test_role_change_through_api(admin_user, client_for):
    client = client_for(admin_user)
    r = client.post(reverse('users_list'), NEW_USER, format='json')
    uid = r.data['data']['id']
    r = client.patch(reverse('user_detail', args=[uid]), {'role': 'doctor', 'specialization': 'Cardiology'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['role'] == 'doctor'
    assert Doctor.objects.get(user_id=uid).specialization == 'Cardiology'
    assert Nurse.objects.filter(user_id=uid).exists()


def test_admin_cannot_delete_self(admin_user, make_user, client_for):
    client = client_for(admin_user)
    r = client.delete(reverse('user_detail', args=[admin_user.id]))
    assert r.status_code == 403
    assert r.data['error']['message'] == 'You cannot delete your own account.'
    other = make_user('gone', User.ROLE_PATIENT)
    assert client.delete(reverse('user_detail', args=[other.id])).status_code == 200
    assert not User.objects.filter(pk=other.pk).exists()


def test_users_endpoint_is_admin_only(nurse_account, client_for):
    assert client_for(nurse_account).get(reverse('users_list')).status_code == 403


# ---------------------------------------------------------------------
# Nursing
# ---------------------------------------------------------------------
def test_unlinked_nurse_dashboard_degrades(make_user, client_for):
    account = make_user('nolink', User.ROLE_NURSE, email='nolink@example.com')
    r = client_for(account).get(reverse('nursing_dashboard'))
    assert r.status_code == 200
    assert r.data['scope']['condition'] == 'profile not linked'
    assert 'Please contact the administrator' in r.data['scope']['message']
    assert r.data['data']['totalProcedures'] == 0
    assert r.data['data']['recentNotes'] == []


def test_nurse_lists_only_own_notes(nurse_account, nurse_profile, other_nurse, patient, other_patient, client_for):
    mine = NursingNote.objects.create(patient=patient, nurse=nurse_profile, notes='ok')
    NursingNote.objects.create(patient=other_patient, nurse=other_nurse, notes='not mine')
    r = client_for(nurse_account).get(reverse('nursing_notes'))
    assert r.status_code == 200
    assert [n['id'] for n in r.data['data']] == [mine.id]


def test_nurse_adds_note_for_own_patient(nurse_account, nurse_profile, patient, tomorrow, client_for):
    Appointment.objects.create(patient=patient, nurse=nurse_profile, appointment_date=tomorrow)
    r = client_for(nurse_account).post(reverse('nursing_notes'), {'patientId': patient.id, 'notes': '<div>Stable</div>'}, format='json')
    assert r.status_code == 201
    assert r.data['data']['nurseId'] == nurse_profile.id
    assert r.data['data']['notes'] == 'Stable'


def test_nurse_cannot_file_note_for_another_nurse(nurse_account, nurse_profile, other_nurse, patient, tomorrow, client_for):
    Appointment.objects.create(patient=patient, nurse=nurse_profile, appointment_date=tomorrow)
    r = client_for(nurse_account).post(
        reverse('nursing_notes'), {'patientId': patient.id, 'nurseId': other_nurse.id, 'notes': 'x'}, format='json',
    )
    assert r.status_code == 403
    assert not NursingNote.objects.exists()


def test_nurse_cannot_write_for_unrelated_patient(nurse_account, nurse_profile, other_patient, client_for):
    r = client_for(nurse_account).post(reverse('nursing_vitals'), {'patientId': other_patient.id, 'pulseRate': 80}, format='json')
    assert r.status_code == 403


def test_progress_update_only_on_own_note(nurse_account, nurse_profile, other_nurse, patient, client_for):
    mine = NursingNote.objects.create(patient=patient, nurse=nurse_profile, notes='a')
    theirs = NursingNote.objects.create(patient=patient, nurse=other_nurse, notes='b')
    client = client_for(nurse_account)
    r = client.post(reverse('nursing_progress'), {'noteId': mine.id, 'patientProgress': 'Improving'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['patientProgress'] == 'Improving'
    r = client.post(reverse('nursing_progress'), {'noteId': theirs.id, 'patientProgress': 'x'}, format='json')
    assert r.status_code == 403


def test_form_options_preselect_own_nurse(nurse_account, nurse_profile, client_for):
    r = client_for(nurse_account).get(reverse('nursing_form_options'))
    assert r.status_code == 200
    assert r.data['data']['selectedNurseId'] == nurse_profile.id


def test_doctor_cannot_reach_nursing(doctor_account, client_for):
    assert client_for(doctor_account).get(reverse('nursing_dashboard')).status_code == 403


# ---------------------------------------------------------------------
# Registry and doctor views
# ---------------------------------------------------------------------
def test_reception_books_appointment_with_doctor_fee(make_user, doctor_profile, patient, tomorrow, client_for):
    desk = make_user('desk', User.ROLE_RECEPTION, email='desk@example.com')
    r = client_for(desk).post(reverse('appointments_list'), {
        'patientId': patient.id, 'doctorId': doctor_profile.id, 'appointmentDate': tomorrow.isoformat(),
    }, format='json')
    assert r.status_code == 201
    assert r.data['data']['consultationFee'] == '1500.00'
    assert AuditEvent.objects.filter(action='appointment_create').exists()


def test_nurse_cannot_book_appointments(nurse_account, nurse_profile, patient, tomorrow, client_for):
    r = client_for(nurse_account).post(reverse('appointments_list'), {
        'patientId': patient.id, 'appointmentDate': tomorrow.isoformat(),
    }, format='json')
    assert r.status_code == 403


def test_patient_list_is_scoped(nurse_account, nurse_profile, patient, other_patient, tomorrow, client_for, admin_user):
    Appointment.objects.create(patient=patient, nurse=nurse_profile, appointment_date=tomorrow)
    r = client_for(nurse_account).get(reverse('patients_list'))
    assert [p['id'] for p in r.data['data']] == [patient.id]
    assert client_for(nurse_account).get(reverse('patient_detail', args=[other_patient.id])).status_code == 403
    r = client_for(admin_user).get(reverse('patients_list'))
    assert r.data['total'] == 2


def test_doctor_cannot_reassign_appointment(doctor_account, doctor_profile, other_doctor, patient, tomorrow, client_for):
    appt = Appointment.objects.create(patient=patient, doctor=doctor_profile, appointment_date=tomorrow)
    r = client_for(doctor_account).patch(reverse('appointment_detail', args=[appt.id]), {'doctorId': other_doctor.id}, format='json')
    assert r.status_code == 403
    appt.refresh_from_db()
    assert appt.doctor_id == doctor_profile.id


def test_doctor_cannot_see_foreign_appointment(doctor_account, doctor_profile, other_doctor, patient, tomorrow, client_for):
    appt = Appointment.objects.create(patient=patient, doctor=other_doctor, appointment_date=tomorrow)
    assert client_for(doctor_account).get(reverse('appointment_detail', args=[appt.id])).status_code == 404


def test_doctor_schedules_procedure_for_self(doctor_account, doctor_profile, patient, tomorrow, client_for):
    Appointment.objects.create(patient=patient, doctor=doctor_profile, appointment_date=tomorrow)
    r = client_for(doctor_account).post(reverse('procedures_list'), {
        'patientId': patient.id, 'procedureName': 'Ultrasound', 'procedureDate': tomorrow.isoformat(),
    }, format='json')
    assert r.status_code == 201
    assert Procedure.objects.get().doctor_id == doctor_profile.id


def test_doctor_cannot_schedule_procedure_for_unrelated_patient(doctor_account, doctor_profile, other_patient, tomorrow, client_for):
    r = client_for(doctor_account).post(reverse('procedures_list'), {
        'patientId': other_patient.id, 'procedureName': 'Ultrasound', 'procedureDate': tomorrow.isoformat(),
    }, format='json')
    assert r.status_code == 403
    assert not Procedure.objects.exists()


def test_doctor_dashboard_stats(doctor_account, doctor_profile, other_doctor, patient, other_patient, tomorrow, client_for):
    Appointment.objects.create(patient=patient, doctor=doctor_profile, appointment_date=tomorrow)
    Appointment.objects.create(patient=other_patient, doctor=other_doctor, appointment_date=tomorrow)
    r = client_for(doctor_account).get(reverse('doctor_dashboard'))
    assert r.status_code == 200
    stats = r.data['data']['stats']
    assert stats['totalAppointments'] == 1
    assert stats['totalPatients'] == 1
    assert r.data['scope']['condition'] is None


def test_monthly_revenue_counts_completed_work_only(doctor_account, doctor_profile, patient, client_for):
    now = timezone.now()
    Appointment.objects.create(patient=patient, doctor=doctor_profile, appointment_date=now, status='Completed', consultation_fee=1500)
    Appointment.objects.create(patient=patient, doctor=doctor_profile, appointment_date=now, consultation_fee=1500)
    Procedure.objects.create(patient=patient, doctor=doctor_profile, procedure_name='ECG', procedure_date=now, procedure_fee=500)
    Procedure.objects.create(
        patient=patient, doctor=doctor_profile, procedure_name='Echo', procedure_date=now, procedure_fee=300, status='Completed',
    )
    r = client_for(doctor_account).get(reverse('doctor_dashboard'))
    assert Decimal(r.data['data']['stats']['monthlyRevenue']) == Decimal('1800')


def test_doctor_profile_update(doctor_account, doctor_profile, client_for):
    r = client_for(doctor_account).patch(reverse('doctor_profile'), {'specialization': 'ENT', 'consultationFee': '2000'}, format='json')
    assert r.status_code == 200
    doctor_profile.refresh_from_db()
    assert doctor_profile.specialization == 'ENT'
    assert str(doctor_profile.consultation_fee) == '2000.00'


def test_doctor_patient_history_outside_scope(doctor_account, doctor_profile, other_patient, client_for):
    r = client_for(doctor_account).get(reverse('doctor_patient_history', args=[other_patient.id]))
    assert r.status_code == 403


# ---------------------------------------------------------------------
# Lab
# ---------------------------------------------------------------------
def test_lab_report_upload_completes_test(make_user, patient, client_for):
    lab = make_user('lab1', User.ROLE_LAB, email='lab@example.com')
    category = LabTestCategory.objects.create(name='Hematology')
    test = LabTest.objects.create(patient=patient, category=category, test_name='CBC')
    report = SimpleUploadedFile('cbc.pdf', b'%PDF-1.4 report', content_type='application/pdf')
    r = client_for(lab).post(reverse('lab_test_report', args=[test.id]), {'file': report, 'notes': 'normal'}, format='multipart')
    assert r.status_code == 200
    test.refresh_from_db()
    assert test.status == 'Completed'
    assert test.report_file.name.startswith('labreports/')
    assert test.report_notes == 'normal'


def test_lab_report_rejects_wrong_type(make_user, patient, client_for):
    lab = make_user('lab1', User.ROLE_LAB, email='lab@example.com')
    category = LabTestCategory.objects.create(name='Hematology')
    test = LabTest.objects.create(patient=patient, category=category, test_name='CBC')
    bad = SimpleUploadedFile('run.sh', b'echo hi', content_type='text/x-sh')
    r = client_for(lab).post(reverse('lab_test_report', args=[test.id]), {'file': bad}, format='multipart')
    assert r.status_code == 400
    test.refresh_from_db()
    assert test.status == 'Pending'


def test_duplicate_category_rejected(admin_user, client_for):
    client = client_for(admin_user)
    assert client.post(reverse('lab_categories'), {'name': 'Urine'}, format='json').status_code == 201
    assert client.post(reverse('lab_categories'), {'name': 'urine'}, format='json').status_code == 400


def test_protected_category_delete_is_conflict(admin_user, patient, client_for):
    category = LabTestCategory.objects.create(name='Hematology')
    LabTest.objects.create(patient=patient, category=category, test_name='CBC')
    r = client_for(admin_user).delete(reverse('lab_category_detail', args=[category.id]))
    assert r.status_code == 409
    assert r.data['error']['code'] == 'persistence_failure'
