"""JSON shapes returned by the API for each record type."""
from __future__ import annotations

from typing import Optional

from care.models import (
    Appointment,
    Doctor,
    LabTest,
    LabTestCategory,
    NursingNote,
    Patient,
    PatientVital,
    Procedure,
    Transaction,
    User,
)
from care.services.identity import profile_summary


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _money(value) -> Optional[str]:
    return str(value) if value is not None else None


def _name(profile) -> Optional[str]:
    return profile.full_name if profile is not None else None


def format_user(user: User) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'name': user.get_full_name() or user.username,
        'email': user.email,
        'phoneNumber': user.phone_number,
        'role': user.role,
        'roleLabel': user.get_role_display(),
        'isActive': user.is_active,
        'dateJoined': _iso(user.date_joined),
    }


def format_doctor(d: Doctor, *, stats: Optional[dict] = None) -> dict:
    data = {
        'id': d.id,
        'firstName': d.first_name,
        'lastName': d.last_name,
        'name': d.full_name,
        'email': d.email,
        'contactNumber': d.contact_number,
        'specialization': d.specialization,
        'licenseNumber': d.license_number,
        'consultationFee': _money(d.consultation_fee),
        'address': d.address,
        'department': d.department,
        'isActive': d.is_active,
        'linked': d.user_id is not None,
    }
    if stats:
        data.update(stats)
    return data


def format_patient(p: Patient, *, full: bool = False) -> dict:
    data = {
        'id': p.id,
        'mrNumber': p.mr_number,
        'firstName': p.first_name,
        'lastName': p.last_name,
        'name': p.full_name,
        'contactNumber': p.contact_number,
        'email': p.email,
        'gender': p.gender,
        'dateOfBirth': _iso(p.date_of_birth),
        'createdAt': _iso(p.created_at),
    }
    if full:
        data.update({
            'alternateContact': p.alternate_contact,
            'address': p.address,
            'city': p.city,
            'state': p.state,
            'postalCode': p.postal_code,
            'medicalHistory': p.medical_history,
            'allergies': p.allergies,
        })
    return data


def format_appointment(a: Appointment) -> dict:
    return {
        'id': a.id,
        'patientId': a.patient_id,
        'patientName': a.patient.full_name,
        'mrNumber': a.patient.mr_number,
        'doctorId': a.doctor_id,
        'doctorName': _name(a.doctor),
        'nurseId': a.nurse_id,
        'nurseName': _name(a.nurse),
        'appointmentDate': _iso(a.appointment_date),
        'appointmentType': a.appointment_type,
        'status': a.status,
        'reason': a.reason,
        'notes': a.notes,
        'consultationFee': _money(a.consultation_fee),
        'smsSent': a.sms_sent,
        'whatsappSent': a.whatsapp_sent,
    }


def format_procedure(pr: Procedure) -> dict:
    return {
        'id': pr.id,
        'patientId': pr.patient_id,
        'patientName': pr.patient.full_name,
        'doctorId': pr.doctor_id,
        'doctorName': _name(pr.doctor),
        'nurseId': pr.nurse_id,
        'nurseName': _name(pr.nurse),
        'procedureName': pr.procedure_name,
        'procedureType': pr.procedure_type,
        'procedureDate': _iso(pr.procedure_date),
        'treatmentNotes': pr.treatment_notes,
        'prescription': pr.prescription,
        'procedureFee': _money(pr.procedure_fee),
        'status': pr.status,
    }


def format_note(n: NursingNote) -> dict:
    return {
        'id': n.id,
        'patientId': n.patient_id,
        'patientName': n.patient.full_name,
        'nurseId': n.nurse_id,
        'nurseName': _name(n.nurse),
        'procedureId': n.procedure_id,
        'appointmentId': n.appointment_id,
        'noteDate': _iso(n.note_date),
        'notes': n.notes,
        'vitals': n.vitals,
        'patientProgress': n.patient_progress,
        'medicationsAdministered': n.medications_administered,
    }


def format_vital(v: PatientVital) -> dict:
    return {
        'id': v.id,
        'patientId': v.patient_id,
        'patientName': v.patient.full_name,
        'nurseId': v.nurse_id,
        'procedureId': v.procedure_id,
        'appointmentId': v.appointment_id,
        'recordedDate': _iso(v.recorded_date),
        'bloodPressure': (
            f'{v.blood_pressure_systolic}/{v.blood_pressure_diastolic}'
            if v.blood_pressure_systolic and v.blood_pressure_diastolic else None
        ),
        'bloodPressureSystolic': v.blood_pressure_systolic,
        'bloodPressureDiastolic': v.blood_pressure_diastolic,
        'temperature': _money(v.temperature),
        'pulseRate': v.pulse_rate,
        'respiratoryRate': v.respiratory_rate,
        'oxygenSaturation': v.oxygen_saturation,
        'weight': _money(v.weight),
        'height': _money(v.height),
        'notes': v.notes,
    }


def format_category(c: LabTestCategory) -> dict:
    return {'id': c.id, 'name': c.name, 'description': c.description, 'isActive': c.is_active}


def format_lab_test(t: LabTest) -> dict:
    return {
        'id': t.id,
        'patientId': t.patient_id,
        'patientName': t.patient.full_name,
        'categoryId': t.category_id,
        'categoryName': t.category.name,
        'procedureId': t.procedure_id,
        'testName': t.test_name,
        'testDate': _iso(t.test_date),
        'status': t.status,
        'fee': _money(t.fee),
        'assignedTo': t.assigned_to_id,
        'reportUrl': t.report_file.url if t.report_file else None,
        'reportNotes': t.report_notes,
        'reportUploadedAt': _iso(t.report_uploaded_at),
    }


def format_transaction(t: Transaction) -> dict:
    return {
        'id': t.id,
        'invoiceNumber': t.invoice_number,
        'patientId': t.patient_id,
        'patientName': t.patient.full_name,
        'transactionType': t.transaction_type,
        'appointmentId': t.appointment_id,
        'procedureId': t.procedure_id,
        'labTestId': t.lab_test_id,
        'description': t.description,
        'amount': _money(t.amount),
        'paymentMode': t.payment_mode,
        'referenceNumber': t.reference_number,
        'status': t.status,
        'transactionDate': _iso(t.transaction_date),
        'invoiceGenerated': t.invoice_generated,
        'invoicePath': t.invoice_path or None,
    }


def format_scope(scope) -> dict:
    return {
        'role': scope.role,
        'profile': profile_summary(scope.profile),
        'condition': scope.condition,
        'message': scope.message,
    }
