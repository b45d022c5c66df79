"""
Database models for the clinic backend.

The central split is between login accounts (:class:`User`) and the
clinical staff profiles that the domain data references (doctors,
nurses, reception and accounts staff). The two are joined by a
nullable one-to-one back-reference on each profile table; see
``care.services.identity`` for how an account is resolved to its
profile.
"""
from __future__ import annotations

import os
import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    """Login account carrying exactly one role.

    Staff roles (doctor, nurse, reception, accounts, lab) own a row in
    one of the staff profile tables. Admin and patient accounts have
    no staff profile.
    """
    ROLE_ADMIN = 'admin'
    ROLE_DOCTOR = 'doctor'
    ROLE_NURSE = 'nurse'
    ROLE_RECEPTION = 'reception'
    ROLE_ACCOUNTS = 'accounts'
    ROLE_LAB = 'lab'
    ROLE_PATIENT = 'patient'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_NURSE, 'Nurse'),
        (ROLE_RECEPTION, 'ReceptionStaff'),
        (ROLE_ACCOUNTS, 'AccountsStaff'),
        (ROLE_LAB, 'LabStaff'),
        (ROLE_PATIENT, 'Patient'),
    ]
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)
    phone_number = models.CharField(max_length=20, blank=True)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class StaffProfile(models.Model):
    """Fields shared by every clinical staff profile table."""
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True)
    contact_number = models.CharField(max_length=15, blank=True)
    email = models.EmailField(max_length=100, blank=True)
    department = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    # Empty until provisioning or the email fallback links the account
    user = models.OneToOneField(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='%(class)s_profile'
    )

    class Meta:
        abstract = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return f"{self.full_name} <{self.email}>"


class Doctor(StaffProfile):
    specialization = models.CharField(max_length=100, default='General')
    license_number = models.CharField(max_length=50, blank=True)
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    address = models.CharField(max_length=500, blank=True)


class Nurse(StaffProfile):
    license_number = models.CharField(max_length=50, blank=True)


class ReceptionStaff(StaffProfile):
    """Front-desk staff. Lab staff share this table with department 'Laboratory'."""
    employee_id = models.CharField(max_length=50, blank=True)


class AccountsStaff(StaffProfile):
    employee_id = models.CharField(max_length=50, blank=True)


def next_mr_number(today=None) -> str:
    today = today or timezone.localdate()
    prefix = f"MR{today.strftime('%Y%m%d')}"
    seq = Patient.objects.filter(mr_number__startswith=prefix).count() + 1
    return f"{prefix}{seq:04d}"


class Patient(models.Model):
    GENDER_CHOICES = [('Male', 'Male'), ('Female', 'Female'), ('Other', 'Other')]

    mr_number = models.CharField(max_length=20, unique=True, blank=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True)
    contact_number = models.CharField(max_length=20)
    alternate_contact = models.CharField(max_length=20, blank=True)
    email = models.EmailField(max_length=100, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    address = models.CharField(max_length=500, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    postal_code = models.CharField(max_length=20, blank=True)
    medical_history = models.TextField(blank=True)
    allergies = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def save(self, *args, **kwargs):
        if not self.mr_number:
            self.mr_number = next_mr_number()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.mr_number} {self.full_name}"


class Appointment(models.Model):
    STATUS_CHOICES = [
        ('Scheduled', 'Scheduled'),
        ('Confirmed', 'Confirmed'),
        ('Completed', 'Completed'),
        ('Cancelled', 'Cancelled'),
        ('No-Show', 'No-Show'),
    ]

    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(Doctor, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments')
    nurse = models.ForeignKey(Nurse, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments')
    appointment_date = models.DateTimeField(db_index=True)
    appointment_type = models.CharField(max_length=50, default='General')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Scheduled', db_index=True)
    reason = models.CharField(max_length=500, blank=True)
    notes = models.CharField(max_length=1000, blank=True)
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    sms_sent = models.BooleanField(default=False)
    whatsapp_sent = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')

    def __str__(self) -> str:
        return f"appt {self.id} p={self.patient_id} {self.appointment_date:%Y-%m-%d %H:%M}"


class Procedure(models.Model):
    STATUS_CHOICES = [
        ('Scheduled', 'Scheduled'),
        ('In Progress', 'In Progress'),
        ('Completed', 'Completed'),
        ('Cancelled', 'Cancelled'),
    ]

    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='procedures')
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='procedures')
    nurse = models.ForeignKey(Nurse, null=True, blank=True, on_delete=models.SET_NULL, related_name='procedures')
    procedure_name = models.CharField(max_length=100)
    procedure_type = models.CharField(max_length=50, blank=True)
    procedure_date = models.DateTimeField(db_index=True)
    treatment_notes = models.TextField(blank=True)
    prescription = models.TextField(blank=True)
    procedure_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Scheduled', db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')

    def __str__(self) -> str:
        return f"{self.procedure_name} p={self.patient_id}"


class NursingNote(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='nursing_notes')
    procedure = models.ForeignKey(Procedure, null=True, blank=True, on_delete=models.SET_NULL, related_name='nursing_notes')
    appointment = models.ForeignKey(Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='nursing_notes')
    nurse = models.ForeignKey(Nurse, on_delete=models.PROTECT, related_name='nursing_notes')
    note_date = models.DateTimeField(default=timezone.now, db_index=True)
    notes = models.TextField()
    vitals = models.CharField(max_length=500, blank=True)
    patient_progress = models.CharField(max_length=1000, blank=True)
    medications_administered = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')

    def __str__(self) -> str:
        return f"note {self.id} nurse={self.nurse_id} p={self.patient_id}"


class PatientVital(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='vitals')
    procedure = models.ForeignKey(Procedure, null=True, blank=True, on_delete=models.SET_NULL, related_name='vitals')
    appointment = models.ForeignKey(Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='vitals')
    nurse = models.ForeignKey(Nurse, null=True, blank=True, on_delete=models.SET_NULL, related_name='vitals')
    recorded_date = models.DateTimeField(default=timezone.now, db_index=True)
    blood_pressure_systolic = models.PositiveSmallIntegerField(null=True, blank=True)
    blood_pressure_diastolic = models.PositiveSmallIntegerField(null=True, blank=True)
    temperature = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    pulse_rate = models.PositiveSmallIntegerField(null=True, blank=True)
    respiratory_rate = models.PositiveSmallIntegerField(null=True, blank=True)
    oxygen_saturation = models.PositiveSmallIntegerField(null=True, blank=True)
    weight = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    height = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    notes = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    recorded_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')

    def __str__(self) -> str:
        return f"vitals {self.id} p={self.patient_id}"


class LabTestCategory(models.Model):
    name = models.CharField(max_length=100, unique=True)
    description = models.CharField(max_length=500, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


def _lab_report_upload(instance, filename: str) -> str:
    ext = os.path.splitext(filename)[1]
    return f"labreports/{timezone.localdate().strftime('%Y/%m')}/{instance.id or 'new'}_{uuid.uuid4().hex}{ext}"


class LabTest(models.Model):
    STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('In Progress', 'In Progress'),
        ('Completed', 'Completed'),
    ]

    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='lab_tests')
    category = models.ForeignKey(LabTestCategory, on_delete=models.PROTECT, related_name='tests')
    procedure = models.ForeignKey(Procedure, null=True, blank=True, on_delete=models.SET_NULL, related_name='lab_tests')
    test_name = models.CharField(max_length=100)
    test_date = models.DateTimeField(default=timezone.now)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Pending', db_index=True)
    fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    assigned_to = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='assigned_lab_tests'
    )
    report_file = models.FileField(upload_to=_lab_report_upload, max_length=512, blank=True)
    report_notes = models.TextField(blank=True)
    report_uploaded_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')

    def __str__(self) -> str:
        return f"{self.test_name} p={self.patient_id} ({self.status})"


class Transaction(models.Model):
    TYPE_CHOICES = [
        ('Consultation', 'Consultation'),
        ('Procedure', 'Procedure'),
        ('Lab Test', 'Lab Test'),
        ('Pharmacy', 'Pharmacy'),
        ('Other', 'Other'),
    ]
    PAYMENT_MODE_CHOICES = [
        ('Cash', 'Cash'),
        ('Card', 'Card'),
        ('Bank Transfer', 'Bank Transfer'),
        ('Online', 'Online'),
    ]
    STATUS_CHOICES = [
        ('Paid', 'Paid'),
        ('Pending', 'Pending'),
        ('Refunded', 'Refunded'),
        ('Cancelled', 'Cancelled'),
    ]

    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='transactions')
    transaction_type = models.CharField(max_length=30, choices=TYPE_CHOICES, default='Consultation')
    appointment = models.ForeignKey(Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='transactions')
    procedure = models.ForeignKey(Procedure, null=True, blank=True, on_delete=models.SET_NULL, related_name='transactions')
    lab_test = models.ForeignKey(LabTest, null=True, blank=True, on_delete=models.SET_NULL, related_name='transactions')
    description = models.CharField(max_length=500, blank=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_mode = models.CharField(max_length=30, choices=PAYMENT_MODE_CHOICES, default='Cash')
    reference_number = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Paid', db_index=True)
    transaction_date = models.DateTimeField(default=timezone.now, db_index=True)
    invoice_generated = models.BooleanField(default=False)
    invoice_path = models.CharField(max_length=512, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')

    @property
    def invoice_number(self) -> str:
        return f"INV-{self.id:05d}"

    def __str__(self) -> str:
        return f"txn {self.id} {self.amount} ({self.status})"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='care_audit_action_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='care_audit_object_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.action} {self.object_type}:{self.object_id}"
