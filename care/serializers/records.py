from rest_framework import serializers

from care.models import Appointment, Doctor, Nurse, Patient, Procedure
from care.serializers.common import CleanCharField


class AppointmentSerializer(serializers.Serializer):
    patientId = serializers.PrimaryKeyRelatedField(source='patient', queryset=Patient.objects.all())
    doctorId = serializers.PrimaryKeyRelatedField(source='doctor', queryset=Doctor.objects.all(), required=False, allow_null=True)
    nurseId = serializers.PrimaryKeyRelatedField(source='nurse', queryset=Nurse.objects.all(), required=False, allow_null=True)
    appointmentDate = serializers.DateTimeField(source='appointment_date')
    appointmentType = CleanCharField(source='appointment_type', max_length=50, required=False)
    status = serializers.ChoiceField(choices=[c[0] for c in Appointment.STATUS_CHOICES], required=False)
    reason = CleanCharField(max_length=500, required=False, allow_blank=True)
    notes = CleanCharField(max_length=1000, required=False, allow_blank=True)
    consultationFee = serializers.DecimalField(source='consultation_fee', max_digits=10, decimal_places=2, min_value=0, required=False)


class ProcedureSerializer(serializers.Serializer):
    patientId = serializers.PrimaryKeyRelatedField(source='patient', queryset=Patient.objects.all())
    doctorId = serializers.PrimaryKeyRelatedField(source='doctor', queryset=Doctor.objects.all(), required=False)
    nurseId = serializers.PrimaryKeyRelatedField(source='nurse', queryset=Nurse.objects.all(), required=False, allow_null=True)
    procedureName = CleanCharField(source='procedure_name', max_length=100)
    procedureType = CleanCharField(source='procedure_type', max_length=50, required=False, allow_blank=True)
    procedureDate = serializers.DateTimeField(source='procedure_date')
    treatmentNotes = CleanCharField(source='treatment_notes', max_length=2000, required=False, allow_blank=True)
    prescription = CleanCharField(max_length=2000, required=False, allow_blank=True)
    procedureFee = serializers.DecimalField(source='procedure_fee', max_digits=10, decimal_places=2, min_value=0, required=False)
    status = serializers.ChoiceField(choices=[c[0] for c in Procedure.STATUS_CHOICES], required=False)


class NursingNoteSerializer(serializers.Serializer):
    patientId = serializers.PrimaryKeyRelatedField(source='patient', queryset=Patient.objects.all())
    nurseId = serializers.IntegerField(source='nurse_id', min_value=1, required=False, allow_null=True)
    procedureId = serializers.IntegerField(source='procedure_id', min_value=1, required=False, allow_null=True)
    appointmentId = serializers.IntegerField(source='appointment_id', min_value=1, required=False, allow_null=True)
    noteDate = serializers.DateTimeField(source='note_date', required=False)
    notes = CleanCharField(max_length=2000)
    vitals = CleanCharField(max_length=500, required=False, allow_blank=True)
    patientProgress = CleanCharField(source='patient_progress', max_length=1000, required=False, allow_blank=True)
    medicationsAdministered = CleanCharField(source='medications_administered', max_length=500, required=False, allow_blank=True)


class VitalSerializer(serializers.Serializer):
    patientId = serializers.PrimaryKeyRelatedField(source='patient', queryset=Patient.objects.all())
    nurseId = serializers.IntegerField(source='nurse_id', min_value=1, required=False, allow_null=True)
    procedureId = serializers.IntegerField(source='procedure_id', min_value=1, required=False, allow_null=True)
    appointmentId = serializers.IntegerField(source='appointment_id', min_value=1, required=False, allow_null=True)
    recordedDate = serializers.DateTimeField(source='recorded_date', required=False)
    bloodPressureSystolic = serializers.IntegerField(source='blood_pressure_systolic', min_value=40, max_value=300, required=False, allow_null=True)
    bloodPressureDiastolic = serializers.IntegerField(source='blood_pressure_diastolic', min_value=20, max_value=200, required=False, allow_null=True)
    temperature = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=25, max_value=115, required=False, allow_null=True)
    pulseRate = serializers.IntegerField(source='pulse_rate', min_value=20, max_value=250, required=False, allow_null=True)
    respiratoryRate = serializers.IntegerField(source='respiratory_rate', min_value=4, max_value=80, required=False, allow_null=True)
    oxygenSaturation = serializers.IntegerField(source='oxygen_saturation', min_value=50, max_value=100, required=False, allow_null=True)
    weight = serializers.DecimalField(max_digits=6, decimal_places=2, min_value=0, required=False, allow_null=True)
    height = serializers.DecimalField(max_digits=6, decimal_places=2, min_value=0, required=False, allow_null=True)
    notes = CleanCharField(max_length=500, required=False, allow_blank=True)


class ProgressQuerySerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)


class ProgressUpdateSerializer(serializers.Serializer):
    noteId = serializers.IntegerField(min_value=1)
    patientProgress = CleanCharField(max_length=1000)
    notes = CleanCharField(max_length=2000, required=False)


class NotifySerializer(serializers.Serializer):
    channel = serializers.ChoiceField(choices=['sms', 'whatsapp'], default='sms')
