from rest_framework import serializers

from care.models import Appointment, LabTest, LabTestCategory, Patient, Procedure, Transaction, User
from care.serializers.common import CleanCharField


class LabCategorySerializer(serializers.Serializer):
    name = CleanCharField(max_length=100)
    description = CleanCharField(max_length=500, required=False, allow_blank=True)
    isActive = serializers.BooleanField(source='is_active', required=False)

    def validate_name(self, v):
        qs = LabTestCategory.objects.filter(name__iexact=v)
        instance = self.context.get('instance')
        if instance is not None:
            qs = qs.exclude(pk=instance.pk)
        if qs.exists():
            raise serializers.ValidationError('A category with this name already exists.')
        return v


class LabTestSerializer(serializers.Serializer):
    patientId = serializers.PrimaryKeyRelatedField(source='patient', queryset=Patient.objects.all())
    categoryId = serializers.PrimaryKeyRelatedField(source='category', queryset=LabTestCategory.objects.filter(is_active=True))
    procedureId = serializers.PrimaryKeyRelatedField(source='procedure', queryset=Procedure.objects.all(), required=False, allow_null=True)
    testName = CleanCharField(source='test_name', max_length=100)
    testDate = serializers.DateTimeField(source='test_date', required=False)
    status = serializers.ChoiceField(choices=[c[0] for c in LabTest.STATUS_CHOICES], required=False)
    fee = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)
    assignedTo = serializers.PrimaryKeyRelatedField(
        source='assigned_to', queryset=User.objects.filter(role=User.ROLE_LAB), required=False, allow_null=True,
    )
    reportNotes = CleanCharField(source='report_notes', required=False, allow_blank=True)


class LabReportSerializer(serializers.Serializer):
    file = serializers.FileField()
    notes = CleanCharField(required=False, allow_blank=True)


class TransactionSerializer(serializers.Serializer):
    patientId = serializers.PrimaryKeyRelatedField(source='patient', queryset=Patient.objects.all())
    transactionType = serializers.ChoiceField(source='transaction_type', choices=[c[0] for c in Transaction.TYPE_CHOICES], required=False)
    appointmentId = serializers.PrimaryKeyRelatedField(source='appointment', queryset=Appointment.objects.all(), required=False, allow_null=True)
    procedureId = serializers.PrimaryKeyRelatedField(source='procedure', queryset=Procedure.objects.all(), required=False, allow_null=True)
    labTestId = serializers.PrimaryKeyRelatedField(source='lab_test', queryset=LabTest.objects.all(), required=False, allow_null=True)
    description = CleanCharField(max_length=500, required=False, allow_blank=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    paymentMode = serializers.ChoiceField(source='payment_mode', choices=[c[0] for c in Transaction.PAYMENT_MODE_CHOICES], required=False)
    referenceNumber = CleanCharField(source='reference_number', max_length=100, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=[c[0] for c in Transaction.STATUS_CHOICES], required=False)
    transactionDate = serializers.DateTimeField(source='transaction_date', required=False)

    def validate(self, attrs):
        patient = attrs.get('patient') or getattr(self.context.get('instance'), 'patient', None)
        for key in ('appointment', 'procedure', 'lab_test'):
            linked = attrs.get(key)
            if linked is not None and patient is not None and linked.patient_id != patient.id:
                raise serializers.ValidationError({key: 'Linked record belongs to another patient.'})
        return attrs
