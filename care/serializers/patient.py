from rest_framework import serializers

from care.models import Patient
from care.serializers.common import CleanCharField


class PatientSerializer(serializers.Serializer):
    firstName = CleanCharField(source='first_name', max_length=100)
    lastName = CleanCharField(source='last_name', max_length=100, required=False, allow_blank=True)
    contactNumber = CleanCharField(source='contact_number', max_length=20)
    alternateContact = CleanCharField(source='alternate_contact', max_length=20, required=False, allow_blank=True)
    email = serializers.EmailField(max_length=100, required=False, allow_blank=True)
    dateOfBirth = serializers.DateField(source='date_of_birth', required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=[c[0] for c in Patient.GENDER_CHOICES], required=False, allow_blank=True)
    address = CleanCharField(max_length=500, required=False, allow_blank=True)
    city = CleanCharField(max_length=100, required=False, allow_blank=True)
    state = CleanCharField(max_length=100, required=False, allow_blank=True)
    postalCode = CleanCharField(source='postal_code', max_length=20, required=False, allow_blank=True)
    medicalHistory = CleanCharField(source='medical_history', required=False, allow_blank=True)
    allergies = CleanCharField(required=False, allow_blank=True)

    def validate_firstName(self, v):
        if len(v) < 2:
            raise serializers.ValidationError('First name must be at least 2 characters')
        return v
