from rest_framework import serializers

from care.serializers.common import CleanCharField


class DoctorProfileSerializer(serializers.Serializer):
    """Fields a doctor may change on their own profile."""
    firstName = CleanCharField(source='first_name', max_length=100, required=False)
    lastName = CleanCharField(source='last_name', max_length=100, required=False, allow_blank=True)
    contactNumber = CleanCharField(source='contact_number', max_length=15, required=False, allow_blank=True)
    specialization = CleanCharField(max_length=100, required=False)
    licenseNumber = CleanCharField(source='license_number', max_length=50, required=False, allow_blank=True)
    consultationFee = serializers.DecimalField(source='consultation_fee', max_digits=10, decimal_places=2, min_value=0, required=False)
    address = CleanCharField(max_length=500, required=False, allow_blank=True)


class DoctorSerializer(DoctorProfileSerializer):
    """Directory entry as maintained by an administrator."""
    firstName = CleanCharField(source='first_name', max_length=100)
    email = serializers.EmailField(max_length=100, required=False, allow_blank=True)
    department = CleanCharField(max_length=100, required=False, allow_blank=True)
    isActive = serializers.BooleanField(source='is_active', required=False)

    def validate_email(self, v):
        return (v or '').strip().lower()


class DoctorQuerySerializer(serializers.Serializer):
    q = serializers.CharField(max_length=64, required=False, allow_blank=True)
    active = serializers.BooleanField(required=False, allow_null=True, default=None)
    page = serializers.IntegerField(min_value=1, required=False)
    pageSize = serializers.IntegerField(min_value=1, max_value=200, required=False)
