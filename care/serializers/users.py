from rest_framework import serializers

from care.models import User
from care.serializers.common import CleanCharField

# profile field -> validated_data key produced by the serializers below
PROFILE_KEYS = ('department', 'specialization', 'license_number', 'consultation_fee', 'address', 'employee_id')


class UserWriteSerializer(serializers.Serializer):
    firstName = CleanCharField(source='first_name', max_length=100)
    lastName = CleanCharField(source='last_name', max_length=100, required=False, allow_blank=True)
    email = serializers.EmailField(max_length=254)
    phoneNumber = CleanCharField(source='phone_number', max_length=20, required=False, allow_blank=True)
    username = CleanCharField(max_length=150, required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=[c[0] for c in User.ROLE_CHOICES])
    isActive = serializers.BooleanField(source='is_active', required=False)
    password = serializers.CharField(min_length=6, max_length=128, write_only=True, required=False, allow_blank=True)
    confirmPassword = serializers.CharField(write_only=True, required=False, allow_blank=True)

    # staff profile details
    department = CleanCharField(max_length=100, required=False, allow_blank=True)
    specialization = CleanCharField(max_length=100, required=False, allow_blank=True)
    licenseNumber = CleanCharField(source='license_number', max_length=50, required=False, allow_blank=True)
    consultationFee = serializers.DecimalField(source='consultation_fee', max_digits=10, decimal_places=2, min_value=0, required=False)
    address = CleanCharField(max_length=500, required=False, allow_blank=True)
    employeeId = CleanCharField(source='employee_id', max_length=50, required=False, allow_blank=True)

    def validate_email(self, v):
        v = v.strip()
        qs = User.objects.filter(email__iexact=v)
        instance = self.context.get('instance')
        if instance is not None:
            qs = qs.exclude(pk=instance.pk)
        if qs.exists():
            raise serializers.ValidationError('Email is already registered to another user.')
        return v

    def validate(self, attrs):
        password = attrs.get('password')
        if password and password != attrs.get('confirmPassword'):
            raise serializers.ValidationError({'confirmPassword': 'Passwords do not match.'})
        attrs.pop('confirmPassword', None)
        return attrs


class UserCreateSerializer(UserWriteSerializer):
    password = serializers.CharField(min_length=6, max_length=128, write_only=True)
    confirmPassword = serializers.CharField(write_only=True)


def split_profile_fields(vd: dict) -> tuple[dict, dict]:
    """Separate account fields from staff profile fields."""
    account = {k: v for k, v in vd.items() if k not in PROFILE_KEYS}
    profile = {k: v for k, v in vd.items() if k in PROFILE_KEYS}
    return account, profile
