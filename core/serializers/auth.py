from decimal import Decimal

from rest_framework import serializers

from core.models import User

SIGNUP_ROLES = [User.ROLE_PATIENT, User.ROLE_DOCTOR]


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)

    def validate_email(self, v):
        return v.strip().lower()


class SignupSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)
    role = serializers.ChoiceField(choices=SIGNUP_ROLES, default=User.ROLE_PATIENT)


class EmailSerializer(serializers.Serializer):
    email = serializers.EmailField()


class OtpSerializer(EmailSerializer):
    otp = serializers.RegexField(r'^\d{6}$', error_messages={'invalid': 'OTP must be 6 digits'})


class ResetPasswordSerializer(OtpSerializer):
    newPassword = serializers.CharField(trim_whitespace=False)


class ProfileUpdateSerializer(serializers.Serializer):
    """Whitelist of editable profile fields; everything else in the body is ignored."""
    name = serializers.CharField(max_length=150, required=False)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    bio = serializers.CharField(required=False, allow_blank=True)
    age = serializers.IntegerField(min_value=0, max_value=150, required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=[c for c, _ in User.GENDER_CHOICES], required=False, allow_blank=True)
    specialization = serializers.CharField(max_length=255, required=False, allow_blank=True)
    experience = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    clinicAddress = serializers.CharField(max_length=255, required=False, allow_blank=True)
    consultationFee = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'),
                                               required=False, allow_null=True)
