"""Request contracts and response shapes for the auth endpoints."""

from rest_framework import serializers

from accounts.domain import Gender, OrganizerSignup, ParticipantProfile
from common.validators import (
    DocumentField,
    LowercaseEmailField,
    PersonNameField,
    PhoneField,
    validate_password_strength,
)

GENDER_CHOICES = [gender.value for gender in Gender]


class OrganizerSignupSerializer(serializers.Serializer):
    email = LowercaseEmailField()
    password = serializers.CharField(min_length=8, max_length=100, validators=[validate_password_strength])
    full_name = PersonNameField()
    cpf_cnpj = DocumentField(allow_cnpj=True)
    phone = PhoneField()

    def to_signup(self) -> OrganizerSignup:
        return OrganizerSignup(**self.validated_data)


class LoginSerializer(serializers.Serializer):
    email = LowercaseEmailField()
    password = serializers.CharField(trim_whitespace=False)


class RefreshSerializer(serializers.Serializer):
    refresh_token = serializers.CharField()


class ParticipantFieldsSerializer(serializers.Serializer):
    """Participant identity fields, shared by sign-up and checkout."""

    email = LowercaseEmailField()
    full_name = PersonNameField()
    cpf = DocumentField()
    phone = PhoneField()
    birth_date = serializers.DateField(required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=GENDER_CHOICES, required=False)

    def to_profile(self, data: dict | None = None) -> ParticipantProfile:
        data = data if data is not None else self.validated_data
        return ParticipantProfile(
            email=data["email"],
            full_name=data["full_name"],
            cpf=data["cpf"],
            phone=data["phone"],
            birth_date=data.get("birth_date"),
            gender=Gender(data.get("gender") or Gender.NOT_INFORMED.value),
        )


class ParticipantSignupSerializer(ParticipantFieldsSerializer):
    password = serializers.CharField(min_length=8, max_length=100, validators=[validate_password_strength])


class TokenPairSerializer(serializers.Serializer):
    access_token = serializers.CharField()
    refresh_token = serializers.CharField()


class OrganizerSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    email = serializers.EmailField()
    full_name = serializers.CharField()
    phone = serializers.CharField()
    payment_connected = serializers.BooleanField(source="payment.connected")
    created_at = serializers.DateTimeField()


class ParticipantSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    email = serializers.EmailField()
    full_name = serializers.CharField()
    phone = serializers.CharField()
    birth_date = serializers.DateField(allow_null=True)
    gender = serializers.CharField(source="gender.value")
    created_at = serializers.DateTimeField()
