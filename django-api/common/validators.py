"""Field validators shared by the request serializers."""

import re

from rest_framework import serializers

NAME_PATTERN = re.compile(r"^[a-zA-ZÀ-ÿ\s]+$")
PHONE_PATTERN = re.compile(r"^\(?([1-9]{2})\)?[\s-]?9?[0-9]{4}[\s-]?[0-9]{4}$")
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def digits_only(value: str) -> str:
    return re.sub(r"\D", "", value)


def is_valid_document(digits: str) -> bool:
    """Shape check for CPF (11 digits) or CNPJ (14 digits)."""
    if len(digits) not in (11, 14):
        return False
    return len(set(digits)) > 1


class PersonNameField(serializers.CharField):
    def __init__(self, **kwargs) -> None:
        kwargs.setdefault("min_length", 3)
        kwargs.setdefault("max_length", 100)
        super().__init__(**kwargs)

    def to_internal_value(self, data) -> str:
        value = super().to_internal_value(data)
        if not NAME_PATTERN.match(value):
            raise serializers.ValidationError("Name must contain only letters.")
        return value


class PhoneField(serializers.CharField):
    """Brazilian phone number, stored as digits."""

    def to_internal_value(self, data) -> str:
        value = super().to_internal_value(data)
        if not PHONE_PATTERN.match(value):
            raise serializers.ValidationError("Invalid phone number, e.g. (11) 99999-9999.")
        return digits_only(value)


class DocumentField(serializers.CharField):
    """CPF, or CPF/CNPJ when ``allow_cnpj`` is set; stored as digits."""

    def __init__(self, allow_cnpj: bool = False, **kwargs) -> None:
        self.allow_cnpj = allow_cnpj
        super().__init__(**kwargs)

    def to_internal_value(self, data) -> str:
        value = digits_only(super().to_internal_value(data))
        if not self.allow_cnpj and len(value) != 11:
            raise serializers.ValidationError("CPF must have 11 digits.")
        if not is_valid_document(value):
            raise serializers.ValidationError("Invalid CPF/CNPJ." if self.allow_cnpj else "Invalid CPF.")
        return value


class LowercaseEmailField(serializers.EmailField):
    def to_internal_value(self, data) -> str:
        return super().to_internal_value(data).strip().lower()


def validate_password_strength(value: str) -> str:
    if not PASSWORD_PATTERN.match(value):
        raise serializers.ValidationError(
            "Password must contain at least one upper-case letter, one lower-case letter and one digit."
        )
    return value
