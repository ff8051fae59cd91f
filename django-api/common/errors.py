"""Error taxonomy shared by every app.

Each concrete error carries a stable ``ErrorCode`` and a user-safe message.
The HTTP status is a property of the error family, not of the caller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar


class ErrorCode(Enum):
    """Machine-readable reason codes returned to API clients."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ID = "INVALID_ID"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    FORBIDDEN = "FORBIDDEN"

    # accounts
    TOKEN_MISSING = "TOKEN_MISSING"
    TOKEN_INVALID = "TOKEN_INVALID"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    EMAIL_TAKEN = "EMAIL_TAKEN"
    DOCUMENT_TAKEN = "DOCUMENT_TAKEN"
    ORGANIZER_NOT_FOUND = "ORGANIZER_NOT_FOUND"
    PARTICIPANT_NOT_FOUND = "PARTICIPANT_NOT_FOUND"

    # events
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    EVENT_NOT_OPEN = "EVENT_NOT_OPEN"
    REGISTRATION_CLOSED = "REGISTRATION_CLOSED"
    EVENT_HAS_REGISTRATIONS = "EVENT_HAS_REGISTRATIONS"
    MODALITY_NOT_FOUND = "MODALITY_NOT_FOUND"
    BATCH_NOT_FOUND = "BATCH_NOT_FOUND"
    COUPON_NOT_FOUND = "COUPON_NOT_FOUND"
    COUPON_CODE_TAKEN = "COUPON_CODE_TAKEN"
    KIT_NOT_FOUND = "KIT_NOT_FOUND"
    KIT_ALREADY_EXISTS = "KIT_ALREADY_EXISTS"
    IN_USE = "IN_USE"

    # pricing
    SOLD_OUT = "SOLD_OUT"
    BATCH_SOLD_OUT = "BATCH_SOLD_OUT"
    COUPON_INACTIVE = "COUPON_INACTIVE"
    COUPON_EXPIRED = "COUPON_EXPIRED"
    COUPON_EXHAUSTED = "COUPON_EXHAUSTED"
    COUPON_NOT_APPLICABLE = "COUPON_NOT_APPLICABLE"
    COUPON_MINIMUM_PURCHASE = "COUPON_MINIMUM_PURCHASE"
    SHIRT_SIZE_REQUIRED = "SHIRT_SIZE_REQUIRED"
    SHIRT_SIZE_UNAVAILABLE = "SHIRT_SIZE_UNAVAILABLE"
    SHIRT_SIZE_SOLD_OUT = "SHIRT_SIZE_SOLD_OUT"

    # registrations
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    GROUP_NOT_ALLOWED = "GROUP_NOT_ALLOWED"
    GROUP_TOO_LARGE = "GROUP_TOO_LARGE"
    REGISTRATION_NUMBER_CONFLICT = "REGISTRATION_NUMBER_CONFLICT"
    REGISTRATION_NOT_CANCELABLE = "REGISTRATION_NOT_CANCELABLE"

    # payments
    PAYMENTS_NOT_CONFIGURED = "PAYMENTS_NOT_CONFIGURED"
    PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
    PAYMENT_NOT_APPROVED = "PAYMENT_NOT_APPROVED"
    PAYMENT_PROVIDER_UNAVAILABLE = "PAYMENT_PROVIDER_UNAVAILABLE"
    WEBHOOK_SIGNATURE_INVALID = "WEBHOOK_SIGNATURE_INVALID"
    DATABASE_UNAVAILABLE = "DATABASE_UNAVAILABLE"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    http_status: ClassVar[int] = 400

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def as_payload(self) -> dict[str, Any]:
        return {"code": self.code.value, "message": self.message}


@dataclass(eq=False)
class ValidationError(DomainError):
    """Malformed or inconsistent input, optionally with field-level detail."""

    details: dict[str, list[str]] = field(default_factory=dict)

    http_status: ClassVar[int] = 400

    def as_payload(self) -> dict[str, Any]:
        payload = super().as_payload()
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(DomainError):
    """Referenced entity is absent or not owned by the caller."""

    http_status: ClassVar[int] = 404


class ConflictError(DomainError):
    """Capacity, stock or uniqueness conflict."""

    http_status: ClassVar[int] = 409


class UpstreamError(DomainError):
    """Payment provider or database unavailable."""

    http_status: ClassVar[int] = 503


class AuthError(DomainError):
    """Missing, invalid or expired credentials."""

    http_status: ClassVar[int] = 401


class InvalidIdError(ValidationError):
    """Raised when a path or body identifier is not a valid UUID."""

    def __init__(self, field_name: str = "id") -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message="Invalid identifier format",
            details={field_name: ["Must be a valid UUID."]},
        )
