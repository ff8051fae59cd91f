"""Domain representations of the two principal kinds.

Django ORM models are in accounts/models.py (persistence layer).
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID


class PrincipalKind(Enum):
    """Who a token was issued to."""

    USER = "user"
    PARTICIPANT = "participant"


class Gender(Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"
    NOT_INFORMED = "NOT_INFORMED"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller attached to ``request.user``."""

    id: UUID
    kind: PrincipalKind
    email: str

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_organizer(self) -> bool:
        return self.kind is PrincipalKind.USER

    @property
    def is_participant(self) -> bool:
        return self.kind is PrincipalKind.PARTICIPANT


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class PaymentConnection:
    """Organizer's connected payment provider account (tokens encrypted)."""

    connected: bool
    provider_user_id: str | None
    encrypted_access_token: str | None
    encrypted_refresh_token: str | None
    expires_at: datetime | None


@dataclass(frozen=True)
class Organizer:
    """Domain representation of an organizer account."""

    id: UUID
    email: str
    full_name: str
    cpf_cnpj: str
    phone: str
    payment: PaymentConnection
    created_at: datetime


@dataclass(frozen=True)
class Participant:
    """Domain representation of an attendee."""

    id: UUID
    email: str
    full_name: str
    cpf: str
    phone: str
    birth_date: date | None
    gender: Gender
    has_password: bool
    created_at: datetime


@dataclass(frozen=True)
class OrganizerSignup:
    email: str
    password: str
    full_name: str
    cpf_cnpj: str
    phone: str


@dataclass(frozen=True)
class ParticipantProfile:
    """Participant data as typed at checkout or sign-up."""

    email: str
    full_name: str
    cpf: str
    phone: str
    birth_date: date | None = None
    gender: Gender = Gender.NOT_INFORMED
