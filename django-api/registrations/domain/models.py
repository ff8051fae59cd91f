"""Domain models for registrations.

Django ORM models are in registrations/models.py (persistence layer).
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Self
from uuid import UUID

from accounts.domain import Participant
from events.domain import BatchId, CouponId, EventId, ModalityId, Money, ShirtSize


class RegistrationStatus(Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELED = "CANCELED"
    EXPIRED = "EXPIRED"


class PaymentStatus(Enum):
    """Payment state mirrored from the provider."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REFUNDED = "refunded"


@dataclass(frozen=True)
class RegistrationId:
    """Unique identifier for a Registration."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Registration:
    """One attendee's place in a modality, and what was charged for it."""

    id: RegistrationId
    event_id: EventId
    modality_id: ModalityId
    participant_id: UUID
    buyer_id: UUID
    coupon_id: CouponId | None
    batch_id: BatchId | None
    registration_number: int
    order_reference: UUID
    status: RegistrationStatus
    payment_status: PaymentStatus
    payment_id: str | None
    preference_id: str | None
    base_price: Money
    discount: Money
    subtotal: Money
    platform_fee: Money
    total: Money
    provider_fee: Money | None
    payment_method: str | None
    shirt_size: ShirtSize | None
    emergency_contact: str | None
    emergency_phone: str | None
    medical_info: str | None
    team_name: str | None
    terms_accepted: bool
    privacy_accepted: bool
    inventory_committed: bool
    cancel_reason: str | None
    confirmed_at: datetime | None
    canceled_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status in (RegistrationStatus.PENDING, RegistrationStatus.CONFIRMED)


@dataclass(frozen=True)
class RegistrationDetail:
    """A registration with the names a listing needs."""

    registration: Registration
    participant: Participant
    event_name: str
    event_slug: str
    event_date: datetime
    modality_name: str
    coupon_code: str | None = None


@dataclass(frozen=True)
class RegistrationSummary:
    """Counts and revenue over an event's registrations."""

    total: int
    pending: int
    confirmed: int
    canceled: int
    expired: int
    revenue: Money


@dataclass(frozen=True)
class KnownParticipant:
    """A participant with the shirt size of their latest registration."""

    participant: Participant
    shirt_size: ShirtSize | None


@dataclass(frozen=True)
class Alert:
    level: str
    message: str


@dataclass(frozen=True)
class UpcomingEvent:
    id: EventId
    name: str
    event_date: datetime
    registrations: int


@dataclass(frozen=True)
class DashboardStats:
    """Organizer-wide totals.

    Revenue counts confirmed registrations at their subtotal (what the
    organizer charges, without the platform fee); provider fees are summed
    once per payment.
    """

    events_total: int
    events_published: int
    events_draft: int
    registrations: RegistrationSummary
    registrations_recent: int
    gross_revenue: Money
    provider_fees: Money
    net_revenue: Money
    upcoming_event: UpcomingEvent | None
    alerts: tuple[Alert, ...]
