"""Typed inputs for the registration lifecycle."""

from dataclasses import dataclass, field
from uuid import UUID

from accounts.domain import ParticipantProfile
from events.domain import BatchId, CouponId, EventId, ModalityId, Money, ShirtSize
from events.services.pricing import PriceQuote
from registrations.domain.models import Registration


@dataclass(frozen=True)
class RegistrationExtras:
    """Optional attendee data collected on the registration form."""

    emergency_contact: str | None = None
    emergency_phone: str | None = None
    medical_info: str | None = None
    team_name: str | None = None
    terms_accepted: bool = False
    privacy_accepted: bool = False


@dataclass(frozen=True)
class RegistrationRequest:
    """A logged-in participant registering themselves."""

    participant_id: UUID
    event_id: str
    modality_id: str
    coupon_code: str | None = None
    shirt_size: ShirtSize | None = None
    extras: RegistrationExtras = field(default_factory=RegistrationExtras)


@dataclass(frozen=True)
class Attendee:
    profile: ParticipantProfile
    shirt_size: ShirtSize | None = None


@dataclass(frozen=True)
class GroupRequest:
    """A checkout for one or more attendees paid by one buyer.

    The buyer defaults to the first attendee.
    """

    event_id: str
    modality_id: str
    attendees: tuple[Attendee, ...]
    coupon_code: str | None = None
    buyer: ParticipantProfile | None = None
    extras: RegistrationExtras = field(default_factory=RegistrationExtras)


@dataclass(frozen=True)
class NewRegistration:
    """A priced, not yet numbered registration handed to the store."""

    participant_id: UUID
    buyer_id: UUID
    modality_id: ModalityId
    coupon_id: CouponId | None
    batch_id: BatchId | None
    base_price: Money
    discount: Money
    subtotal: Money
    platform_fee: Money
    total: Money
    shirt_size: ShirtSize | None
    extras: RegistrationExtras


@dataclass(frozen=True)
class GroupReceipt:
    """Registrations created by one checkout, sharing an order reference."""

    event_id: EventId
    order_reference: UUID
    registrations: tuple[Registration, ...]
    quote: PriceQuote

    @property
    def primary(self) -> Registration:
        return min(self.registrations, key=lambda registration: registration.registration_number)


@dataclass(frozen=True)
class RegistrationReceipt:
    registration: Registration
    quote: PriceQuote
