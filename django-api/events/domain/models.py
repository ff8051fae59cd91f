"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in events/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from events.domain.value_objects import (
    BatchId,
    Capacity,
    CouponId,
    Discount,
    EventId,
    ModalityId,
    Money,
)


class EventStatus(Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    PAUSED = "PAUSED"
    SOLD_OUT = "SOLD_OUT"
    FINISHED = "FINISHED"
    CANCELLED = "CANCELLED"


class BatchType(Enum):
    DATE = "DATE"
    VOLUME = "VOLUME"


class ShirtSize(Enum):
    PP = "PP"
    P = "P"
    M = "M"
    G = "G"
    GG = "GG"
    XG = "XG"


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event."""

    id: EventId
    organizer_id: UUID
    name: str
    slug: str
    description: str
    short_description: str | None
    event_date: datetime
    registration_start: datetime
    registration_end: datetime
    status: EventStatus
    location: dict[str, Any] | None
    banner_url: str | None
    max_registrations: int | None
    allow_group_reg: bool
    max_group_size: int
    published_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @property
    def is_published(self) -> bool:
        return self.status is EventStatus.PUBLISHED

    def registration_open(self, now: datetime) -> bool:
        return self.registration_start <= now <= self.registration_end


@dataclass(frozen=True)
class Modality:
    """A ticket category within an event, with a base price and optional capacity."""

    id: ModalityId
    event_id: EventId
    name: str
    description: str | None
    price: Money
    max_slots: Capacity | None
    sold_slots: int
    order: int
    active: bool
    created_at: datetime

    @property
    def available_slots(self) -> int | None:
        return None if self.max_slots is None else self.max_slots.remaining(self.sold_slots)

    def has_slots(self, quantity: int = 1) -> bool:
        return self.max_slots is None or self.max_slots.admits(self.sold_slots, quantity)


@dataclass(frozen=True)
class Batch:
    """Pricing tier bounded by a date window and/or a sales cap."""

    id: BatchId
    event_id: EventId
    name: str
    type: BatchType
    start_date: datetime | None
    end_date: datetime | None
    max_sales: int | None
    current_sales: int
    price: Money | None
    discount: Discount | None
    active: bool
    created_at: datetime

    def in_window(self, now: datetime) -> bool:
        if self.start_date is None and self.end_date is None:
            return self.type is BatchType.VOLUME
        if self.start_date is not None and now < self.start_date:
            return False
        if self.end_date is not None and now > self.end_date:
            return False
        return True

    def has_stock(self, quantity: int = 1) -> bool:
        return self.max_sales is None or self.current_sales + quantity <= self.max_sales

    def resolve_price(self, base_price: Money) -> Money:
        if self.price is not None:
            return self.price
        if self.discount is not None:
            return base_price.minus(self.discount.amount_off(base_price))
        return base_price


@dataclass(frozen=True)
class Coupon:
    id: CouponId
    event_id: EventId
    code: str
    discount: Discount
    start_date: datetime
    end_date: datetime
    max_uses: int | None
    current_uses: int
    modality_ids: tuple[ModalityId, ...]
    min_purchase: Money | None
    active: bool
    created_at: datetime

    def in_window(self, now: datetime) -> bool:
        return self.start_date <= now <= self.end_date

    def has_uses(self, quantity: int = 1) -> bool:
        return self.max_uses is None or self.current_uses + quantity <= self.max_uses

    def applies_to(self, modality_id: ModalityId) -> bool:
        return not self.modality_ids or modality_id in self.modality_ids


@dataclass(frozen=True)
class KitItem:
    name: str
    included: bool = True


@dataclass(frozen=True)
class KitSize:
    size: ShirtSize
    stock: int
    sold: int = 0


@dataclass(frozen=True)
class Kit:
    """Race kit for an event; shirt stock is tracked per size."""

    id: UUID
    event_id: EventId
    items: tuple[KitItem, ...]
    include_shirt: bool
    shirt_required: bool
    sizes: tuple[KitSize, ...] = field(default=())

    def size(self, size: ShirtSize) -> KitSize | None:
        return next((entry for entry in self.sizes if entry.size is size), None)


@dataclass(frozen=True)
class EventDetail:
    """Public event page: the event with its active modalities, current batch and kit."""

    event: Event
    modalities: tuple[Modality, ...]
    current_batch: Batch | None
    kit: Kit | None
    registration_open: bool
