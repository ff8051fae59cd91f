"""Validated inputs for creating catalog entities.

Updates are passed as partial ``dict`` changes keyed by the same field names.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from events.domain.models import BatchType, EventStatus, KitItem, ShirtSize
from events.domain.value_objects import DiscountType


@dataclass(frozen=True)
class EventDraft:
    name: str
    description: str
    event_date: datetime
    registration_start: datetime
    registration_end: datetime
    short_description: str | None = None
    location: dict[str, Any] | None = None
    banner_url: str | None = None
    max_registrations: int | None = None
    allow_group_reg: bool = True
    max_group_size: int = 10
    status: EventStatus = EventStatus.DRAFT


@dataclass(frozen=True)
class ModalityDraft:
    name: str
    price: Decimal
    description: str | None = None
    max_slots: int | None = None
    order: int = 0
    active: bool = True


@dataclass(frozen=True)
class BatchDraft:
    name: str
    type: BatchType
    start_date: datetime | None = None
    end_date: datetime | None = None
    max_sales: int | None = None
    price: Decimal | None = None
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = None
    active: bool = True


@dataclass(frozen=True)
class CouponDraft:
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    start_date: datetime
    end_date: datetime
    max_uses: int | None = None
    modality_ids: tuple[UUID, ...] = ()
    min_purchase: Decimal | None = None
    active: bool = True


@dataclass(frozen=True)
class KitDraft:
    items: tuple[KitItem, ...] = ()
    include_shirt: bool = True
    shirt_required: bool = False
    sizes: dict[ShirtSize, int] = field(default_factory=dict)


@dataclass(frozen=True)
class EventPage:
    """One page of an organizer's event list."""

    items: tuple
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0
