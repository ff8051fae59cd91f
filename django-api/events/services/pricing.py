"""Pricing engine.

``quote_price`` is a pure function over catalog snapshots and an explicit
``now``. ``PricingService`` loads those snapshots from the EventStore; it never
writes. Counters only move when a payment is confirmed.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable

import structlog
from django.utils import timezone

from common.ids import parse_id
from events.domain import Batch, BatchId, Coupon, CouponId, Event, EventId, Modality, ModalityId, Money
from events.domain.errors import (
    CouponExhaustedError,
    CouponExpiredError,
    CouponInactiveError,
    CouponMinimumPurchaseError,
    CouponNotApplicableError,
    CouponNotFoundError,
    EventNotFoundError,
    EventNotOpenError,
    ModalityNotFoundError,
    SoldOutError,
)
from events.stores.interfaces import EventStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PriceQuote:
    """Price of ``quantity`` registrations in one modality."""

    modality_id: ModalityId
    quantity: int
    base_price: Money
    batch_discount: Money
    coupon_discount: Money
    unit_price: Money
    subtotal: Money
    platform_fee: Money
    total: Money
    platform_fee_percent: Decimal = Decimal("0")
    applied_batch_id: BatchId | None = None
    applied_coupon_id: CouponId | None = None
    batch_name: str | None = None
    coupon_code: str | None = None

    @property
    def unit_platform_fee(self) -> Money:
        return self.unit_price.percent(self.platform_fee_percent)

    @property
    def unit_total(self) -> Money:
        return self.unit_price + self.unit_platform_fee


def _batch_order(batch: Batch) -> tuple:
    # earliest end first, open-ended last; then earliest start, then creation
    return (
        batch.end_date is None,
        batch.end_date.timestamp() if batch.end_date else 0.0,
        batch.start_date is not None,
        batch.start_date.timestamp() if batch.start_date else 0.0,
        batch.created_at.timestamp(),
    )


def resolve_active_batch(batches: list[Batch], now: datetime, quantity: int = 1) -> Batch | None:
    """Return the batch that prices a sale at ``now``, if any.

    Candidates are active, inside their date window and able to absorb
    ``quantity`` more sales. The one closest to expiring wins.
    """
    candidates = [
        batch for batch in batches if batch.active and batch.in_window(now) and batch.has_stock(quantity)
    ]
    if not candidates:
        return None
    return min(candidates, key=_batch_order)


def check_coupon(coupon: Coupon, modality_id: ModalityId, purchase: Money, now: datetime, quantity: int = 1) -> None:
    """Raise the domain error explaining why ``coupon`` cannot be used, if any."""
    if not coupon.active:
        raise CouponInactiveError()
    if not coupon.in_window(now):
        raise CouponExpiredError()
    if not coupon.has_uses(quantity):
        raise CouponExhaustedError()
    if not coupon.applies_to(modality_id):
        raise CouponNotApplicableError()
    if coupon.min_purchase is not None and purchase.amount < coupon.min_purchase.amount:
        raise CouponMinimumPurchaseError(str(coupon.min_purchase))


def quote_price(
    event: Event,
    modality: Modality,
    batches: list[Batch],
    now: datetime,
    coupon: Coupon | None = None,
    quantity: int = 1,
    platform_fee_percent: Decimal = Decimal("0"),
) -> PriceQuote:
    """Compute the price of ``quantity`` registrations.

    Raises:
        EventNotOpenError: If the event is not published.
        ModalityNotFoundError: If the modality is inactive.
        SoldOutError: If the modality cannot take ``quantity`` more registrations.
        CouponInactiveError, CouponExpiredError, CouponExhaustedError,
        CouponNotApplicableError, CouponMinimumPurchaseError: If the coupon is unusable.
    """
    if quantity < 1:
        raise ValueError("quantity must be positive")
    if not event.is_published:
        raise EventNotOpenError()
    if not modality.active:
        raise ModalityNotFoundError()
    if not modality.has_slots(quantity):
        raise SoldOutError()

    base_price = modality.price
    batch = resolve_active_batch(batches, now, quantity)
    batch_price = batch.resolve_price(base_price) if batch else base_price

    coupon_discount = Money.zero()
    if coupon is not None:
        check_coupon(coupon, modality.id, batch_price.times(quantity), now, quantity)
        coupon_discount = coupon.discount.amount_off(batch_price)

    unit_price = batch_price.minus(coupon_discount)
    subtotal = unit_price.times(quantity)
    # fee is charged per registration so the group total equals the sum of its parts
    platform_fee = unit_price.percent(platform_fee_percent).times(quantity)

    return PriceQuote(
        modality_id=modality.id,
        quantity=quantity,
        base_price=base_price,
        batch_discount=base_price.minus(batch_price),
        coupon_discount=coupon_discount,
        unit_price=unit_price,
        subtotal=subtotal,
        platform_fee=platform_fee,
        total=subtotal + platform_fee,
        platform_fee_percent=platform_fee_percent,
        applied_batch_id=batch.id if batch else None,
        applied_coupon_id=coupon.id if coupon else None,
        batch_name=batch.name if batch else None,
        coupon_code=coupon.code if coupon else None,
    )


class PricingService:
    """Reads catalog snapshots and prices registrations."""

    def __init__(
        self,
        store: EventStore,
        clock: Callable[[], datetime] = timezone.now,
        platform_fee_percent: Decimal = Decimal("0"),
    ) -> None:
        self._store = store
        self._clock = clock
        self._platform_fee_percent = platform_fee_percent

    def compute_price(
        self,
        modality_id: ModalityId | str,
        coupon_code: str | None = None,
        quantity: int = 1,
        event_id: EventId | str | None = None,
    ) -> PriceQuote:
        """Price ``quantity`` registrations in a modality, optionally with a coupon.

        When ``event_id`` is given the modality must belong to that event.

        Raises:
            InvalidIdError: If an id is malformed.
            ModalityNotFoundError: If the modality does not exist (in that event).
            CouponNotFoundError: If no coupon with that code exists in the event.
            plus everything ``quote_price`` raises.
        """
        if not isinstance(modality_id, ModalityId):
            modality_id = parse_id(ModalityId, modality_id, "modality_id")
        if event_id is not None and not isinstance(event_id, EventId):
            event_id = parse_id(EventId, event_id, "event_id")

        modality = self._store.get_modality(modality_id)
        if modality is None or (event_id is not None and modality.event_id != event_id):
            raise ModalityNotFoundError()
        event = self._store.get_event(modality.event_id)
        if event is None:
            raise EventNotFoundError()

        coupon = None
        if coupon_code:
            coupon = self._store.get_coupon_by_code(event.id, coupon_code)
            if coupon is None:
                raise CouponNotFoundError()

        quote = quote_price(
            event=event,
            modality=modality,
            batches=self._store.list_batches(event.id, active_only=True),
            now=self._clock(),
            coupon=coupon,
            quantity=quantity,
            platform_fee_percent=self._platform_fee_percent,
        )
        logger.debug(
            "price_quoted",
            modality_id=str(modality_id),
            quantity=quantity,
            total=str(quote.total),
            batch_id=str(quote.applied_batch_id) if quote.applied_batch_id else None,
        )
        return quote
