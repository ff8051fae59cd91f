"""Catalog service - modalities, pricing batches, coupons and the kit of an event.

Every operation is scoped to an event owned by the calling organizer.
Counters (sold slots, batch sales, coupon uses, kit stock sold) are never
written here.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

import structlog

from common.errors import ErrorCode, ValidationError
from common.ids import parse_id
from events.domain import (
    Batch,
    BatchId,
    BatchType,
    Coupon,
    CouponId,
    DiscountType,
    Event,
    Kit,
    Modality,
    ModalityId,
)
from events.domain.commands import BatchDraft, CouponDraft, KitDraft, ModalityDraft
from events.domain.errors import (
    BatchNotFoundError,
    CouponNotFoundError,
    KitNotFoundError,
    ModalityNotFoundError,
)
from events.services.event_service import EventService
from events.stores.interfaces import EventStore

logger = structlog.get_logger(__name__)


def invalid(field: str, message: str) -> ValidationError:
    return ValidationError(code=ErrorCode.VALIDATION_ERROR, message=message, details={field: [message]})


def check_discount(discount_type: DiscountType | None, discount_value: Decimal | None) -> None:
    if (discount_type is None) != (discount_value is None):
        raise invalid("discount_value", "Discount type and value must be given together")
    if discount_type is DiscountType.PERCENTAGE and discount_value > 100:
        raise invalid("discount_value", "Percentage discount cannot exceed 100")


def check_batch_rules(
    batch_type: BatchType,
    start_date: datetime | None,
    end_date: datetime | None,
    max_sales: int | None,
    price: Decimal | None,
    discount_type: DiscountType | None,
    discount_value: Decimal | None,
) -> None:
    if batch_type is BatchType.DATE and (start_date is None or end_date is None):
        raise invalid("start_date", "Date batches need a start and an end date")
    if start_date is not None and end_date is not None and start_date >= end_date:
        raise invalid("end_date", "End date must be after the start date")
    if batch_type is BatchType.VOLUME and not max_sales:
        raise invalid("max_sales", "Volume batches need a sales limit")
    if price is not None and discount_type is not None:
        raise invalid("price", "Use either a batch price or a discount")
    check_discount(discount_type, discount_value)


class CatalogService:
    """Service for the purchasable catalog of an event."""

    def __init__(self, store: EventStore, events: EventService) -> None:
        self._store = store
        self._events = events

    # Modalities

    def list_modalities(self, organizer_id: UUID, event_id: str) -> list[Modality]:
        event = self._events.get_event(organizer_id, event_id)
        return self._store.list_modalities(event.id)

    def create_modality(self, organizer_id: UUID, event_id: str, draft: ModalityDraft) -> Modality:
        event = self._events.get_event(organizer_id, event_id)
        modality = self._store.create_modality(event.id, draft)
        logger.info("modality_created", event_id=str(event.id), modality_id=str(modality.id))
        return modality

    def update_modality(
        self, organizer_id: UUID, event_id: str, modality_id: str, changes: dict[str, Any]
    ) -> Modality:
        modality = self._owned_modality(organizer_id, event_id, modality_id)
        max_slots = changes.get("max_slots")
        if max_slots is not None and max_slots < modality.sold_slots:
            raise invalid("max_slots", f"Capacity cannot be below the {modality.sold_slots} slots already sold")
        return self._store.update_modality(modality.id, changes)

    def delete_modality(self, organizer_id: UUID, event_id: str, modality_id: str) -> None:
        modality = self._owned_modality(organizer_id, event_id, modality_id)
        self._store.delete_modality(modality.id)
        logger.info("modality_deleted", modality_id=str(modality.id))

    # Batches

    def list_batches(self, organizer_id: UUID, event_id: str) -> list[Batch]:
        event = self._events.get_event(organizer_id, event_id)
        return self._store.list_batches(event.id)

    def create_batch(self, organizer_id: UUID, event_id: str, draft: BatchDraft) -> Batch:
        event = self._events.get_event(organizer_id, event_id)
        check_batch_rules(
            draft.type,
            draft.start_date,
            draft.end_date,
            draft.max_sales,
            draft.price,
            draft.discount_type,
            draft.discount_value,
        )
        batch = self._store.create_batch(event.id, draft)
        logger.info("batch_created", event_id=str(event.id), batch_id=str(batch.id))
        return batch

    def update_batch(self, organizer_id: UUID, event_id: str, batch_id: str, changes: dict[str, Any]) -> Batch:
        event = self._events.get_event(organizer_id, event_id)
        batch = self._store.get_batch(parse_id(BatchId, batch_id, "batch_id"))
        if batch is None or batch.event_id != event.id:
            raise BatchNotFoundError()

        def merged(name: str, current: Any) -> Any:
            return changes[name] if name in changes else current

        max_sales = merged("max_sales", batch.max_sales)
        if max_sales is not None and max_sales < batch.current_sales:
            raise invalid("max_sales", f"Limit cannot be below the {batch.current_sales} sales already made")
        check_batch_rules(
            merged("type", batch.type),
            merged("start_date", batch.start_date),
            merged("end_date", batch.end_date),
            max_sales,
            merged("price", batch.price.amount if batch.price else None),
            merged("discount_type", batch.discount.type if batch.discount else None),
            merged("discount_value", batch.discount.value if batch.discount else None),
        )
        return self._store.update_batch(batch.id, changes)

    def delete_batch(self, organizer_id: UUID, event_id: str, batch_id: str) -> None:
        event = self._events.get_event(organizer_id, event_id)
        batch = self._store.get_batch(parse_id(BatchId, batch_id, "batch_id"))
        if batch is None or batch.event_id != event.id:
            raise BatchNotFoundError()
        self._store.delete_batch(batch.id)

    # Coupons

    def list_coupons(self, organizer_id: UUID, event_id: str) -> list[Coupon]:
        event = self._events.get_event(organizer_id, event_id)
        return self._store.list_coupons(event.id)

    def create_coupon(self, organizer_id: UUID, event_id: str, draft: CouponDraft) -> Coupon:
        event = self._events.get_event(organizer_id, event_id)
        if draft.start_date >= draft.end_date:
            raise invalid("end_date", "End date must be after the start date")
        check_discount(draft.discount_type, draft.discount_value)
        self._check_modalities(event, draft.modality_ids)
        coupon = self._store.create_coupon(event.id, draft)
        logger.info("coupon_created", event_id=str(event.id), coupon_id=str(coupon.id))
        return coupon

    def update_coupon(self, organizer_id: UUID, event_id: str, coupon_id: str, changes: dict[str, Any]) -> Coupon:
        coupon = self._owned_coupon(organizer_id, event_id, coupon_id)
        start = changes.get("start_date", coupon.start_date)
        end = changes.get("end_date", coupon.end_date)
        if start >= end:
            raise invalid("end_date", "End date must be after the start date")
        check_discount(
            changes.get("discount_type", coupon.discount.type),
            changes.get("discount_value", coupon.discount.value),
        )
        max_uses = changes.get("max_uses")
        if max_uses is not None and max_uses < coupon.current_uses:
            raise invalid("max_uses", f"Limit cannot be below the {coupon.current_uses} uses already made")
        if "modality_ids" in changes:
            event = self._events.get_event(organizer_id, event_id)
            self._check_modalities(event, changes["modality_ids"])
        return self._store.update_coupon(coupon.id, changes)

    def delete_coupon(self, organizer_id: UUID, event_id: str, coupon_id: str) -> None:
        coupon = self._owned_coupon(organizer_id, event_id, coupon_id)
        self._store.delete_coupon(coupon.id)

    # Kit

    def get_kit(self, organizer_id: UUID, event_id: str) -> Kit:
        event = self._events.get_event(organizer_id, event_id)
        kit = self._store.get_kit(event.id)
        if kit is None:
            raise KitNotFoundError()
        return kit

    def create_kit(self, organizer_id: UUID, event_id: str, draft: KitDraft) -> Kit:
        event = self._events.get_event(organizer_id, event_id)
        return self._store.create_kit(event.id, draft)

    def update_kit(self, organizer_id: UUID, event_id: str, changes: dict[str, Any]) -> Kit:
        event = self._events.get_event(organizer_id, event_id)
        return self._store.update_kit(event.id, changes)

    def _owned_modality(self, organizer_id: UUID, event_id: str, modality_id: str) -> Modality:
        event = self._events.get_event(organizer_id, event_id)
        modality = self._store.get_modality(parse_id(ModalityId, modality_id, "modality_id"))
        if modality is None or modality.event_id != event.id:
            raise ModalityNotFoundError()
        return modality

    def _owned_coupon(self, organizer_id: UUID, event_id: str, coupon_id: str) -> Coupon:
        event = self._events.get_event(organizer_id, event_id)
        coupon = self._store.get_coupon(parse_id(CouponId, coupon_id, "coupon_id"))
        if coupon is None or coupon.event_id != event.id:
            raise CouponNotFoundError()
        return coupon

    def _check_modalities(self, event: Event, modality_ids: tuple[UUID, ...] | list[UUID]) -> None:
        known = {modality.id.value for modality in self._store.list_modalities(event.id)}
        unknown = [str(modality_id) for modality_id in modality_ids if modality_id not in known]
        if unknown:
            raise invalid("modality_ids", f"Unknown modalities for this event: {', '.join(unknown)}")
