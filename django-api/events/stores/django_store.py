"""Django ORM implementation of the EventStore."""

from dataclasses import asdict, fields
from enum import Enum
from typing import Any
from uuid import UUID

from django.db import IntegrityError, transaction
from django.db.models import Count, ProtectedError, Q

from events import models
from events.domain import (
    Batch,
    BatchId,
    BatchType,
    Capacity,
    Coupon,
    CouponId,
    Discount,
    DiscountType,
    Event,
    EventId,
    EventStatus,
    Kit,
    KitItem,
    KitSize,
    Modality,
    ModalityId,
    Money,
    ShirtSize,
)
from events.domain.commands import BatchDraft, CouponDraft, EventDraft, KitDraft, ModalityDraft
from events.domain.errors import (
    BatchNotFoundError,
    CouponCodeTakenError,
    CouponNotFoundError,
    EventHasRegistrationsError,
    EventNotFoundError,
    InUseError,
    KitAlreadyExistsError,
    KitNotFoundError,
    ModalityNotFoundError,
)
from events.stores.interfaces import EventStore


def _discount(discount_type: str | None, value) -> Discount | None:
    if not discount_type or value is None:
        return None
    return Discount(type=DiscountType(discount_type), value=value)


def to_event(row: models.Event) -> Event:
    return Event(
        id=EventId(row.id),
        organizer_id=row.organizer_id,
        name=row.name,
        slug=row.slug,
        description=row.description,
        short_description=row.short_description,
        event_date=row.event_date,
        registration_start=row.registration_start,
        registration_end=row.registration_end,
        status=EventStatus(row.status),
        location=row.location,
        banner_url=row.banner_url,
        max_registrations=row.max_registrations,
        allow_group_reg=row.allow_group_reg,
        max_group_size=row.max_group_size,
        published_at=row.published_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def to_modality(row: models.Modality) -> Modality:
    return Modality(
        id=ModalityId(row.id),
        event_id=EventId(row.event_id),
        name=row.name,
        description=row.description,
        price=Money(row.price),
        max_slots=Capacity(row.max_slots) if row.max_slots is not None else None,
        sold_slots=row.sold_slots,
        order=row.order,
        active=row.active,
        created_at=row.created_at,
    )


def to_batch(row: models.Batch) -> Batch:
    return Batch(
        id=BatchId(row.id),
        event_id=EventId(row.event_id),
        name=row.name,
        type=BatchType(row.type),
        start_date=row.start_date,
        end_date=row.end_date,
        max_sales=row.max_sales,
        current_sales=row.current_sales,
        price=Money(row.price) if row.price is not None else None,
        discount=_discount(row.discount_type, row.discount_value),
        active=row.active,
        created_at=row.created_at,
    )


def to_coupon(row: models.Coupon) -> Coupon:
    return Coupon(
        id=CouponId(row.id),
        event_id=EventId(row.event_id),
        code=row.code,
        discount=Discount(type=DiscountType(row.discount_type), value=row.discount_value),
        start_date=row.start_date,
        end_date=row.end_date,
        max_uses=row.max_uses,
        current_uses=row.current_uses,
        modality_ids=tuple(ModalityId.from_string(value) for value in row.modality_ids or ()),
        min_purchase=Money(row.min_purchase) if row.min_purchase is not None else None,
        active=row.active,
        created_at=row.created_at,
    )


def to_kit(row: models.Kit) -> Kit:
    return Kit(
        id=row.id,
        event_id=EventId(row.event_id),
        items=tuple(KitItem(name=item["name"], included=item.get("included", True)) for item in row.items or ()),
        include_shirt=row.include_shirt,
        shirt_required=row.shirt_required,
        sizes=tuple(
            KitSize(size=ShirtSize(size.size), stock=size.stock, sold=size.sold)
            for size in sorted(row.sizes.all(), key=lambda s: list(ShirtSize).index(ShirtSize(s.size)))
        ),
    )


def _columns(values: dict[str, Any]) -> dict[str, Any]:
    """Turn domain values (enums, id tuples, kit items) into column values."""
    columns = {}
    for key, value in values.items():
        if isinstance(value, Enum):
            value = value.value
        elif key == "modality_ids":
            value = [str(item) for item in value]
        elif key == "items":
            value = [asdict(item) for item in value]
        columns[key] = value
    return columns


def _draft_columns(draft) -> dict[str, Any]:
    return _columns({field.name: getattr(draft, field.name) for field in fields(draft)})


class DjangoEventStore(EventStore):
    """Relational event store using Django ORM."""

    def list_events(
        self,
        organizer_id: UUID,
        status: EventStatus | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[Event], int]:
        queryset = models.Event.objects.filter(organizer_id=organizer_id)
        if status is not None:
            queryset = queryset.filter(status=status.value)
        if search:
            queryset = queryset.filter(name__icontains=search)
        total = queryset.count()
        rows = queryset.order_by("-created_at")[offset : offset + limit]
        return [to_event(row) for row in rows], total

    def list_organizer_events(self, organizer_id: UUID) -> list[tuple[Event, int]]:
        rows = (
            models.Event.objects.filter(organizer_id=organizer_id)
            .annotate(modality_count=Count("modalities"))
            .order_by("event_date")
        )
        return [(to_event(row), row.modality_count) for row in rows]

    def get_event(self, event_id: EventId) -> Event | None:
        row = models.Event.objects.filter(pk=event_id.value).first()
        return to_event(row) if row else None

    def get_event_by_slug(self, slug: str) -> Event | None:
        row = models.Event.objects.filter(slug=slug).first()
        return to_event(row) if row else None

    def slugs_like(self, base_slug: str) -> set[str]:
        rows = models.Event.objects.filter(Q(slug=base_slug) | Q(slug__startswith=f"{base_slug}-"))
        return set(rows.values_list("slug", flat=True))

    def create_event(self, organizer_id: UUID, slug: str, draft: EventDraft) -> Event:
        row = models.Event.objects.create(organizer_id=organizer_id, slug=slug, **_draft_columns(draft))
        return to_event(row)

    def update_event(self, event_id: EventId, changes: dict[str, Any]) -> Event:
        if changes and not models.Event.objects.filter(pk=event_id.value).update(**_columns(changes)):
            raise EventNotFoundError()
        event = self.get_event(event_id)
        if event is None:
            raise EventNotFoundError()
        return event

    def delete_event(self, event_id: EventId) -> None:
        try:
            with transaction.atomic():
                models.Event.objects.filter(pk=event_id.value).delete()
        except ProtectedError as exc:
            raise EventHasRegistrationsError() from exc

    def list_modalities(self, event_id: EventId, active_only: bool = False) -> list[Modality]:
        queryset = models.Modality.objects.filter(event_id=event_id.value)
        if active_only:
            queryset = queryset.filter(active=True)
        return [to_modality(row) for row in queryset.order_by("order", "created_at")]

    def get_modality(self, modality_id: ModalityId) -> Modality | None:
        row = models.Modality.objects.filter(pk=modality_id.value).first()
        return to_modality(row) if row else None

    def create_modality(self, event_id: EventId, draft: ModalityDraft) -> Modality:
        row = models.Modality.objects.create(event_id=event_id.value, **_draft_columns(draft))
        return to_modality(row)

    def update_modality(self, modality_id: ModalityId, changes: dict[str, Any]) -> Modality:
        if changes and not models.Modality.objects.filter(pk=modality_id.value).update(**_columns(changes)):
            raise ModalityNotFoundError()
        modality = self.get_modality(modality_id)
        if modality is None:
            raise ModalityNotFoundError()
        return modality

    def delete_modality(self, modality_id: ModalityId) -> None:
        try:
            models.Modality.objects.filter(pk=modality_id.value).delete()
        except ProtectedError as exc:
            raise InUseError() from exc

    def list_batches(self, event_id: EventId, active_only: bool = False) -> list[Batch]:
        queryset = models.Batch.objects.filter(event_id=event_id.value)
        if active_only:
            queryset = queryset.filter(active=True)
        return [to_batch(row) for row in queryset.order_by("created_at")]

    def get_batch(self, batch_id: BatchId) -> Batch | None:
        row = models.Batch.objects.filter(pk=batch_id.value).first()
        return to_batch(row) if row else None

    def create_batch(self, event_id: EventId, draft: BatchDraft) -> Batch:
        row = models.Batch.objects.create(event_id=event_id.value, **_draft_columns(draft))
        return to_batch(row)

    def update_batch(self, batch_id: BatchId, changes: dict[str, Any]) -> Batch:
        if changes and not models.Batch.objects.filter(pk=batch_id.value).update(**_columns(changes)):
            raise BatchNotFoundError()
        batch = self.get_batch(batch_id)
        if batch is None:
            raise BatchNotFoundError()
        return batch

    def delete_batch(self, batch_id: BatchId) -> None:
        try:
            models.Batch.objects.filter(pk=batch_id.value).delete()
        except ProtectedError as exc:
            raise InUseError() from exc

    def list_coupons(self, event_id: EventId) -> list[Coupon]:
        return [to_coupon(row) for row in models.Coupon.objects.filter(event_id=event_id.value)]

    def get_coupon(self, coupon_id: CouponId) -> Coupon | None:
        row = models.Coupon.objects.filter(pk=coupon_id.value).first()
        return to_coupon(row) if row else None

    def get_coupon_by_code(self, event_id: EventId, code: str) -> Coupon | None:
        row = models.Coupon.objects.filter(event_id=event_id.value, code__iexact=code.strip()).first()
        return to_coupon(row) if row else None

    def create_coupon(self, event_id: EventId, draft: CouponDraft) -> Coupon:
        try:
            with transaction.atomic():
                row = models.Coupon.objects.create(event_id=event_id.value, **_draft_columns(draft))
        except IntegrityError as exc:
            raise CouponCodeTakenError() from exc
        return to_coupon(row)

    def update_coupon(self, coupon_id: CouponId, changes: dict[str, Any]) -> Coupon:
        if changes and not models.Coupon.objects.filter(pk=coupon_id.value).update(**_columns(changes)):
            raise CouponNotFoundError()
        coupon = self.get_coupon(coupon_id)
        if coupon is None:
            raise CouponNotFoundError()
        return coupon

    def delete_coupon(self, coupon_id: CouponId) -> None:
        try:
            models.Coupon.objects.filter(pk=coupon_id.value).delete()
        except ProtectedError as exc:
            raise InUseError() from exc

    def get_kit(self, event_id: EventId) -> Kit | None:
        row = models.Kit.objects.filter(event_id=event_id.value).prefetch_related("sizes").first()
        return to_kit(row) if row else None

    def create_kit(self, event_id: EventId, draft: KitDraft) -> Kit:
        columns = _draft_columns(draft)
        sizes = columns.pop("sizes")
        try:
            with transaction.atomic():
                row = models.Kit.objects.create(event_id=event_id.value, **columns)
                models.KitSize.objects.bulk_create(
                    models.KitSize(kit=row, size=size.value, stock=stock) for size, stock in sizes.items()
                )
        except IntegrityError as exc:
            raise KitAlreadyExistsError() from exc
        return self.get_kit(event_id)

    def update_kit(self, event_id: EventId, changes: dict[str, Any]) -> Kit:
        changes = dict(changes)
        sizes = changes.pop("sizes", None)
        with transaction.atomic():
            row = models.Kit.objects.select_for_update().filter(event_id=event_id.value).first()
            if row is None:
                raise KitNotFoundError()
            if changes:
                models.Kit.objects.filter(pk=row.pk).update(**_columns(changes))
            for size, stock in (sizes or {}).items():
                models.KitSize.objects.update_or_create(kit=row, size=size.value, defaults={"stock": stock})
        return self.get_kit(event_id)
