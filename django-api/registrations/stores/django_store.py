"""Django ORM implementation of the RegistrationStore.

Inventory is committed with row locks taken in a fixed order (modality,
batch, coupon, kit size; by primary key within each) so concurrent
confirmations cannot deadlock or oversell.
"""

from collections import Counter
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from django.db import IntegrityError, transaction
from django.db.models import F, IntegerField, Max, Q, Value
from django.db.models.functions import Coalesce, Greatest

from accounts.stores.django_store import to_participant
from common.db import retry_on_transient_error
from events import models as catalog
from events.domain import BatchId, CouponId, EventId, ModalityId, Money, ShirtSize
from events.domain.errors import (
    BatchSoldOutError,
    CouponExhaustedError,
    EventNotFoundError,
    ShirtSizeSoldOutError,
    SoldOutError,
)
from registrations import models
from registrations.domain import (
    PaymentStatus,
    Registration,
    RegistrationDetail,
    RegistrationId,
    RegistrationStatus,
)
from registrations.domain.commands import NewRegistration
from registrations.domain.errors import RegistrationNumberConflictError
from registrations.stores.interfaces import RegistrationStore

CONFIRMABLE = [RegistrationStatus.PENDING.value, RegistrationStatus.EXPIRED.value]
REJECTION_REASON = "PAYMENT_REJECTED"


def to_registration(row: models.Registration) -> Registration:
    return Registration(
        id=RegistrationId(row.id),
        event_id=EventId(row.event_id),
        modality_id=ModalityId(row.modality_id),
        participant_id=row.participant_id,
        buyer_id=row.buyer_id,
        coupon_id=CouponId(row.coupon_id) if row.coupon_id else None,
        batch_id=BatchId(row.batch_id) if row.batch_id else None,
        registration_number=row.registration_number,
        order_reference=row.order_reference,
        status=RegistrationStatus(row.status),
        payment_status=PaymentStatus(row.payment_status),
        payment_id=row.payment_id,
        preference_id=row.preference_id,
        base_price=Money(row.base_price),
        discount=Money(row.discount),
        subtotal=Money(row.subtotal),
        platform_fee=Money(row.platform_fee),
        total=Money(row.total),
        provider_fee=Money(row.provider_fee) if row.provider_fee is not None else None,
        payment_method=row.payment_method,
        shirt_size=ShirtSize(row.shirt_size) if row.shirt_size else None,
        emergency_contact=row.emergency_contact,
        emergency_phone=row.emergency_phone,
        medical_info=row.medical_info,
        team_name=row.team_name,
        terms_accepted=row.terms_accepted,
        privacy_accepted=row.privacy_accepted,
        inventory_committed=row.inventory_committed,
        cancel_reason=row.cancel_reason,
        confirmed_at=row.confirmed_at,
        canceled_at=row.canceled_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def to_detail(row: models.Registration) -> RegistrationDetail:
    return RegistrationDetail(
        registration=to_registration(row),
        participant=to_participant(row.participant),
        event_name=row.event.name,
        event_slug=row.event.slug,
        event_date=row.event.event_date,
        modality_name=row.modality.name,
        coupon_code=row.coupon.code if row.coupon_id else None,
    )


def _row(event_id: EventId, order_reference: UUID, number: int, entry: NewRegistration) -> models.Registration:
    extras = entry.extras
    return models.Registration(
        event_id=event_id.value,
        modality_id=entry.modality_id.value,
        participant_id=entry.participant_id,
        buyer_id=entry.buyer_id,
        coupon_id=entry.coupon_id.value if entry.coupon_id else None,
        batch_id=entry.batch_id.value if entry.batch_id else None,
        registration_number=number,
        order_reference=order_reference,
        base_price=entry.base_price.amount,
        discount=entry.discount.amount,
        subtotal=entry.subtotal.amount,
        platform_fee=entry.platform_fee.amount,
        total=entry.total.amount,
        shirt_size=entry.shirt_size.value if entry.shirt_size else None,
        emergency_contact=extras.emergency_contact,
        emergency_phone=extras.emergency_phone,
        medical_info=extras.medical_info,
        team_name=extras.team_name,
        terms_accepted=extras.terms_accepted,
        privacy_accepted=extras.privacy_accepted,
    )


def _cancel_columns(reason: str, now: datetime) -> dict:
    return {
        "status": RegistrationStatus.CANCELED.value,
        "cancel_reason": Coalesce(F("cancel_reason"), Value(reason)),
        "canceled_at": Coalesce(F("canceled_at"), Value(now)),
    }


class DjangoRegistrationStore(RegistrationStore):
    """Relational registration store using Django ORM."""

    @retry_on_transient_error
    def create_registrations(
        self, event_id: EventId, order_reference: UUID, entries: list[NewRegistration]
    ) -> list[Registration]:
        try:
            with transaction.atomic():
                if not catalog.Event.objects.select_for_update().filter(pk=event_id.value).exists():
                    raise EventNotFoundError()
                last = models.Registration.objects.filter(event_id=event_id.value).aggregate(
                    last=Max("registration_number")
                )["last"] or 0
                rows = [
                    _row(event_id, order_reference, number, entry)
                    for number, entry in enumerate(entries, start=last + 1)
                ]
                models.Registration.objects.bulk_create(rows)
        except IntegrityError as exc:
            raise RegistrationNumberConflictError() from exc
        return self.find_by_order_reference(order_reference)

    def get(self, registration_id: RegistrationId) -> Registration | None:
        row = models.Registration.objects.filter(pk=registration_id.value).first()
        return to_registration(row) if row else None

    def get_detail(self, registration_id: RegistrationId) -> RegistrationDetail | None:
        row = self._details().filter(pk=registration_id.value).first()
        return to_detail(row) if row else None

    def active_participants(self, modality_id: ModalityId, participant_ids: list[UUID]) -> set[UUID]:
        rows = models.Registration.objects.filter(
            modality_id=modality_id.value,
            participant_id__in=participant_ids,
            status__in=[RegistrationStatus.PENDING.value, RegistrationStatus.CONFIRMED.value],
        )
        return set(rows.values_list("participant_id", flat=True))

    def find_by_payment_id(self, payment_id: str) -> list[Registration]:
        rows = models.Registration.objects.filter(payment_id=payment_id).order_by("registration_number")
        return [to_registration(row) for row in rows]

    def find_by_order_reference(self, order_reference: UUID) -> list[Registration]:
        rows = models.Registration.objects.filter(order_reference=order_reference).order_by("registration_number")
        return [to_registration(row) for row in rows]

    def bind_payment(
        self, order_reference: UUID, payment_id: str, reopen_rejected: bool = False
    ) -> list[Registration]:
        rows = models.Registration.objects.filter(order_reference=order_reference)
        with transaction.atomic():
            rows.filter(payment_id__isnull=True).update(payment_id=payment_id)
            if reopen_rejected:
                rows.filter(
                    status=RegistrationStatus.CANCELED.value,
                    payment_status=PaymentStatus.REJECTED.value,
                    cancel_reason=REJECTION_REASON,
                    inventory_committed=False,
                ).exclude(payment_id=payment_id).update(
                    payment_id=payment_id,
                    status=RegistrationStatus.PENDING.value,
                    payment_status=PaymentStatus.PENDING.value,
                    cancel_reason=None,
                    canceled_at=None,
                )
        return self.find_by_payment_id(payment_id)

    def set_preference(self, order_reference: UUID, preference_id: str) -> None:
        models.Registration.objects.filter(order_reference=order_reference).update(preference_id=preference_id)

    @retry_on_transient_error
    def confirm(
        self,
        registration_ids: list[RegistrationId],
        now: datetime,
        payment_method: str | None = None,
        provider_fee: Decimal | None = None,
    ) -> list[Registration]:
        ids = [registration_id.value for registration_id in registration_ids]
        with transaction.atomic():
            rows = list(
                models.Registration.objects.select_for_update()
                .filter(
                    pk__in=ids,
                    status__in=CONFIRMABLE,
                    payment_status=PaymentStatus.PENDING.value,
                )
                .order_by("pk")
            )
            if rows:
                self._commit_inventory(rows)
                columns = {
                    "status": RegistrationStatus.CONFIRMED.value,
                    "payment_status": PaymentStatus.APPROVED.value,
                    "inventory_committed": True,
                    "confirmed_at": now,
                }
                if payment_method:
                    columns["payment_method"] = payment_method
                if provider_fee is not None:
                    columns["provider_fee"] = provider_fee
                models.Registration.objects.filter(pk__in=[row.pk for row in rows]).update(**columns)
        return self._fetch(ids)

    @retry_on_transient_error
    def reverse(
        self, registration_ids: list[RegistrationId], payment_status: PaymentStatus, reason: str, now: datetime
    ) -> list[Registration]:
        ids = [registration_id.value for registration_id in registration_ids]
        with transaction.atomic():
            rows = list(
                models.Registration.objects.select_for_update()
                .filter(pk__in=ids, payment_status=PaymentStatus.APPROVED.value)
                .order_by("pk")
            )
            committed = [row for row in rows if row.inventory_committed]
            if committed:
                self._release_inventory(committed)
            if rows:
                models.Registration.objects.filter(pk__in=[row.pk for row in rows]).update(
                    payment_status=payment_status.value,
                    inventory_committed=False,
                    **_cancel_columns(reason, now),
                )
        return self._fetch(ids)

    def mark_canceled(
        self,
        registration_ids: list[RegistrationId],
        reason: str,
        now: datetime,
        payment_status: PaymentStatus | None = None,
    ) -> list[Registration]:
        ids = [registration_id.value for registration_id in registration_ids]
        columns = _cancel_columns(reason, now)
        if payment_status is not None:
            columns["payment_status"] = payment_status.value
        models.Registration.objects.filter(pk__in=ids, inventory_committed=False).update(**columns)
        return self._fetch(ids)

    def expire_pending(self, created_before: datetime) -> int:
        return models.Registration.objects.filter(
            status=RegistrationStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            created_at__lt=created_before,
        ).update(status=RegistrationStatus.EXPIRED.value)

    def list_for_event(self, event_id: EventId) -> list[RegistrationDetail]:
        rows = self._details().filter(event_id=event_id.value).order_by("registration_number")
        return [to_detail(row) for row in rows]

    def list_for_participant(self, participant_id: UUID) -> list[RegistrationDetail]:
        rows = self._details().filter(Q(participant_id=participant_id) | Q(buyer_id=participant_id))
        return [to_detail(row) for row in rows.order_by("-created_at", "registration_number")]

    def list_for_organizer(
        self,
        organizer_id: UUID,
        event_id: EventId | None = None,
        statuses: list[RegistrationStatus] | None = None,
        created_after: datetime | None = None,
    ) -> list[Registration]:
        rows = models.Registration.objects.filter(event__organizer_id=organizer_id)
        if event_id is not None:
            rows = rows.filter(event_id=event_id.value)
        if statuses:
            rows = rows.filter(status__in=[status.value for status in statuses])
        if created_after is not None:
            rows = rows.filter(created_at__gte=created_after)
        return [to_registration(row) for row in rows.order_by("-created_at", "registration_number")]

    def set_provider_fee(self, payment_id: str, provider_fee: Decimal | None) -> list[Registration]:
        models.Registration.objects.filter(payment_id=payment_id).update(provider_fee=provider_fee)
        return self.find_by_payment_id(payment_id)

    def webhook_seen(self, request_id: str) -> bool:
        return models.ProcessedWebhook.objects.filter(request_id=request_id).exists()

    def record_webhook(self, request_id: str, payment_id: str | None) -> None:
        models.ProcessedWebhook.objects.get_or_create(request_id=request_id, defaults={"payment_id": payment_id})

    @staticmethod
    def _details():
        return models.Registration.objects.select_related("participant", "event", "modality", "coupon")

    @staticmethod
    def _fetch(ids: list[UUID]) -> list[Registration]:
        rows = models.Registration.objects.filter(pk__in=ids).order_by("registration_number")
        return [to_registration(row) for row in rows]

    @staticmethod
    def _demand(rows: list[models.Registration]) -> tuple[Counter, Counter, Counter, Counter]:
        return (
            Counter(row.modality_id for row in rows),
            Counter(row.batch_id for row in rows if row.batch_id),
            Counter(row.coupon_id for row in rows if row.coupon_id),
            Counter((row.event_id, row.shirt_size) for row in rows if row.shirt_size),
        )

    @staticmethod
    def _locked_sizes(sizes: Counter) -> list[catalog.KitSize]:
        if not sizes:
            return []
        match = Q()
        for event_id, size in sizes:
            match |= Q(kit__event_id=event_id, size=size)
        rows = catalog.KitSize.objects.select_for_update(of=("self",)).filter(match).select_related("kit")
        return list(rows.order_by("pk"))

    def _commit_inventory(self, rows: list[models.Registration]) -> None:
        modalities, batches, coupons, sizes = self._demand(rows)

        locked_modalities = list(
            catalog.Modality.objects.select_for_update().filter(pk__in=modalities).order_by("pk")
        )
        locked_batches = list(catalog.Batch.objects.select_for_update().filter(pk__in=batches).order_by("pk"))
        locked_coupons = list(catalog.Coupon.objects.select_for_update().filter(pk__in=coupons).order_by("pk"))
        locked_sizes = self._locked_sizes(sizes)

        for modality in locked_modalities:
            if modality.max_slots is not None and modality.sold_slots + modalities[modality.pk] > modality.max_slots:
                raise SoldOutError()
        for batch in locked_batches:
            if batch.max_sales is not None and batch.current_sales + batches[batch.pk] > batch.max_sales:
                raise BatchSoldOutError()
        for coupon in locked_coupons:
            if coupon.max_uses is not None and coupon.current_uses + coupons[coupon.pk] > coupon.max_uses:
                raise CouponExhaustedError()
        for size in locked_sizes:
            if size.stock < sizes[(size.kit.event_id, size.size)]:
                raise ShirtSizeSoldOutError()

        for modality in locked_modalities:
            catalog.Modality.objects.filter(pk=modality.pk).update(sold_slots=F("sold_slots") + modalities[modality.pk])
        for batch in locked_batches:
            catalog.Batch.objects.filter(pk=batch.pk).update(current_sales=F("current_sales") + batches[batch.pk])
        for coupon in locked_coupons:
            catalog.Coupon.objects.filter(pk=coupon.pk).update(current_uses=F("current_uses") + coupons[coupon.pk])
        for size in locked_sizes:
            sold = sizes[(size.kit.event_id, size.size)]
            catalog.KitSize.objects.filter(pk=size.pk).update(stock=F("stock") - sold, sold=F("sold") + sold)

    def _release_inventory(self, rows: list[models.Registration]) -> None:
        modalities, batches, coupons, sizes = self._demand(rows)

        for modality in catalog.Modality.objects.select_for_update().filter(pk__in=modalities).order_by("pk"):
            catalog.Modality.objects.filter(pk=modality.pk).update(
                sold_slots=Greatest(F("sold_slots") - modalities[modality.pk], 0, output_field=IntegerField())
            )
        for batch in catalog.Batch.objects.select_for_update().filter(pk__in=batches).order_by("pk"):
            catalog.Batch.objects.filter(pk=batch.pk).update(
                current_sales=Greatest(F("current_sales") - batches[batch.pk], 0, output_field=IntegerField())
            )
        for coupon in catalog.Coupon.objects.select_for_update().filter(pk__in=coupons).order_by("pk"):
            catalog.Coupon.objects.filter(pk=coupon.pk).update(
                current_uses=Greatest(F("current_uses") - coupons[coupon.pk], 0, output_field=IntegerField())
            )
        for size in self._locked_sizes(sizes):
            released = sizes[(size.kit.event_id, size.size)]
            catalog.KitSize.objects.filter(pk=size.pk).update(
                stock=F("stock") + released, sold=Greatest(F("sold") - released, 0, output_field=IntegerField())
            )
