"""Registration lifecycle.

Registrations are created PENDING and priced by the pricing engine, but
reserve nothing: inventory counters only move when a payment is approved,
inside the store's confirmation transaction. Payment notifications are
applied through ``reconcile_payment``, which is safe to call any number of
times with the same notification.
"""

from collections import Counter
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable
from uuid import UUID, uuid4

import structlog
from django.utils import timezone

from accounts.domain import Participant, Principal
from accounts.domain.errors import ParticipantNotFoundError
from accounts.stores.interfaces import AccountStore
from common.errors import ConflictError
from common.ids import parse_id
from events.domain import Event, EventId, Kit, ModalityId, Money, ShirtSize
from events.domain.errors import (
    EventNotFoundError,
    EventNotOpenError,
    RegistrationClosedError,
    ShirtSizeRequiredError,
    ShirtSizeSoldOutError,
    ShirtSizeUnavailableError,
)
from events.services.pricing import PriceQuote, PricingService
from events.stores.interfaces import EventStore
from registrations.domain import (
    KnownParticipant,
    PaymentStatus,
    Registration,
    RegistrationDetail,
    RegistrationId,
    RegistrationStatus,
    RegistrationSummary,
    Transition,
    map_provider_status,
    plan_transition,
)
from registrations.domain.commands import (
    GroupReceipt,
    GroupRequest,
    NewRegistration,
    RegistrationExtras,
    RegistrationReceipt,
    RegistrationRequest,
)
from registrations.domain.errors import (
    AlreadyRegisteredError,
    DuplicateAttendeeError,
    GroupNotAllowedError,
    GroupTooLargeError,
    RegistrationNotCancelableError,
    RegistrationNotFoundError,
)
from registrations.stores.interfaces import RegistrationStore

logger = structlog.get_logger(__name__)

DEFAULT_PAYMENT_WINDOW = timedelta(minutes=30)


def check_shirt_sizes(kit: Kit | None, sizes: list[ShirtSize | None]) -> list[ShirtSize | None]:
    """Validate requested sizes against the kit and return the sizes to record.

    Sizes are dropped when the kit has no shirt.
    """
    if kit is None or not kit.include_shirt:
        return [None] * len(sizes)
    if kit.shirt_required and any(size is None for size in sizes):
        raise ShirtSizeRequiredError()
    for size, wanted in Counter(size for size in sizes if size is not None).items():
        entry = kit.size(size)
        if entry is None:
            raise ShirtSizeUnavailableError()
        if entry.stock < wanted:
            raise ShirtSizeSoldOutError()
    return list(sizes)


def summarize(details: list[RegistrationDetail]) -> RegistrationSummary:
    counts = Counter(detail.registration.status for detail in details)
    revenue = sum(
        (
            detail.registration.total.amount
            for detail in details
            if detail.registration.status is RegistrationStatus.CONFIRMED
        ),
        Decimal("0"),
    )
    return RegistrationSummary(
        total=len(details),
        pending=counts[RegistrationStatus.PENDING],
        confirmed=counts[RegistrationStatus.CONFIRMED],
        canceled=counts[RegistrationStatus.CANCELED],
        expired=counts[RegistrationStatus.EXPIRED],
        revenue=Money(revenue),
    )


class RegistrationService:
    """Creates registrations and applies payment outcomes to them."""

    def __init__(
        self,
        store: RegistrationStore,
        events: EventStore,
        accounts: AccountStore,
        pricing: PricingService,
        clock: Callable[[], datetime] = timezone.now,
        payment_window: timedelta = DEFAULT_PAYMENT_WINDOW,
    ) -> None:
        self._store = store
        self._events = events
        self._accounts = accounts
        self._pricing = pricing
        self._clock = clock
        self._payment_window = payment_window

    # Creation

    def create_registration(self, request: RegistrationRequest) -> RegistrationReceipt:
        """Register a logged-in participant; they attend and pay.

        Raises:
            ParticipantNotFoundError: If the participant account is gone.
            AlreadyRegisteredError: If they already hold an active registration in the modality.
            plus the event, kit and pricing errors of ``create_group``.
        """
        participant = self._accounts.get_participant(request.participant_id)
        if participant is None:
            raise ParticipantNotFoundError()

        event, quote, sizes = self._prepare(
            request.event_id, request.modality_id, request.coupon_code, [request.shirt_size]
        )
        registrations = self._persist(event, quote, [participant], participant, sizes, request.extras)
        return RegistrationReceipt(registration=registrations[0], quote=quote)

    def create_group(self, request: GroupRequest) -> GroupReceipt:
        """Register one or more attendees under one order.

        Participants are matched by CPF and created when unknown. The buyer
        is the given buyer profile, or the first attendee.

        Raises:
            EventNotFoundError, EventNotOpenError, RegistrationClosedError: If the
                event cannot take registrations now.
            GroupNotAllowedError, GroupTooLargeError, DuplicateAttendeeError: If the
                attendee list is not acceptable for the event.
            ShirtSizeRequiredError, ShirtSizeUnavailableError, ShirtSizeSoldOutError:
                If the kit cannot serve the requested sizes.
            AlreadyRegisteredError: If an attendee already holds an active registration.
            plus everything the pricing engine raises.
        """
        attendees = list(request.attendees)
        if len({attendee.profile.cpf for attendee in attendees}) != len(attendees):
            raise DuplicateAttendeeError()

        event, quote, sizes = self._prepare(
            request.event_id,
            request.modality_id,
            request.coupon_code,
            [attendee.shirt_size for attendee in attendees],
            group_size=len(attendees),
        )
        participants = self._accounts.get_or_create_participants([attendee.profile for attendee in attendees])
        buyer = participants[0]
        if request.buyer is not None:
            buyer = self._accounts.get_or_create_participants([request.buyer])[0]

        registrations = self._persist(event, quote, participants, buyer, sizes, request.extras)
        return GroupReceipt(
            event_id=event.id,
            order_reference=registrations[0].order_reference,
            registrations=tuple(registrations),
            quote=quote,
        )

    def _prepare(
        self,
        event_id: str,
        modality_id: str,
        coupon_code: str | None,
        shirt_sizes: list[ShirtSize | None],
        group_size: int = 1,
    ) -> tuple[Event, PriceQuote, list[ShirtSize | None]]:
        event = self._events.get_event(parse_id(EventId, event_id, "event_id"))
        if event is None:
            raise EventNotFoundError()
        if not event.is_published:
            raise EventNotOpenError()
        if not event.registration_open(self._clock()):
            raise RegistrationClosedError()
        if group_size > 1 and not event.allow_group_reg:
            raise GroupNotAllowedError()
        if group_size > event.max_group_size:
            raise GroupTooLargeError(event.max_group_size)

        quote = self._pricing.compute_price(
            modality_id, coupon_code=coupon_code, quantity=len(shirt_sizes), event_id=event.id
        )
        sizes = check_shirt_sizes(self._events.get_kit(event.id), shirt_sizes)
        return event, quote, sizes

    def _persist(
        self,
        event: Event,
        quote: PriceQuote,
        participants: list[Participant],
        buyer: Participant,
        sizes: list[ShirtSize | None],
        extras: RegistrationExtras,
    ) -> list[Registration]:
        taken = self._store.active_participants(quote.modality_id, [participant.id for participant in participants])
        if taken:
            raise AlreadyRegisteredError()

        entries = [
            NewRegistration(
                participant_id=participant.id,
                buyer_id=buyer.id,
                modality_id=quote.modality_id,
                coupon_id=quote.applied_coupon_id,
                batch_id=quote.applied_batch_id,
                base_price=quote.base_price,
                discount=quote.batch_discount + quote.coupon_discount,
                subtotal=quote.unit_price,
                platform_fee=quote.unit_platform_fee,
                total=quote.unit_total,
                shirt_size=size,
                extras=extras,
            )
            for participant, size in zip(participants, sizes)
        ]
        registrations = self._store.create_registrations(event.id, uuid4(), entries)
        logger.info(
            "registrations_created",
            event_id=str(event.id),
            order_reference=str(registrations[0].order_reference),
            count=len(registrations),
            numbers=[registration.registration_number for registration in registrations],
            total=str(quote.total),
        )
        return registrations

    # Payments

    def attach_preference(self, order_reference: UUID, preference_id: str) -> None:
        self._store.set_preference(order_reference, preference_id)

    def reconcile_payment(
        self,
        payment_id: str,
        status: PaymentStatus | str,
        external_reference: str | None = None,
        payment_method: str | None = None,
        provider_fee: Decimal | None = None,
    ) -> Registration:
        """Apply a provider payment status to the registrations it paid for.

        Registrations are found by payment id, or by order reference (which
        then binds the payment id). An approval for a new payment on an order
        whose previous payment was rejected reopens the order and confirms it.
        A payment for an order already bound to another live payment matches
        nothing. Duplicate and stale notifications change nothing. Returns the
        order's primary registration as it stands after the update.

        Raises:
            RegistrationNotFoundError: If no registration matches the payment.
            SoldOutError, BatchSoldOutError, CouponExhaustedError, ShirtSizeSoldOutError:
                If an approved payment arrives after inventory ran out. The
                registrations are canceled with that reason before raising.
        """
        incoming = status if isinstance(status, PaymentStatus) else map_provider_status(status)
        registrations = self._find_for_payment(
            payment_id, external_reference, reopen_rejected=incoming is PaymentStatus.APPROVED
        )
        if not registrations:
            raise RegistrationNotFoundError()

        plans: dict[Transition, list[Registration]] = {}
        for registration in registrations:
            transition = plan_transition(registration.status, registration.payment_status, incoming)
            plans.setdefault(transition, []).append(registration)
            if (
                transition is Transition.NOOP
                and incoming is PaymentStatus.APPROVED
                and registration.status is RegistrationStatus.CANCELED
                and registration.payment_status is PaymentStatus.PENDING
            ):
                logger.warning(
                    "approved_payment_for_canceled_registration",
                    registration_id=str(registration.id),
                    payment_id=payment_id,
                )

        now = self._clock()
        if Transition.CONFIRM in plans:
            self._confirm(payment_id, plans[Transition.CONFIRM], now, payment_method, provider_fee)
        if Transition.REJECT in plans:
            ids = [registration.id for registration in plans[Transition.REJECT]]
            self._store.mark_canceled(ids, reason=f"PAYMENT_{incoming.name}", now=now, payment_status=incoming)
            logger.info("registrations_payment_rejected", payment_id=payment_id, count=len(ids))
        if Transition.REVERSE in plans:
            ids = [registration.id for registration in plans[Transition.REVERSE]]
            self._store.reverse(ids, incoming, reason=f"PAYMENT_{incoming.name}", now=now)
            logger.info("registrations_reversed", payment_id=payment_id, count=len(ids), status=incoming.value)
        if set(plans) == {Transition.NOOP}:
            logger.debug(
                "payment_notification_ignored",
                payment_id=payment_id,
                status=incoming.value if incoming else status,
            )

        updated = self._store.find_by_payment_id(payment_id)
        return min(updated or registrations, key=lambda registration: registration.registration_number)

    def _find_for_payment(
        self, payment_id: str, external_reference: str | None, reopen_rejected: bool = False
    ) -> list[Registration]:
        registrations = self._store.find_by_payment_id(payment_id)
        if registrations or not external_reference:
            return registrations
        try:
            order_reference = UUID(str(external_reference))
        except ValueError:
            logger.warning("payment_reference_unknown", payment_id=payment_id, external_reference=external_reference)
            return []
        bound = self._store.bind_payment(order_reference, payment_id, reopen_rejected=reopen_rejected)
        if not bound:
            logger.warning(
                "payment_not_bound",
                payment_id=payment_id,
                order_reference=str(order_reference),
            )
        return bound

    def _confirm(
        self,
        payment_id: str,
        registrations: list[Registration],
        now: datetime,
        payment_method: str | None,
        provider_fee: Decimal | None,
    ) -> None:
        ids = [registration.id for registration in registrations]
        try:
            confirmed = self._store.confirm(ids, now, payment_method=payment_method, provider_fee=provider_fee)
        except ConflictError as exc:
            self._store.mark_canceled(ids, reason=exc.code.value, now=now, payment_status=PaymentStatus.APPROVED)
            logger.error(
                "registration_confirmation_conflict",
                payment_id=payment_id,
                reason=exc.code.value,
                registration_ids=[str(registration_id) for registration_id in ids],
            )
            raise
        logger.info(
            "registrations_confirmed",
            payment_id=payment_id,
            numbers=[registration.registration_number for registration in confirmed],
        )

    # Participant and organizer operations

    def cancel_registration(self, registration_id: str, principal: Principal) -> Registration:
        """Cancel a PENDING registration on behalf of its participant, buyer or organizer."""
        registration = self._visible_registration(registration_id, principal)
        if registration.status is not RegistrationStatus.PENDING:
            raise RegistrationNotCancelableError()
        reason = "CANCELED_BY_ORGANIZER" if principal.is_organizer else "CANCELED_BY_PARTICIPANT"
        canceled = self._store.mark_canceled([registration.id], reason=reason, now=self._clock())
        logger.info("registration_canceled", registration_id=str(registration.id), reason=reason)
        return canceled[0]

    def expire_pending(self, older_than: timedelta | None = None) -> int:
        """Expire PENDING registrations whose payment window has passed."""
        cutoff = self._clock() - (older_than if older_than is not None else self._payment_window)
        expired = self._store.expire_pending(cutoff)
        if expired:
            logger.info("registrations_expired", count=expired, created_before=cutoff.isoformat())
        return expired

    def get_registration(self, registration_id: str) -> RegistrationDetail:
        detail = self._store.get_detail(parse_id(RegistrationId, registration_id, "registration_id"))
        if detail is None:
            raise RegistrationNotFoundError()
        return detail

    def list_for_participant(self, participant_id: UUID) -> list[RegistrationDetail]:
        return self._store.list_for_participant(participant_id)

    def list_for_event(self, organizer_id: UUID, event_id: str) -> tuple[Event, list[RegistrationDetail]]:
        event = self._events.get_event(parse_id(EventId, event_id, "event_id"))
        if event is None or event.organizer_id != organizer_id:
            raise EventNotFoundError()
        return event, self._store.list_for_event(event.id)

    def find_existing(self, participant_id: UUID, event_id: str, modality_id: str) -> RegistrationDetail | None:
        """Latest registration the participant attends in the modality, in any status."""
        event = parse_id(EventId, event_id, "event_id")
        modality = parse_id(ModalityId, modality_id, "modality_id")
        return next(
            (
                detail
                for detail in self._store.list_for_participant(participant_id)
                if detail.registration.participant_id == participant_id
                and detail.registration.event_id == event
                and detail.registration.modality_id == modality
            ),
            None,
        )

    def participant_card(self, participant_id: UUID) -> KnownParticipant:
        """The participant's own data, prefilled with the shirt size they last chose."""
        participant = self._accounts.get_participant(participant_id)
        if participant is None:
            raise ParticipantNotFoundError()
        sizes = (
            detail.registration.shirt_size
            for detail in self._store.list_for_participant(participant_id)
            if detail.registration.participant_id == participant_id and detail.registration.shirt_size
        )
        return KnownParticipant(participant=participant, shirt_size=next(sizes, None))

    def recent_attendees(self, buyer_id: UUID) -> list[KnownParticipant]:
        """People the buyer has registered before, most recent first, excluding themselves."""
        known: dict[UUID, KnownParticipant] = {}
        for detail in self._store.list_for_participant(buyer_id):
            registration = detail.registration
            if registration.buyer_id != buyer_id or registration.participant_id == buyer_id:
                continue
            if registration.participant_id not in known:
                known[registration.participant_id] = KnownParticipant(
                    participant=detail.participant, shirt_size=registration.shirt_size
                )
        return list(known.values())

    def _visible_registration(self, registration_id: str, principal: Principal) -> Registration:
        registration = self._store.get(parse_id(RegistrationId, registration_id, "registration_id"))
        if registration is None:
            raise RegistrationNotFoundError()
        if principal.is_organizer:
            event = self._events.get_event(registration.event_id)
            if event is None or event.organizer_id != principal.id:
                raise RegistrationNotFoundError()
        elif principal.id not in (registration.participant_id, registration.buyer_id):
            raise RegistrationNotFoundError()
        return registration
