"""Re-reading payments that missed their notification.

The provider is the source of truth: every sync reads the payment back and
applies it through ``RegistrationService.reconcile_payment``, so a sync and a
late notification for the same payment cannot double count inventory.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable
from uuid import UUID

import structlog
from django.utils import timezone

from common.errors import ConflictError
from common.ids import parse_id
from events.domain import EventId
from events.domain.errors import EventNotFoundError
from events.stores.interfaces import EventStore
from payments.errors import PaymentNotApprovedError, PaymentNotFoundError, PaymentProviderError
from payments.gateway import PaymentGateway, PaymentInfo
from payments.services import ConnectionService
from registrations.domain import PaymentStatus, Registration, RegistrationId, RegistrationStatus
from registrations.domain.errors import RegistrationNotFoundError
from registrations.services.registration_service import RegistrationService
from registrations.stores.interfaces import RegistrationStore

logger = structlog.get_logger(__name__)

UNPAID = [RegistrationStatus.PENDING, RegistrationStatus.EXPIRED]


@dataclass(frozen=True)
class SyncResult:
    """What one sync did to a registration.

    ``result`` is one of updated, unchanged, conflict, no_payment or error.
    """

    registration: Registration
    result: str
    payment_id: str | None = None
    provider_status: str | None = None
    code: str | None = None


class PaymentSyncService:
    def __init__(
        self,
        registrations: RegistrationService,
        store: RegistrationStore,
        events: EventStore,
        connections: ConnectionService,
        gateway: PaymentGateway,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._registrations = registrations
        self._store = store
        self._events = events
        self._connections = connections
        self._gateway = gateway
        self._clock = clock

    def sync(
        self, organizer_id: UUID, registration_id: str | None = None, payment_id: str | None = None
    ) -> SyncResult:
        """Read one registration's payment from the provider and apply it.

        The registration is given by id, or found by its payment id.

        Raises:
            RegistrationNotFoundError: If no registration of the organizer matches.
            PaymentNotFoundError: If the provider has no payment for it yet.
            PaymentsNotConfiguredError, PaymentProviderError: If the provider cannot be read.
        """
        registration = self._owned_registration(organizer_id, registration_id, payment_id)
        access_token = self._connections.access_token_for(organizer_id)
        result = self._sync(access_token, registration)
        if result.result == "no_payment":
            raise PaymentNotFoundError()
        return result

    def sync_pending(
        self, organizer_id: UUID, event_id: str | None = None, within: timedelta | None = None
    ) -> list[SyncResult]:
        """Sync every unpaid order of the organizer.

        Optionally limited to one event, or to orders created ``within`` the
        given time.

        A provider failure on one order is reported in its result and does
        not stop the others.
        """
        event = None
        if event_id is not None:
            event = self._events.get_event(parse_id(EventId, event_id, "event_id"))
            if event is None or event.organizer_id != organizer_id:
                raise EventNotFoundError()

        unpaid = self._store.list_for_organizer(
            organizer_id,
            event_id=event.id if event else None,
            statuses=UNPAID,
            created_after=self._clock() - within if within is not None else None,
        )
        orders: dict[UUID, Registration] = {}
        for registration in sorted(unpaid, key=lambda registration: registration.registration_number):
            orders.setdefault(registration.order_reference, registration)
        if not orders:
            return []

        access_token = self._connections.access_token_for(organizer_id)
        results = []
        for registration in orders.values():
            try:
                results.append(self._sync(access_token, registration))
            except PaymentProviderError as exc:
                results.append(SyncResult(registration=registration, result="error", code=exc.code.value))
        logger.info(
            "pending_payments_synced",
            organizer_id=str(organizer_id),
            checked=len(results),
            updated=sum(1 for result in results if result.result == "updated"),
        )
        return results

    def refresh_provider_fee(self, organizer_id: UUID, registration_id: str) -> Registration:
        """Re-read what the provider kept on an approved payment.

        Raises:
            RegistrationNotFoundError: If the registration is not the organizer's.
            PaymentNotApprovedError: If the registration has no approved payment.
        """
        registration = self._owned_registration(organizer_id, registration_id, None)
        if registration.payment_id is None or registration.payment_status is not PaymentStatus.APPROVED:
            raise PaymentNotApprovedError()
        access_token = self._connections.access_token_for(organizer_id)
        payment = self._gateway.get_payment(access_token, registration.payment_id)
        self._store.set_provider_fee(registration.payment_id, payment.provider_fee)
        logger.info(
            "provider_fee_refreshed",
            payment_id=registration.payment_id,
            provider_fee=str(payment.provider_fee) if payment.provider_fee is not None else None,
        )
        return self._store.get(registration.id)

    def _owned_registration(
        self, organizer_id: UUID, registration_id: str | None, payment_id: str | None
    ) -> Registration:
        if registration_id is not None:
            registration = self._store.get(parse_id(RegistrationId, registration_id, "registration_id"))
        else:
            found = self._store.find_by_payment_id(payment_id or "")
            registration = found[0] if found else None
        if registration is None:
            raise RegistrationNotFoundError()
        event = self._events.get_event(registration.event_id)
        if event is None or event.organizer_id != organizer_id:
            raise RegistrationNotFoundError()
        return registration

    def _sync(self, access_token: str, registration: Registration) -> SyncResult:
        payment = self._payment_for(access_token, registration)
        if payment is None:
            return SyncResult(registration=registration, result="no_payment")

        result = "updated"
        code = None
        try:
            self._registrations.reconcile_payment(
                payment.id,
                payment.status,
                external_reference=payment.external_reference or str(registration.order_reference),
                payment_method=payment.payment_method,
                provider_fee=payment.provider_fee,
            )
        except ConflictError as exc:
            result, code = "conflict", exc.code.value
        except RegistrationNotFoundError:
            result = "unchanged"

        current = self._store.get(registration.id)
        if result == "updated" and (current.status, current.payment_status) == (
            registration.status,
            registration.payment_status,
        ):
            result = "unchanged"
        return SyncResult(
            registration=current,
            result=result,
            payment_id=payment.id,
            provider_status=payment.status,
            code=code,
        )

    def _payment_for(self, access_token: str, registration: Registration) -> PaymentInfo | None:
        if registration.payment_id and registration.payment_status is not PaymentStatus.REJECTED:
            return self._gateway.get_payment(access_token, registration.payment_id)
        payments = self._gateway.search_payments(access_token, str(registration.order_reference))
        approved = [payment for payment in payments if payment.status == "approved"]
        return (approved or payments or [None])[0]
