"""Checkout: create registrations and the provider checkout they are paid through.

The organizer's provider account is checked before anything is written, so
an event whose organizer cannot take payments never accumulates orders.
"""

from dataclasses import dataclass
from uuid import UUID

import structlog

from accounts.stores.interfaces import AccountStore
from common.ids import parse_id
from events.domain import Event, EventId
from events.domain.errors import EventNotFoundError
from events.services.pricing import PriceQuote
from events.stores.interfaces import EventStore
from payments.gateway import CheckoutItem, PaymentGateway, Preference, PreferenceRequest
from payments.services import ConnectionService
from registrations.domain import Registration
from registrations.domain.commands import GroupRequest, RegistrationRequest
from registrations.services.registration_service import RegistrationService

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    order_reference: UUID
    registrations: tuple[Registration, ...]
    quote: PriceQuote
    preference: Preference

    @property
    def primary(self) -> Registration:
        return min(self.registrations, key=lambda registration: registration.registration_number)


class CheckoutService:
    """Builds provider checkouts for new registrations."""

    def __init__(
        self,
        registrations: RegistrationService,
        connections: ConnectionService,
        gateway: PaymentGateway,
        events: EventStore,
        accounts: AccountStore,
        app_url: str,
        notification_url: str,
    ) -> None:
        self._registrations = registrations
        self._connections = connections
        self._gateway = gateway
        self._events = events
        self._accounts = accounts
        self._app_url = app_url.rstrip("/")
        self._notification_url = notification_url

    def checkout(self, request: GroupRequest) -> CheckoutResult:
        """Register a group and open a checkout for its total.

        Raises:
            PaymentsNotConfiguredError: If the organizer has no connected provider account.
            PaymentProviderError: If the provider rejects the checkout; the
                registrations stay PENDING and expire with the payment window.
            plus everything ``RegistrationService.create_group`` raises.
        """
        event = self._event(request.event_id)
        access_token = self._connections.access_token_for(event.organizer_id)
        receipt = self._registrations.create_group(request)
        return self._open(event, access_token, receipt.order_reference, receipt.registrations, receipt.quote)

    def register(self, request: RegistrationRequest) -> CheckoutResult:
        """Register the logged-in participant and open a checkout for them."""
        event = self._event(request.event_id)
        access_token = self._connections.access_token_for(event.organizer_id)
        receipt = self._registrations.create_registration(request)
        registration = receipt.registration
        return self._open(event, access_token, registration.order_reference, (registration,), receipt.quote)

    def _event(self, event_id: str) -> Event:
        event = self._events.get_event(parse_id(EventId, event_id, "event_id"))
        if event is None:
            raise EventNotFoundError()
        return event

    def _open(
        self,
        event: Event,
        access_token: str,
        order_reference: UUID,
        registrations: tuple[Registration, ...],
        quote: PriceQuote,
    ) -> CheckoutResult:
        primary = min(registrations, key=lambda registration: registration.registration_number)
        buyer = self._accounts.get_participant(primary.buyer_id)
        modality = self._events.get_modality(quote.modality_id)
        title = f"{event.name} - {modality.name}" if modality else event.name
        back_url = f"{self._app_url}/inscricao/{{}}?registration={primary.id}"

        preference = self._gateway.create_preference(
            access_token,
            PreferenceRequest(
                items=(
                    CheckoutItem(
                        id=str(quote.modality_id),
                        title=title,
                        description=f"Registration #{primary.registration_number}",
                        quantity=quote.quantity,
                        unit_price=quote.unit_total.amount,
                    ),
                ),
                payer_name=buyer.full_name if buyer else "",
                payer_email=buyer.email if buyer else "",
                external_reference=str(order_reference),
                notification_url=self._notification_url,
                success_url=back_url.format("sucesso"),
                failure_url=back_url.format("falha"),
                pending_url=back_url.format("pendente"),
                marketplace_fee=quote.platform_fee.amount if quote.platform_fee.amount > 0 else None,
            ),
        )
        self._registrations.attach_preference(order_reference, preference.id)
        logger.info(
            "checkout_created",
            event_id=str(event.id),
            order_reference=str(order_reference),
            preference_id=preference.id,
            total=str(quote.total),
        )
        return CheckoutResult(
            order_reference=order_reference,
            registrations=registrations,
            quote=quote,
            preference=preference,
        )
