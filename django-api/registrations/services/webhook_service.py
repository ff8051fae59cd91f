"""Provider payment notifications.

A notification only carries a payment id; the status is always read back
from the provider with the organizer's token before anything changes.
"""

from dataclasses import dataclass
from uuid import UUID

import structlog

from common.errors import ConflictError
from events.stores.interfaces import EventStore
from payments.errors import WebhookSignatureError
from payments.gateway import PaymentGateway
from payments.services import ConnectionService
from payments.signatures import verify_signature
from registrations.domain import Registration
from registrations.domain.errors import RegistrationNotFoundError
from registrations.services.registration_service import RegistrationService
from registrations.stores.interfaces import RegistrationStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Notification:
    type: str
    action: str | None
    payment_id: str


@dataclass(frozen=True)
class WebhookOutcome:
    """What a delivery did; every outcome is acknowledged to the provider."""

    result: str
    registration: Registration | None = None
    code: str | None = None


class WebhookService:
    def __init__(
        self,
        registrations: RegistrationService,
        store: RegistrationStore,
        events: EventStore,
        connections: ConnectionService,
        gateway: PaymentGateway,
        secret: str = "",
        webhook_url: str = "",
        app_access_token: str = "",
        allow_unsigned: bool = False,
    ) -> None:
        self._registrations = registrations
        self._store = store
        self._events = events
        self._connections = connections
        self._gateway = gateway
        self._secret = secret
        self._webhook_url = webhook_url
        self._app_access_token = app_access_token
        self._allow_unsigned = allow_unsigned

    def verify(self, signature_header: str | None, raw_body: bytes, request_urls: list[str]) -> None:
        """Raise WebhookSignatureError unless the delivery is authentic.

        Unsigned deliveries pass only when no secret is configured and
        unsigned delivery is allowed (local development).
        """
        if not self._secret and self._allow_unsigned:
            logger.warning("webhook_signature_skipped")
            return
        candidates = [*request_urls, self._webhook_url] if self._webhook_url else list(request_urls)
        if not verify_signature(signature_header, raw_body, candidates, self._secret):
            logger.warning("webhook_signature_invalid", has_signature=bool(signature_header))
            raise WebhookSignatureError()

    def handle(self, notification: Notification, request_id: str | None = None) -> WebhookOutcome:
        """Apply one payment notification.

        Raises:
            PaymentProviderError: If the payment cannot be read; the provider retries.
            PaymentsNotConfiguredError: If the organizer's account is no longer usable.
        """
        if request_id and self._store.webhook_seen(request_id):
            logger.info("webhook_duplicate", request_id=request_id)
            return WebhookOutcome(result="duplicate")

        if notification.type != "payment":
            logger.debug("webhook_ignored", type=notification.type, action=notification.action)
            return WebhookOutcome(result="ignored")

        outcome = self._apply(notification.payment_id)
        if request_id:
            self._store.record_webhook(request_id, notification.payment_id)
        return outcome

    def _apply(self, payment_id: str) -> WebhookOutcome:
        registrations = self._store.find_by_payment_id(payment_id)
        if not registrations:
            registrations = self._find_by_reference(payment_id)
        if not registrations:
            logger.warning("webhook_payment_unknown", payment_id=payment_id)
            return WebhookOutcome(result="unknown_payment")

        event = self._events.get_event(registrations[0].event_id)
        access_token = self._connections.access_token_for(event.organizer_id)
        payment = self._gateway.get_payment(access_token, payment_id)
        logger.info("webhook_payment_fetched", payment_id=payment_id, status=payment.status)

        try:
            registration = self._registrations.reconcile_payment(
                payment_id,
                payment.status,
                external_reference=payment.external_reference or str(registrations[0].order_reference),
                payment_method=payment.payment_method,
                provider_fee=payment.provider_fee,
            )
        except ConflictError as exc:
            return WebhookOutcome(result="conflict", code=exc.code.value)
        except RegistrationNotFoundError:
            logger.warning("webhook_payment_not_bound", payment_id=payment_id)
            return WebhookOutcome(result="unknown_payment")
        return WebhookOutcome(result="processed", registration=registration)

    def _find_by_reference(self, payment_id: str) -> list[Registration]:
        """Look the payment up with the application token to learn its order reference."""
        if not self._app_access_token:
            return []
        payment = self._gateway.get_payment(self._app_access_token, payment_id)
        if not payment.external_reference:
            return []
        try:
            order_reference = UUID(payment.external_reference)
        except ValueError:
            return []
        return self._store.find_by_order_reference(order_reference)
