"""Organizer payment account connection (OAuth) and token upkeep."""

from datetime import datetime, timedelta
from typing import Callable
from uuid import UUID

import structlog
from django.core import signing
from django.utils import timezone

from accounts.domain import Organizer, PaymentConnection
from accounts.domain.errors import OrganizerNotFoundError
from accounts.services.crypto import TokenCipher
from accounts.stores.interfaces import AccountStore
from payments.errors import InvalidOAuthStateError, PaymentsNotConfiguredError
from payments.gateway import OAuthTokens, PaymentGateway

logger = structlog.get_logger(__name__)

STATE_SALT = "payments.oauth-state"
STATE_MAX_AGE = timedelta(minutes=10)
REFRESH_MARGIN = timedelta(minutes=5)

DISCONNECTED = PaymentConnection(
    connected=False,
    provider_user_id=None,
    encrypted_access_token=None,
    encrypted_refresh_token=None,
    expires_at=None,
)


class ConnectionService:
    """Links organizers to their provider accounts and hands out live tokens."""

    def __init__(
        self,
        store: AccountStore,
        gateway: PaymentGateway,
        cipher: TokenCipher,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._cipher = cipher
        self._clock = clock

    def authorization_url(self, organizer_id: UUID) -> str:
        state = signing.dumps(str(organizer_id), salt=STATE_SALT)
        return self._gateway.authorization_url(state)

    def complete_authorization(self, state: str, code: str) -> Organizer:
        """Exchange the callback code and store the encrypted tokens.

        Raises:
            InvalidOAuthStateError: If the state was not issued by us or is stale.
            PaymentProviderError: If the provider rejects the code.
        """
        try:
            organizer_id = UUID(
                signing.loads(state, salt=STATE_SALT, max_age=STATE_MAX_AGE.total_seconds())
            )
        except (signing.BadSignature, ValueError) as exc:
            raise InvalidOAuthStateError() from exc

        if self._store.get_organizer(organizer_id) is None:
            raise OrganizerNotFoundError()

        tokens = self._gateway.exchange_code(code)
        organizer = self._save_tokens(organizer_id, tokens)
        logger.info("payment_account_connected", organizer_id=str(organizer_id))
        return organizer

    def status(self, organizer_id: UUID) -> PaymentConnection:
        organizer = self._store.get_organizer(organizer_id)
        if organizer is None:
            raise OrganizerNotFoundError()
        return organizer.payment

    def disconnect(self, organizer_id: UUID) -> None:
        self._store.save_payment_connection(organizer_id, DISCONNECTED)
        logger.info("payment_account_disconnected", organizer_id=str(organizer_id))

    def access_token_for(self, organizer_id: UUID) -> str:
        """Return a usable provider token for the organizer, refreshing it first when due.

        Raises:
            PaymentsNotConfiguredError: If there is no connection or the stored tokens are unreadable.
        """
        organizer = self._store.get_organizer(organizer_id)
        if organizer is None:
            raise OrganizerNotFoundError()
        payment = organizer.payment
        if not payment.connected or not payment.encrypted_access_token:
            raise PaymentsNotConfiguredError()

        try:
            access_token = self._cipher.decrypt(payment.encrypted_access_token)
            if payment.expires_at is None or payment.expires_at > self._clock() + REFRESH_MARGIN:
                return access_token
            if not payment.encrypted_refresh_token:
                raise PaymentsNotConfiguredError()
            refresh_token = self._cipher.decrypt(payment.encrypted_refresh_token)
        except ValueError as exc:
            logger.error("payment_token_decrypt_failed", organizer_id=str(organizer_id))
            raise PaymentsNotConfiguredError() from exc

        tokens = self._gateway.refresh_tokens(refresh_token)
        self._save_tokens(organizer_id, tokens, provider_user_id=payment.provider_user_id)
        logger.info("payment_token_refreshed", organizer_id=str(organizer_id))
        return tokens.access_token

    def _save_tokens(
        self,
        organizer_id: UUID,
        tokens: OAuthTokens,
        provider_user_id: str | None = None,
    ) -> Organizer:
        expires_at = self._clock() + timedelta(seconds=tokens.expires_in) if tokens.expires_in else None
        connection = PaymentConnection(
            connected=True,
            provider_user_id=tokens.user_id or provider_user_id,
            encrypted_access_token=self._cipher.encrypt(tokens.access_token),
            encrypted_refresh_token=self._cipher.encrypt(tokens.refresh_token),
            expires_at=expires_at,
        )
        return self._store.save_payment_connection(organizer_id, connection)
