"""Payment provider interface.

The provider is an external collaborator: it hosts checkout, settles funds and
notifies us asynchronously. Implementations must be swappable.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from payments.errors import PaymentProviderError

__all__ = [
    "CheckoutItem",
    "OAuthTokens",
    "PaymentGateway",
    "PaymentInfo",
    "PaymentProviderError",
    "Preference",
    "PreferenceRequest",
]


@dataclass(frozen=True)
class OAuthTokens:
    access_token: str
    refresh_token: str
    expires_in: int
    user_id: str | None = None


@dataclass(frozen=True)
class CheckoutItem:
    id: str
    title: str
    description: str
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True)
class PreferenceRequest:
    items: tuple[CheckoutItem, ...]
    payer_name: str
    payer_email: str
    external_reference: str
    notification_url: str
    success_url: str
    failure_url: str
    pending_url: str
    marketplace_fee: Decimal | None = None


@dataclass(frozen=True)
class Preference:
    id: str
    checkout_url: str
    sandbox_checkout_url: str | None = None


@dataclass(frozen=True)
class PaymentInfo:
    """Payment as reported by the provider."""

    id: str
    status: str
    status_detail: str | None
    external_reference: str | None
    payment_method: str | None
    transaction_amount: Decimal | None
    provider_fee: Decimal | None


class PaymentGateway(ABC):
    """Interface for the payment provider's HTTP API."""

    @abstractmethod
    def authorization_url(self, state: str) -> str:
        """Return the URL an organizer visits to connect their account."""
        ...

    @abstractmethod
    def exchange_code(self, code: str) -> OAuthTokens:
        ...

    @abstractmethod
    def refresh_tokens(self, refresh_token: str) -> OAuthTokens:
        ...

    @abstractmethod
    def create_preference(self, access_token: str, request: PreferenceRequest) -> Preference:
        ...

    @abstractmethod
    def get_payment(self, access_token: str, payment_id: str) -> PaymentInfo:
        ...

    @abstractmethod
    def search_payments(self, access_token: str, external_reference: str) -> list[PaymentInfo]:
        """Payments carrying ``external_reference``, newest first."""
        ...
