"""Mercado Pago implementation of the PaymentGateway over its REST API."""

import typing as t
from decimal import Decimal, InvalidOperation
from urllib.parse import urlencode

import requests
import structlog
from django.conf import settings

from payments.errors import PaymentProviderError
from payments.gateway import (
    OAuthTokens,
    PaymentGateway,
    PaymentInfo,
    Preference,
    PreferenceRequest,
)

logger = structlog.get_logger(__name__)

OAUTH_URL = "https://auth.mercadopago.com.br/authorization"
API_URL = "https://api.mercadopago.com"


def _decimal(value: t.Any) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def provider_fee(payment: dict[str, t.Any]) -> Decimal | None:
    """Extract what the provider kept from a payment payload.

    Prefers the itemized ``fee_details``; falls back to amount minus net
    received minus our marketplace fee. Non-positive results mean unknown.
    """
    details = payment.get("transaction_details") or {}
    fees = payment.get("fee_details") or details.get("fee_details") or []
    itemized = sum((_decimal(fee.get("amount")) or Decimal("0") for fee in fees), Decimal("0"))
    if itemized > 0:
        return itemized

    amount = _decimal(payment.get("transaction_amount")) or _decimal(details.get("total_paid_amount"))
    net = _decimal(details.get("net_received_amount"))
    if amount is None or net is None:
        return None
    fee = amount - net - (_decimal(payment.get("marketplace_fee")) or Decimal("0"))
    return fee if fee > 0 else None


class MercadoPagoGateway(PaymentGateway):
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: int = 10,
        session: requests.Session | None = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls) -> "MercadoPagoGateway":
        return cls(
            client_id=settings.MP_CLIENT_ID,
            client_secret=settings.MP_CLIENT_SECRET,
            redirect_uri=f"{settings.APP_URL}/api/auth/mercadopago/callback",
            timeout=settings.MP_API_TIMEOUT,
        )

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self._client_id,
            "response_type": "code",
            "platform_id": "mp",
            "state": state,
            "redirect_uri": self._redirect_uri,
        }
        return f"{OAUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> OAuthTokens:
        data = self._request(
            "POST",
            "/oauth/token",
            json={
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self._redirect_uri,
            },
        )
        return self._tokens(data)

    def refresh_tokens(self, refresh_token: str) -> OAuthTokens:
        data = self._request(
            "POST",
            "/oauth/token",
            json={
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
        )
        return self._tokens(data)

    def create_preference(self, access_token: str, request: PreferenceRequest) -> Preference:
        body: dict[str, t.Any] = {
            "items": [
                {
                    "id": item.id,
                    "title": item.title,
                    "description": item.description,
                    "category_id": "tickets",
                    "quantity": item.quantity,
                    "unit_price": float(item.unit_price),
                }
                for item in request.items
            ],
            "payer": {"name": request.payer_name, "email": request.payer_email},
            "back_urls": {
                "success": request.success_url,
                "failure": request.failure_url,
                "pending": request.pending_url,
            },
            "auto_return": "approved",
            "notification_url": request.notification_url,
            "external_reference": request.external_reference,
            "binary_mode": False,
        }
        if request.marketplace_fee:
            body["marketplace_fee"] = float(request.marketplace_fee)

        data = self._request("POST", "/checkout/preferences", json=body, access_token=access_token)
        return Preference(
            id=str(data["id"]),
            checkout_url=data["init_point"],
            sandbox_checkout_url=data.get("sandbox_init_point"),
        )

    def get_payment(self, access_token: str, payment_id: str) -> PaymentInfo:
        return self._payment(self._request("GET", f"/v1/payments/{payment_id}", access_token=access_token))

    def search_payments(self, access_token: str, external_reference: str) -> list[PaymentInfo]:
        query = urlencode(
            {"external_reference": external_reference, "sort": "date_created", "criteria": "desc", "limit": 50}
        )
        data = self._request("GET", f"/v1/payments/search?{query}", access_token=access_token)
        return [
            self._payment(result)
            for result in data.get("results") or []
            if str(result.get("external_reference")) == external_reference
        ]

    @staticmethod
    def _payment(data: dict[str, t.Any]) -> PaymentInfo:
        return PaymentInfo(
            id=str(data["id"]),
            status=data["status"],
            status_detail=data.get("status_detail"),
            external_reference=data.get("external_reference") or None,
            payment_method=data.get("payment_type_id"),
            transaction_amount=_decimal(data.get("transaction_amount")),
            provider_fee=provider_fee(data),
        )

    def _request(
        self,
        method: str,
        path: str,
        json: dict[str, t.Any] | None = None,
        access_token: str | None = None,
    ) -> dict[str, t.Any]:
        headers = {"Accept": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        try:
            response = self._session.request(
                method, f"{API_URL}{path}", json=json, headers=headers, timeout=self._timeout
            )
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as exc:
            logger.warning(
                "mercadopago_request_rejected",
                path=path,
                status_code=exc.response.status_code if exc.response is not None else None,
            )
            raise PaymentProviderError(f"{method} {path} rejected") from exc
        except (requests.RequestException, ValueError) as exc:
            logger.warning("mercadopago_request_failed", path=path, error=str(exc))
            raise PaymentProviderError(f"{method} {path} failed") from exc

    @staticmethod
    def _tokens(data: dict[str, t.Any]) -> OAuthTokens:
        try:
            return OAuthTokens(
                access_token=data["access_token"],
                refresh_token=data["refresh_token"],
                expires_in=int(data.get("expires_in", 0)),
                user_id=str(data["user_id"]) if data.get("user_id") is not None else None,
            )
        except KeyError as exc:
            raise PaymentProviderError("token response missing fields") from exc
