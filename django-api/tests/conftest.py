"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from accounts import models as account_models
from accounts.domain import ParticipantProfile, Principal, PrincipalKind
from accounts.services.account_service import AccountService
from accounts.services.crypto import TokenCipher
from accounts.services.token_service import TokenService
from accounts.stores.django_store import DjangoAccountStore
from config.container import Container
from events import models as catalog
from events.services.catalog_service import CatalogService
from events.services.event_service import EventService
from events.services.pricing import PricingService
from events.stores.django_store import DjangoEventStore
from payments.errors import PaymentProviderError
from payments.gateway import OAuthTokens, PaymentGateway, PaymentInfo, Preference
from payments.services import ConnectionService
from registrations.domain.commands import Attendee, GroupRequest, RegistrationExtras
from registrations.services.checkout_service import CheckoutService
from registrations.services.dashboard_service import DashboardService
from registrations.services.payment_sync_service import PaymentSyncService
from registrations.services.registration_service import RegistrationService
from registrations.services.webhook_service import WebhookService
from registrations.stores.django_store import DjangoRegistrationStore

ORGANIZER_TOKEN = "APP_USR-organizer-token"
APP_TOKEN = "APP_USR-application-token"
WEBHOOK_SECRET = "webhook-secret"
WEBHOOK_URL = "https://api.example.com/api/webhooks/mercadopago"

CPFS = ["52998224725", "11144477735", "12345678909", "98765432100", "39053344705", "15350946056"]


def cpf(index: int) -> str:
    """A CPF with valid check digits for attendee ``index``."""
    if index < len(CPFS):
        return CPFS[index]
    digits = [int(digit) for digit in f"{200000000 + index:09d}"]
    for length in (9, 10):
        total = sum(digit * weight for digit, weight in zip(digits, range(length + 1, 1, -1)))
        digits.append(total * 10 % 11 % 10)
    return "".join(str(digit) for digit in digits)


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class FakeGateway(PaymentGateway):
    """In-memory provider: records preferences and serves canned payments."""

    def __init__(self) -> None:
        self.preferences = []
        self.payments: dict[str, PaymentInfo] = {}
        self.payment_reads = []
        self.unreachable: set[str] = set()

    def authorization_url(self, state: str) -> str:
        return f"https://auth.example.com/authorization?state={state}"

    def exchange_code(self, code: str) -> OAuthTokens:
        return OAuthTokens(
            access_token=f"access-{code}", refresh_token=f"refresh-{code}", expires_in=3600, user_id="42"
        )

    def refresh_tokens(self, refresh_token: str) -> OAuthTokens:
        return OAuthTokens(access_token="access-refreshed", refresh_token="refresh-refreshed", expires_in=3600)

    def create_preference(self, access_token, request) -> Preference:
        self.preferences.append((access_token, request))
        number = len(self.preferences)
        return Preference(id=f"pref-{number}", checkout_url=f"https://checkout.example.com/{number}")

    def get_payment(self, access_token: str, payment_id: str) -> PaymentInfo:
        self.payment_reads.append((access_token, payment_id))
        if payment_id in self.unreachable:
            raise PaymentProviderError("timeout")
        return self.payments[payment_id]

    def search_payments(self, access_token: str, external_reference: str) -> list[PaymentInfo]:
        self.payment_reads.append((access_token, f"search:{external_reference}"))
        found = [payment for payment in self.payments.values() if payment.external_reference == external_reference]
        return list(reversed(found))

    def set_payment(self, payment_id: str, status: str, external_reference=None, **kwargs) -> None:
        self.payments[payment_id] = PaymentInfo(
            id=payment_id,
            status=status,
            status_detail=kwargs.get("status_detail"),
            external_reference=str(external_reference) if external_reference else None,
            payment_method=kwargs.get("payment_method", "pix"),
            transaction_amount=kwargs.get("transaction_amount"),
            provider_fee=kwargs.get("provider_fee"),
        )


def build_container(gateway: PaymentGateway, clock: Clock, platform_fee_percent: Decimal = Decimal("0")) -> Container:
    account_store = DjangoAccountStore()
    event_store = DjangoEventStore()
    registration_store = DjangoRegistrationStore()
    tokens = TokenService.from_settings()

    connections = ConnectionService(account_store, gateway, TokenCipher.from_settings(), clock=clock)
    events = EventService(event_store, account_store, clock=clock)
    pricing = PricingService(event_store, clock=clock, platform_fee_percent=platform_fee_percent)
    registrations = RegistrationService(registration_store, event_store, account_store, pricing, clock=clock)
    return Container(
        accounts=AccountService(account_store, tokens),
        connections=connections,
        events=events,
        catalog=CatalogService(event_store, events),
        pricing=pricing,
        registrations=registrations,
        checkout=CheckoutService(
            registrations,
            connections,
            gateway,
            event_store,
            account_store,
            app_url="https://app.example.com",
            notification_url=WEBHOOK_URL,
        ),
        webhooks=WebhookService(
            registrations,
            registration_store,
            event_store,
            connections,
            gateway,
            secret=WEBHOOK_SECRET,
            webhook_url=WEBHOOK_URL,
            app_access_token=APP_TOKEN,
        ),
        payment_sync=PaymentSyncService(
            registrations, registration_store, event_store, connections, gateway, clock=clock
        ),
        dashboard=DashboardService(registration_store, event_store, clock=clock),
    )


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def clock() -> Clock:
    return Clock(timezone.now())


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def container(db, gateway, clock) -> Container:
    return build_container(gateway, clock)


@pytest.fixture
def organizer(db) -> account_models.Organizer:
    return make_organizer()


@pytest.fixture
def event(organizer, clock) -> catalog.Event:
    return make_event(organizer, clock.now)


@pytest.fixture
def modality(event) -> catalog.Modality:
    return make_modality(event)


def make_organizer(email: str = "organizer@example.com", cpf_cnpj: str = "11222333000181", connected: bool = True):
    columns = {}
    if connected:
        columns = {
            "mp_connected": True,
            "mp_user_id": "1234",
            "mp_access_token": TokenCipher.from_settings().encrypt(ORGANIZER_TOKEN),
            "mp_refresh_token": TokenCipher.from_settings().encrypt("APP_USR-refresh"),
        }
    return account_models.Organizer.objects.create(
        email=email,
        password="not-used",
        full_name="Ana Organizadora",
        cpf_cnpj=cpf_cnpj,
        phone="11999998888",
        **columns,
    )


def make_event(organizer, now: datetime, **overrides) -> catalog.Event:
    columns = {
        "name": "Corrida da Cidade",
        "slug": "corrida-da-cidade",
        "description": "Corrida de rua",
        "event_date": now + timedelta(days=60),
        "registration_start": now - timedelta(days=1),
        "registration_end": now + timedelta(days=30),
        "status": catalog.Event.Status.PUBLISHED,
        "allow_group_reg": True,
        "max_group_size": 5,
    }
    columns.update(overrides)
    return catalog.Event.objects.create(organizer=organizer, **columns)


def make_modality(event, **overrides) -> catalog.Modality:
    columns = {"name": "5K", "price": Decimal("100.00")}
    columns.update(overrides)
    return catalog.Modality.objects.create(event=event, **columns)


def make_batch(event, **overrides) -> catalog.Batch:
    columns = {"name": "Lote 1", "type": catalog.Batch.Type.VOLUME, "price": Decimal("80.00")}
    columns.update(overrides)
    return catalog.Batch.objects.create(event=event, **columns)


def make_coupon(event, now: datetime, **overrides) -> catalog.Coupon:
    columns = {
        "code": "DESC10",
        "discount_type": catalog.DiscountType.PERCENTAGE,
        "discount_value": Decimal("10"),
        "start_date": now - timedelta(days=1),
        "end_date": now + timedelta(days=10),
    }
    columns.update(overrides)
    return catalog.Coupon.objects.create(event=event, **columns)


def make_kit(event, sizes: dict[str, int], shirt_required: bool = False) -> catalog.Kit:
    kit = catalog.Kit.objects.create(event=event, include_shirt=True, shirt_required=shirt_required)
    for size, stock in sizes.items():
        catalog.KitSize.objects.create(kit=kit, size=size, stock=stock)
    return kit


def profile(index: int = 0, name: str = "Maria Silva") -> ParticipantProfile:
    return ParticipantProfile(
        email=f"runner{index}@example.com",
        full_name=name,
        cpf=cpf(index),
        phone="11988887777",
    )


def group_request(event, modality, count: int = 1, coupon_code=None, sizes=None, first: int = 0) -> GroupRequest:
    sizes = sizes or [None] * count
    return GroupRequest(
        event_id=str(event.id),
        modality_id=str(modality.id),
        attendees=tuple(Attendee(profile=profile(first + index), shirt_size=sizes[index]) for index in range(count)),
        coupon_code=coupon_code,
        extras=RegistrationExtras(terms_accepted=True, privacy_accepted=True),
    )


def bearer(principal_id, kind: PrincipalKind, email: str = "someone@example.com") -> dict:
    pair = TokenService.from_settings().issue(Principal(id=principal_id, kind=kind, email=email))
    return {"HTTP_AUTHORIZATION": f"Bearer {pair.access_token}"}


@pytest.fixture
def organizer_headers(organizer) -> dict:
    return bearer(organizer.id, PrincipalKind.USER, organizer.email)
