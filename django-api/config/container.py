"""Wires stores, gateways and services together.

Views receive their service through ``as_view(...)``; tests build their own
services over in-memory fakes instead of going through this module.
"""

from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings

from accounts.services.account_service import AccountService
from accounts.services.crypto import TokenCipher
from accounts.services.token_service import TokenService
from accounts.stores.django_store import DjangoAccountStore
from events.services.catalog_service import CatalogService
from events.services.event_service import EventService
from events.services.pricing import PricingService
from events.stores.django_store import DjangoEventStore
from payments.mercadopago import MercadoPagoGateway
from payments.services import ConnectionService
from registrations.services.checkout_service import CheckoutService
from registrations.services.dashboard_service import DashboardService
from registrations.services.payment_sync_service import PaymentSyncService
from registrations.services.registration_service import RegistrationService
from registrations.services.webhook_service import WebhookService
from registrations.stores.django_store import DjangoRegistrationStore


@dataclass(frozen=True)
class Container:
    accounts: AccountService
    connections: ConnectionService
    events: EventService
    catalog: CatalogService
    pricing: PricingService
    registrations: RegistrationService
    checkout: CheckoutService
    webhooks: WebhookService
    payment_sync: PaymentSyncService
    dashboard: DashboardService

    @classmethod
    def from_settings(cls) -> "Container":
        account_store = DjangoAccountStore()
        event_store = DjangoEventStore()
        registration_store = DjangoRegistrationStore()
        gateway = MercadoPagoGateway.from_settings()

        connections = ConnectionService(account_store, gateway, TokenCipher.from_settings())
        events = EventService(event_store, account_store)
        pricing = PricingService(event_store, platform_fee_percent=settings.PLATFORM_FEE_PERCENT)
        registrations = RegistrationService(
            registration_store,
            event_store,
            account_store,
            pricing,
            payment_window=timedelta(minutes=settings.PAYMENT_WINDOW_MINUTES),
        )
        return cls(
            accounts=AccountService(account_store, TokenService.from_settings()),
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
                app_url=settings.APP_URL,
                notification_url=settings.MP_WEBHOOK_URL,
            ),
            webhooks=WebhookService(
                registrations,
                registration_store,
                event_store,
                connections,
                gateway,
                secret=settings.MP_WEBHOOK_SECRET,
                webhook_url=settings.MP_WEBHOOK_URL,
                app_access_token=settings.MP_ACCESS_TOKEN,
                allow_unsigned=settings.DEBUG,
            ),
            payment_sync=PaymentSyncService(registrations, registration_store, event_store, connections, gateway),
            dashboard=DashboardService(registration_store, event_store),
        )
