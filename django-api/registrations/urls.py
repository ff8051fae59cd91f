from django.urls import path

from registrations.handlers import (
    CheckoutView,
    DashboardStatsView,
    EventRegistrationsView,
    MercadoPagoWebhookView,
    MyRegistrationsView,
    ParticipantMeView,
    PaymentSyncView,
    PendingPaymentsView,
    ProviderFeeView,
    RecentParticipantsView,
    RegistrationCancelView,
    RegistrationCheckView,
    RegistrationCreateView,
    RegistrationDetailView,
)


def get_urlpatterns(container) -> list:
    service, checkout, sync = container.registrations, container.checkout, container.payment_sync
    return [
        path("checkout", CheckoutView.as_view(checkout=checkout), name="checkout"),
        path(
            "registrations/create",
            RegistrationCreateView.as_view(checkout=checkout),
            name="registration-create",
        ),
        path("registrations/my", MyRegistrationsView.as_view(service=service), name="registration-my"),
        path("registrations/check", RegistrationCheckView.as_view(service=service), name="registration-check"),
        path(
            "registrations/<str:registration_id>",
            RegistrationDetailView.as_view(service=service),
            name="registration-detail",
        ),
        path(
            "registrations/<str:registration_id>/cancel",
            RegistrationCancelView.as_view(service=service),
            name="registration-cancel",
        ),
        path(
            "registrations/<str:registration_id>/recalculate-fee",
            ProviderFeeView.as_view(sync=sync),
            name="registration-recalculate-fee",
        ),
        path(
            "events/<str:event_id>/registrations",
            EventRegistrationsView.as_view(service=service),
            name="event-registrations",
        ),
        path("participants/me", ParticipantMeView.as_view(service=service), name="participant-me"),
        path("participants/recent", RecentParticipantsView.as_view(service=service), name="participant-recent"),
        path("payments/sync-status", PaymentSyncView.as_view(sync=sync), name="payment-sync"),
        path("payments/check-pending", PendingPaymentsView.as_view(sync=sync), name="payment-check-pending"),
        path("dashboard/stats", DashboardStatsView.as_view(dashboard=container.dashboard), name="dashboard-stats"),
        path(
            "webhooks/mercadopago",
            MercadoPagoWebhookView.as_view(webhooks=container.webhooks),
            name="webhook-mercadopago",
        ),
    ]
