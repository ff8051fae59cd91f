from registrations.handlers.views import (
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

__all__ = [
    "CheckoutView",
    "DashboardStatsView",
    "EventRegistrationsView",
    "MercadoPagoWebhookView",
    "MyRegistrationsView",
    "ParticipantMeView",
    "PaymentSyncView",
    "PendingPaymentsView",
    "ProviderFeeView",
    "RecentParticipantsView",
    "RegistrationCancelView",
    "RegistrationCheckView",
    "RegistrationCreateView",
    "RegistrationDetailView",
]
