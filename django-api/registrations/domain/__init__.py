from registrations.domain.models import (
    Alert,
    DashboardStats,
    KnownParticipant,
    PaymentStatus,
    Registration,
    RegistrationDetail,
    RegistrationId,
    RegistrationStatus,
    RegistrationSummary,
    UpcomingEvent,
)
from registrations.domain.transitions import Transition, map_provider_status, plan_transition

__all__ = [
    "Alert",
    "DashboardStats",
    "KnownParticipant",
    "PaymentStatus",
    "Registration",
    "RegistrationDetail",
    "RegistrationId",
    "RegistrationStatus",
    "RegistrationSummary",
    "Transition",
    "UpcomingEvent",
    "map_provider_status",
    "plan_transition",
]
