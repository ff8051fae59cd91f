from accounts.domain.models import (
    Gender,
    Organizer,
    OrganizerSignup,
    Participant,
    ParticipantProfile,
    PaymentConnection,
    Principal,
    PrincipalKind,
    TokenPair,
)

__all__ = [
    "Gender",
    "Organizer",
    "OrganizerSignup",
    "Participant",
    "ParticipantProfile",
    "PaymentConnection",
    "Principal",
    "PrincipalKind",
    "TokenPair",
]
