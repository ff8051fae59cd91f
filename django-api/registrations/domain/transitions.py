"""Payment status transitions.

``plan_transition`` decides what a provider notification does to a
registration. It is pure so redelivered, stale and out-of-order
notifications can be reasoned about without a database.
"""

from enum import Enum

from registrations.domain.models import PaymentStatus, RegistrationStatus

PROVIDER_STATUSES = {
    "pending": PaymentStatus.PENDING,
    "in_process": PaymentStatus.PENDING,
    "in_mediation": PaymentStatus.PENDING,
    "authorized": PaymentStatus.PENDING,
    "approved": PaymentStatus.APPROVED,
    "rejected": PaymentStatus.REJECTED,
    "cancelled": PaymentStatus.REJECTED,
    "refunded": PaymentStatus.REFUNDED,
    "charged_back": PaymentStatus.REFUNDED,
}

TERMINAL_PAYMENT = (PaymentStatus.REJECTED, PaymentStatus.REFUNDED)
CONFIRMABLE = (RegistrationStatus.PENDING, RegistrationStatus.EXPIRED)


class Transition(Enum):
    NOOP = "noop"
    CONFIRM = "confirm"
    REJECT = "reject"
    REVERSE = "reverse"


def map_provider_status(raw: str | None) -> PaymentStatus | None:
    """Translate the provider's vocabulary; unknown statuses map to None."""
    if not raw:
        return None
    return PROVIDER_STATUSES.get(raw.strip().lower())


def plan_transition(
    status: RegistrationStatus,
    payment_status: PaymentStatus,
    incoming: PaymentStatus | None,
) -> Transition:
    """Decide how ``incoming`` changes a registration.

    - pending never moves a registration; the provider is still working.
    - approved confirms a PENDING or EXPIRED registration once.
    - rejected or refunded cancels an unpaid registration, and reverses a
      confirmed one, releasing its inventory.
    - rejected and refunded payments are final.
    """
    if incoming is None or incoming is PaymentStatus.PENDING:
        return Transition.NOOP
    if payment_status in TERMINAL_PAYMENT or payment_status is incoming:
        return Transition.NOOP

    if incoming is PaymentStatus.APPROVED:
        if payment_status is PaymentStatus.PENDING and status in CONFIRMABLE:
            return Transition.CONFIRM
        return Transition.NOOP

    if payment_status is PaymentStatus.APPROVED:
        return Transition.REVERSE
    return Transition.REJECT
