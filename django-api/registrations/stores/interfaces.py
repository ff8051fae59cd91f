"""Store interfaces (repository pattern) for registrations.

Every counter mutation (sold slots, batch sales, coupon uses, kit stock)
happens inside ``confirm`` and ``reverse``; no other method touches them.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from events.domain import EventId, ModalityId
from registrations.domain import (
    PaymentStatus,
    Registration,
    RegistrationDetail,
    RegistrationId,
    RegistrationStatus,
)
from registrations.domain.commands import NewRegistration


class RegistrationStore(ABC):
    """Interface for registration persistence."""

    @abstractmethod
    def create_registrations(
        self, event_id: EventId, order_reference: UUID, entries: list[NewRegistration]
    ) -> list[Registration]:
        """Persist PENDING registrations with consecutive numbers for the event.

        Numbers are allocated while holding a lock on the event row.

        Raises:
            RegistrationNumberConflictError: If a number was taken concurrently.
        """
        ...

    @abstractmethod
    def get(self, registration_id: RegistrationId) -> Registration | None:
        ...

    @abstractmethod
    def get_detail(self, registration_id: RegistrationId) -> RegistrationDetail | None:
        ...

    @abstractmethod
    def active_participants(self, modality_id: ModalityId, participant_ids: list[UUID]) -> set[UUID]:
        """Return which of the participants hold a PENDING or CONFIRMED registration."""
        ...

    @abstractmethod
    def find_by_payment_id(self, payment_id: str) -> list[Registration]:
        ...

    @abstractmethod
    def find_by_order_reference(self, order_reference: UUID) -> list[Registration]:
        ...

    @abstractmethod
    def bind_payment(
        self, order_reference: UUID, payment_id: str, reopen_rejected: bool = False
    ) -> list[Registration]:
        """Attach a provider payment id to an order and return the rows bound to it.

        Rows with no payment id are bound. With ``reopen_rejected``, rows canceled
        by a rejected payment are moved to the new payment and back to PENDING,
        so a retry inside the same checkout can still confirm them.
        """
        ...

    @abstractmethod
    def set_preference(self, order_reference: UUID, preference_id: str) -> None:
        ...

    @abstractmethod
    def confirm(
        self,
        registration_ids: list[RegistrationId],
        now: datetime,
        payment_method: str | None = None,
        provider_fee: Decimal | None = None,
    ) -> list[Registration]:
        """Confirm registrations and commit their inventory in one transaction.

        Rows that are no longer confirmable once locked are left untouched.

        Raises:
            SoldOutError, BatchSoldOutError, CouponExhaustedError,
            ShirtSizeSoldOutError: If a limit would be exceeded; nothing is written.
        """
        ...

    @abstractmethod
    def reverse(
        self, registration_ids: list[RegistrationId], payment_status: PaymentStatus, reason: str, now: datetime
    ) -> list[Registration]:
        """Cancel approved registrations and release committed inventory once."""
        ...

    @abstractmethod
    def mark_canceled(
        self,
        registration_ids: list[RegistrationId],
        reason: str,
        now: datetime,
        payment_status: PaymentStatus | None = None,
    ) -> list[Registration]:
        """Cancel registrations without touching inventory.

        An existing cancel reason or timestamp is kept.
        """
        ...

    @abstractmethod
    def expire_pending(self, created_before: datetime) -> int:
        """Mark PENDING registrations with a pending payment as EXPIRED; return how many."""
        ...

    @abstractmethod
    def list_for_event(self, event_id: EventId) -> list[RegistrationDetail]:
        ...

    @abstractmethod
    def list_for_participant(self, participant_id: UUID) -> list[RegistrationDetail]:
        """Registrations where the participant attends or paid, newest first."""
        ...

    @abstractmethod
    def list_for_organizer(
        self,
        organizer_id: UUID,
        event_id: EventId | None = None,
        statuses: list[RegistrationStatus] | None = None,
        created_after: datetime | None = None,
    ) -> list[Registration]:
        """Registrations across the organizer's events, newest first."""
        ...

    @abstractmethod
    def set_provider_fee(self, payment_id: str, provider_fee: Decimal | None) -> list[Registration]:
        """Record what the provider kept on a payment for every row it paid for."""
        ...

    @abstractmethod
    def webhook_seen(self, request_id: str) -> bool:
        ...

    @abstractmethod
    def record_webhook(self, request_id: str, payment_id: str | None) -> None:
        """Remember a handled delivery; recording the same id twice is harmless."""
        ...
