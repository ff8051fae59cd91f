"""Store interfaces (repository pattern) for accounts.

Stores must be swappable and return domain models.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from accounts.domain import (
    Organizer,
    OrganizerSignup,
    Participant,
    ParticipantProfile,
    PaymentConnection,
)


class AccountStore(ABC):
    """Interface for organizer and participant persistence."""

    @abstractmethod
    def get_organizer(self, organizer_id: UUID) -> Organizer | None:
        """Return an organizer by ID, or None if not found."""
        ...

    @abstractmethod
    def get_organizer_credentials(self, email: str) -> tuple[Organizer, str] | None:
        """Return the organizer with that email and its password hash."""
        ...

    @abstractmethod
    def organizer_conflicts(self, email: str, cpf_cnpj: str) -> tuple[bool, bool]:
        """Return whether the email and the document are already taken."""
        ...

    @abstractmethod
    def create_organizer(self, signup: OrganizerSignup, password_hash: str) -> Organizer:
        ...

    @abstractmethod
    def save_payment_connection(self, organizer_id: UUID, connection: PaymentConnection) -> Organizer:
        ...

    @abstractmethod
    def get_participant(self, participant_id: UUID) -> Participant | None:
        ...

    @abstractmethod
    def get_participant_by_cpf(self, cpf: str) -> Participant | None:
        ...

    @abstractmethod
    def get_participant_credentials(self, email: str) -> tuple[Participant, str] | None:
        """Return a participant that can log in with this email and its hash."""
        ...

    @abstractmethod
    def create_participant(self, profile: ParticipantProfile, password_hash: str | None) -> Participant:
        ...

    @abstractmethod
    def set_participant_password(self, participant_id: UUID, password_hash: str) -> Participant:
        ...

    @abstractmethod
    def get_or_create_participants(self, profiles: list[ParticipantProfile]) -> list[Participant]:
        """Return one participant per profile, matched by CPF, in input order.

        Existing participants are returned unchanged.
        """
        ...
