"""Store interfaces (repository pattern).

Stores must be swappable and return domain models.
"""

from abc import ABC, abstractmethod
from typing import Any
from uuid import UUID

from events.domain import (
    Batch,
    BatchId,
    Coupon,
    CouponId,
    Event,
    EventId,
    EventStatus,
    Kit,
    Modality,
    ModalityId,
)
from events.domain.commands import BatchDraft, CouponDraft, EventDraft, KitDraft, ModalityDraft


class EventStore(ABC):
    """Interface for event catalog persistence operations."""

    @abstractmethod
    def list_events(
        self,
        organizer_id: UUID,
        status: EventStatus | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[Event], int]:
        """Return one page of an organizer's events (newest first) and the total count."""
        ...

    @abstractmethod
    def list_organizer_events(self, organizer_id: UUID) -> list[tuple[Event, int]]:
        """Return every event of the organizer with its modality count, soonest first."""
        ...

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...

    @abstractmethod
    def get_event_by_slug(self, slug: str) -> Event | None:
        ...

    @abstractmethod
    def slugs_like(self, base_slug: str) -> set[str]:
        """Return existing slugs equal to ``base_slug`` or starting with ``base_slug-``."""
        ...

    @abstractmethod
    def create_event(self, organizer_id: UUID, slug: str, draft: EventDraft) -> Event:
        ...

    @abstractmethod
    def update_event(self, event_id: EventId, changes: dict[str, Any]) -> Event:
        ...

    @abstractmethod
    def delete_event(self, event_id: EventId) -> None:
        """Delete an event and its catalog.

        Raises:
            EventHasRegistrationsError: If any registration references the event.
        """
        ...

    @abstractmethod
    def list_modalities(self, event_id: EventId, active_only: bool = False) -> list[Modality]:
        """Return modalities ordered by display order."""
        ...

    @abstractmethod
    def get_modality(self, modality_id: ModalityId) -> Modality | None:
        ...

    @abstractmethod
    def create_modality(self, event_id: EventId, draft: ModalityDraft) -> Modality:
        ...

    @abstractmethod
    def update_modality(self, modality_id: ModalityId, changes: dict[str, Any]) -> Modality:
        ...

    @abstractmethod
    def delete_modality(self, modality_id: ModalityId) -> None:
        """Raises InUseError when registrations reference the modality."""
        ...

    @abstractmethod
    def list_batches(self, event_id: EventId, active_only: bool = False) -> list[Batch]:
        ...

    @abstractmethod
    def get_batch(self, batch_id: BatchId) -> Batch | None:
        ...

    @abstractmethod
    def create_batch(self, event_id: EventId, draft: BatchDraft) -> Batch:
        ...

    @abstractmethod
    def update_batch(self, batch_id: BatchId, changes: dict[str, Any]) -> Batch:
        ...

    @abstractmethod
    def delete_batch(self, batch_id: BatchId) -> None:
        ...

    @abstractmethod
    def list_coupons(self, event_id: EventId) -> list[Coupon]:
        ...

    @abstractmethod
    def get_coupon(self, coupon_id: CouponId) -> Coupon | None:
        ...

    @abstractmethod
    def get_coupon_by_code(self, event_id: EventId, code: str) -> Coupon | None:
        """Case-insensitive lookup within an event, active or not."""
        ...

    @abstractmethod
    def create_coupon(self, event_id: EventId, draft: CouponDraft) -> Coupon:
        """Raises CouponCodeTakenError when the code already exists in the event."""
        ...

    @abstractmethod
    def update_coupon(self, coupon_id: CouponId, changes: dict[str, Any]) -> Coupon:
        ...

    @abstractmethod
    def delete_coupon(self, coupon_id: CouponId) -> None:
        ...

    @abstractmethod
    def get_kit(self, event_id: EventId) -> Kit | None:
        ...

    @abstractmethod
    def create_kit(self, event_id: EventId, draft: KitDraft) -> Kit:
        """Raises KitAlreadyExistsError when the event already has one."""
        ...

    @abstractmethod
    def update_kit(self, event_id: EventId, changes: dict[str, Any]) -> Kit:
        """Apply changes; a ``sizes`` entry replaces the stock of the listed sizes."""
        ...
