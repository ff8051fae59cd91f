"""Event service - organizer event management and the public event page.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

import re
import unicodedata
from datetime import datetime
from typing import Any, Callable
from uuid import UUID

import structlog
from django.utils import timezone

from accounts.stores.interfaces import AccountStore
from common.errors import ErrorCode, ValidationError
from common.ids import parse_id
from events.domain import Event, EventDetail, EventId, EventStatus
from events.domain.commands import EventDraft, EventPage
from events.domain.errors import EventNotFoundError
from events.services.pricing import resolve_active_batch
from events.stores.interfaces import EventStore
from payments.errors import PaymentsNotConfiguredError

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 100


def slugify_name(name: str) -> str:
    """Lower-case, accent-free, hyphen-separated slug of an event name."""
    decomposed = unicodedata.normalize("NFD", name.lower())
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    slug = re.sub(r"[^\w\s-]", "", stripped, flags=re.ASCII)
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-+", "-", slug).strip("-")
    return slug or "evento"


def unique_slug(base_slug: str, taken: set[str]) -> str:
    slug, counter = base_slug, 1
    while slug in taken:
        slug = f"{base_slug}-{counter}"
        counter += 1
    return slug


def invalid_dates(message: str, field: str) -> ValidationError:
    return ValidationError(code=ErrorCode.VALIDATION_ERROR, message=message, details={field: [message]})


class EventService:
    """Service for organizer-scoped event operations."""

    def __init__(
        self,
        store: EventStore,
        accounts: AccountStore,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._store = store
        self._accounts = accounts
        self._clock = clock

    def list_events(
        self,
        organizer_id: UUID,
        status: EventStatus | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> EventPage:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        events, total = self._store.list_events(
            organizer_id, status=status, search=search, offset=(page - 1) * limit, limit=limit
        )
        return EventPage(items=tuple(events), total=total, page=page, limit=limit)

    def get_event(self, organizer_id: UUID, event_id: str | EventId) -> Event:
        """Return an event owned by the organizer.

        Raises:
            InvalidIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist or belongs to someone else.
        """
        if not isinstance(event_id, EventId):
            event_id = parse_id(EventId, event_id, "event_id")
        event = self._store.get_event(event_id)
        if event is None or event.organizer_id != organizer_id:
            raise EventNotFoundError()
        return event

    def get_public_event(self, slug: str) -> EventDetail:
        """Return the public page of a published event."""
        event = self._store.get_event_by_slug(slug)
        if event is None or not event.is_published:
            raise EventNotFoundError()
        now = self._clock()
        modalities = sorted(
            self._store.list_modalities(event.id, active_only=True),
            key=lambda modality: modality.price.amount,
        )
        return EventDetail(
            event=event,
            modalities=tuple(modalities),
            current_batch=resolve_active_batch(self._store.list_batches(event.id, active_only=True), now),
            kit=self._store.get_kit(event.id),
            registration_open=event.registration_open(now),
        )

    def create_event(self, organizer_id: UUID, draft: EventDraft) -> Event:
        self._check_dates(draft.event_date, draft.registration_start, draft.registration_end)
        if draft.status is EventStatus.PUBLISHED:
            self._check_can_publish(organizer_id)

        base_slug = slugify_name(draft.name)
        slug = unique_slug(base_slug, self._store.slugs_like(base_slug))
        event = self._store.create_event(organizer_id, slug, draft)
        if event.is_published:
            event = self._store.update_event(event.id, {"published_at": self._clock()})
        logger.info("event_created", event_id=str(event.id), organizer_id=str(organizer_id), slug=slug)
        return event

    def update_event(self, organizer_id: UUID, event_id: str, changes: dict[str, Any]) -> Event:
        """Apply a partial update; date rules are checked on the merged result."""
        event = self.get_event(organizer_id, event_id)
        changes = dict(changes)

        if {"event_date", "registration_start", "registration_end"} & changes.keys():
            self._check_dates(
                changes.get("event_date", event.event_date),
                changes.get("registration_start", event.registration_start),
                changes.get("registration_end", event.registration_end),
            )

        status = changes.get("status")
        if status is EventStatus.PUBLISHED and not event.is_published:
            self._check_can_publish(organizer_id)
            if event.published_at is None:
                changes["published_at"] = self._clock()

        updated = self._store.update_event(event.id, changes)
        logger.info("event_updated", event_id=str(event.id), fields=sorted(changes))
        return updated

    def delete_event(self, organizer_id: UUID, event_id: str) -> None:
        """Delete an event and its catalog.

        Raises:
            EventHasRegistrationsError: If registrations exist for the event.
        """
        event = self.get_event(organizer_id, event_id)
        self._store.delete_event(event.id)
        logger.info("event_deleted", event_id=str(event.id))

    def _check_dates(self, event_date: datetime, registration_start: datetime, registration_end: datetime) -> None:
        if event_date < self._clock():
            raise invalid_dates("Event date must be in the future", "event_date")
        if registration_start >= registration_end:
            raise invalid_dates("Registration must start before it ends", "registration_end")
        if registration_end > event_date:
            raise invalid_dates("Registration must end before the event", "registration_end")

    def _check_can_publish(self, organizer_id: UUID) -> None:
        organizer = self._accounts.get_organizer(organizer_id)
        if organizer is None or not organizer.payment.connected:
            raise PaymentsNotConfiguredError()
