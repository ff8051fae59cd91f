"""Organizer dashboard totals."""

from collections import Counter
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable
from uuid import UUID

from django.utils import timezone

from events.domain import EventStatus, Money
from events.stores.interfaces import EventStore
from registrations.domain import (
    Alert,
    DashboardStats,
    Registration,
    RegistrationStatus,
    RegistrationSummary,
    UpcomingEvent,
)
from registrations.stores.interfaces import RegistrationStore

RECENT_WINDOW = timedelta(days=7)
UPCOMING_WINDOW = timedelta(days=7)
STALE_PENDING = timedelta(hours=24)


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


class DashboardService:
    def __init__(
        self,
        store: RegistrationStore,
        events: EventStore,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._store = store
        self._events = events
        self._clock = clock

    def stats(self, organizer_id: UUID) -> DashboardStats:
        now = self._clock()
        events = self._events.list_organizer_events(organizer_id)
        registrations = self._store.list_for_organizer(organizer_id)

        statuses = Counter(registration.status for registration in registrations)
        confirmed = [r for r in registrations if r.status is RegistrationStatus.CONFIRMED]
        gross = sum((r.subtotal.amount for r in confirmed), Decimal("0"))
        fees = {r.payment_id: r.provider_fee.amount for r in confirmed if r.payment_id and r.provider_fee}
        provider_fees = sum(fees.values(), Decimal("0"))

        per_event = Counter(registration.event_id for registration in registrations)
        upcoming = [event for event, _ in events if event.event_date >= now]

        return DashboardStats(
            events_total=len(events),
            events_published=sum(1 for event, _ in events if event.status is EventStatus.PUBLISHED),
            events_draft=sum(1 for event, _ in events if event.status is EventStatus.DRAFT),
            registrations=RegistrationSummary(
                total=len(registrations),
                pending=statuses[RegistrationStatus.PENDING],
                confirmed=statuses[RegistrationStatus.CONFIRMED],
                canceled=statuses[RegistrationStatus.CANCELED],
                expired=statuses[RegistrationStatus.EXPIRED],
                revenue=Money(gross),
            ),
            registrations_recent=sum(1 for r in registrations if r.created_at >= now - RECENT_WINDOW),
            gross_revenue=Money(gross),
            provider_fees=Money(provider_fees),
            net_revenue=Money(gross - provider_fees),
            upcoming_event=(
                UpcomingEvent(
                    id=upcoming[0].id,
                    name=upcoming[0].name,
                    event_date=upcoming[0].event_date,
                    registrations=per_event[upcoming[0].id],
                )
                if upcoming
                else None
            ),
            alerts=tuple(self._alerts(now, events, registrations)),
        )

    def _alerts(self, now: datetime, events: list, registrations: list[Registration]) -> list[Alert]:
        alerts = []
        soon = [event for event, _ in events if now <= event.event_date <= now + UPCOMING_WINDOW]
        if soon:
            alerts.append(Alert("info", f"{_plural(len(soon), 'event', 'events')} in the next 7 days"))
        stale = [
            r for r in registrations if r.status is RegistrationStatus.PENDING and r.created_at < now - STALE_PENDING
        ]
        if stale:
            alerts.append(
                Alert("warning", f"{_plural(len(stale), 'registration', 'registrations')} pending for over 24h")
            )
        empty = [event for event, modalities in events if modalities == 0]
        if empty:
            alerts.append(Alert("warning", f"{_plural(len(empty), 'event', 'events')} without modalities"))
        return alerts
