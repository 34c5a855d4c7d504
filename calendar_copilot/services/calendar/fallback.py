"""
Synthetic calendar data and the degradation policy that selects it.

When the real backend fails, reads are answered with a small fixed set
of sample events and writes with an unsaved echo of the requested event.
Both carry ``is_synthetic=True`` so the caller must disclose them.
"""

import logging
from collections.abc import Callable
from datetime import datetime, time, timedelta, timezone
from uuid import uuid4

from calendar_copilot.schemas.calendar import (
    CalendarEvent,
    CalendarQueryResult,
    CalendarWriteResult,
    ResolvedCredential,
)
from calendar_copilot.services.calendar.errors import CalendarBackendError
from calendar_copilot.services.calendar.gateway import CalendarSource, validate_duration

logger = logging.getLogger(__name__)

SYNTHETIC_ID_PREFIX = "synthetic-"

# (title, days from now, start time, duration minutes, description)
SYNTHETIC_EVENTS = [
    ("Team Sync", 1, time(10, 0), 60, "Sample event: daily team sync"),
    ("Project Review", 7, time(14, 0), 60, "Sample event: weekly project review"),
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyntheticCalendarSource:
    """Local stand-in for the calendar backend. Never touches the network.

    Reads return the two SYNTHETIC_EVENTS, one tomorrow and one a week
    out, regardless of the requested range.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self.clock = clock

    async def list_events(
        self,
        calendar_id: str,
        range_start: datetime,
        range_end: datetime,
        credential: ResolvedCredential | None = None,
    ) -> list[CalendarEvent]:
        now = self.clock()
        events = []
        for index, (title, days, start_time, minutes, description) in enumerate(SYNTHETIC_EVENTS, 1):
            start = datetime.combine((now + timedelta(days=days)).date(), start_time, tzinfo=now.tzinfo)
            events.append(CalendarEvent(
                id=f"{SYNTHETIC_ID_PREFIX}{index}",
                title=title,
                start=start,
                end=start + timedelta(minutes=minutes),
                time_zone=getattr(now.tzinfo, "key", None) or "UTC",
                description=description,
            ))
        return events

    async def create_event(
        self,
        calendar_id: str,
        title: str,
        start: datetime,
        duration_minutes: int,
        attendees: list[str],
        credential: ResolvedCredential | None = None,
        description: str | None = None,
    ) -> CalendarEvent:
        duration_minutes = validate_duration(duration_minutes)
        return CalendarEvent(
            id=f"{SYNTHETIC_ID_PREFIX}{uuid4().hex[:12]}",
            title=title,
            start=start,
            end=start + timedelta(minutes=duration_minutes),
            time_zone=getattr(start.tzinfo, "key", None),
            attendees=attendees,
            description=description or None,
        )


class DegradationPolicy:
    """Decides whether a backend failure becomes synthetic data.

    Backend errors (unavailable, not found, forbidden) degrade on both
    read and write. Anything else propagates.
    """

    def __init__(
        self,
        fallback: CalendarSource | None = None,
        degradable: tuple[type[Exception], ...] = (CalendarBackendError,),
    ) -> None:
        self.fallback = fallback or SyntheticCalendarSource()
        self.degradable = degradable

    def should_degrade(self, error: Exception) -> bool:
        return isinstance(error, self.degradable)

    async def list_events(
        self,
        primary: CalendarSource,
        calendar_id: str,
        range_start: datetime,
        range_end: datetime,
        credential: ResolvedCredential,
    ) -> CalendarQueryResult:
        try:
            events = await primary.list_events(calendar_id, range_start, range_end, credential)
            return CalendarQueryResult(events=events)
        except Exception as e:
            if not self.should_degrade(e):
                raise
            logger.warning("Calendar read failed, substituting synthetic events: %s", e)
            events = await self.fallback.list_events(calendar_id, range_start, range_end, credential)
            return CalendarQueryResult(events=events, is_synthetic=True, degraded_reason=str(e))

    async def create_event(
        self,
        primary: CalendarSource,
        calendar_id: str,
        title: str,
        start: datetime,
        duration_minutes: int,
        attendees: list[str],
        credential: ResolvedCredential,
        description: str | None = None,
    ) -> CalendarWriteResult:
        try:
            event = await primary.create_event(
                calendar_id, title, start, duration_minutes, attendees, credential, description
            )
            return CalendarWriteResult(event=event)
        except Exception as e:
            if not self.should_degrade(e):
                raise
            logger.warning("Calendar write failed, returning unsaved echo: %s", e)
            event = await self.fallback.create_event(
                calendar_id, title, start, duration_minutes, attendees, credential, description
            )
            return CalendarWriteResult(event=event, is_synthetic=True, degraded_reason=str(e))
