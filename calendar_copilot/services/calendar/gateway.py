"""
Google Calendar gateway.

Wraps the Calendar v3 REST API:
- list events in [range_start, range_end) for a calendar id
- insert one event
- normalize provider payloads into CalendarEvent

Provider statuses map to: 404 -> CalendarNotFound, 403 on write ->
PermissionDenied, anything else (transport, timeout, 401, 5xx) ->
BackendUnavailable.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Protocol
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from calendar_copilot.config import get_settings
from calendar_copilot.schemas.calendar import CalendarEvent, ResolvedCredential
from calendar_copilot.services.calendar.errors import (
    BackendUnavailable,
    CalendarNotFound,
    InvalidDuration,
    PermissionDenied,
)

settings = get_settings()
logger = logging.getLogger(__name__)

# One week
MAX_DURATION_MINUTES = 7 * 24 * 60


class CalendarSource(Protocol):
    """Read/write capability shared by the real gateway and the synthetic source."""

    async def list_events(
        self,
        calendar_id: str,
        range_start: datetime,
        range_end: datetime,
        credential: ResolvedCredential | None,
    ) -> list[CalendarEvent]: ...

    async def create_event(
        self,
        calendar_id: str,
        title: str,
        start: datetime,
        duration_minutes: int,
        attendees: list[str],
        credential: ResolvedCredential | None,
        description: str | None = None,
    ) -> CalendarEvent: ...


def validate_duration(duration_minutes: object) -> int:
    """Return the duration if it is a whole number of minutes between 1 and one week."""
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise InvalidDuration(duration_minutes)
    if duration_minutes <= 0 or duration_minutes > MAX_DURATION_MINUTES:
        raise InvalidDuration(duration_minutes)
    return duration_minutes


class GoogleCalendarGateway:
    """Client for Google Calendar v3 with a bearer credential."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        page_size: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.google_calendar_api_url).rstrip("/")
        self.timeout = timeout or settings.calendar_timeout_seconds
        # Results are capped at one page
        self.page_size = page_size or settings.calendar_page_size
        self._transport = transport

    # ========== Public API ==========

    async def list_events(
        self,
        calendar_id: str,
        range_start: datetime,
        range_end: datetime,
        credential: ResolvedCredential | None,
    ) -> list[CalendarEvent]:
        """List single-occurrence events ordered by start time."""
        params = {
            "timeMin": _to_rfc3339(range_start),
            "timeMax": _to_rfc3339(range_end),
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": self.page_size,
        }

        result = await self._request(
            "GET", self._events_url(calendar_id), credential, params=params, writing=False
        )

        events = []
        for item in result.get("items", []):
            event = self._google_event_to_calendar_event(item)
            if event is not None:
                events.append(event)
        return events

    async def create_event(
        self,
        calendar_id: str,
        title: str,
        start: datetime,
        duration_minutes: int,
        attendees: list[str],
        credential: ResolvedCredential | None,
        description: str | None = None,
    ) -> CalendarEvent:
        """Insert one event; non-idempotent, never retried."""
        duration_minutes = validate_duration(duration_minutes)
        end = start + timedelta(minutes=duration_minutes)
        tz_name = _tz_name(start)

        # Validates title/attendees before the network call
        draft = CalendarEvent(
            title=title,
            start=start,
            end=end,
            time_zone=tz_name,
            attendees=attendees,
            description=description or None,
        )

        body = {
            "summary": draft.title,
            "start": {"dateTime": _to_rfc3339(draft.start)},
            "end": {"dateTime": _to_rfc3339(draft.end)},
            "attendees": [{"email": email} for email in draft.attendees],
        }
        if tz_name:
            body["start"]["timeZone"] = tz_name
            body["end"]["timeZone"] = tz_name
        if draft.description:
            body["description"] = draft.description

        result = await self._request(
            "POST", self._events_url(calendar_id), credential, json=body, writing=True
        )

        return draft.model_copy(update={
            "id": result.get("id"),
            "link": result.get("htmlLink"),
        })

    # ========== Helpers ==========

    def _events_url(self, calendar_id: str) -> str:
        return f"{self.base_url}/calendars/{quote(calendar_id, safe='')}/events"

    async def _request(
        self,
        method: str,
        url: str,
        credential: ResolvedCredential | None,
        writing: bool,
        params: dict | None = None,
        json: dict | None = None,
    ) -> dict:
        if credential is None:
            raise BackendUnavailable("No calendar credential supplied")

        headers = {"Authorization": f"Bearer {credential.token}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, params=params, json=json, headers=headers)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("Calendar backend returned %s for %s %s", status, method, url)
            if status == 404:
                raise CalendarNotFound(
                    "Calendar not found or not shared with this account", status
                ) from e
            if status == 403 and writing:
                raise PermissionDenied("This account cannot write to the calendar", status) from e
            raise BackendUnavailable(f"Calendar backend error ({status})", status) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Calendar backend request failed: %s", e)
            raise BackendUnavailable(f"Calendar backend unreachable: {e}") from e

    def _google_event_to_calendar_event(self, event: dict) -> CalendarEvent | None:
        """Convert a Google Calendar event; malformed items are skipped."""
        start = event.get("start", {})
        end = event.get("end", {})

        try:
            return CalendarEvent(
                id=event.get("id"),
                title=event.get("summary") or "(No title)",
                start=_parse_event_time(start),
                end=_parse_event_time(end),
                time_zone=start.get("timeZone"),
                attendees=[att["email"] for att in event.get("attendees", []) if att.get("email")],
                location=event.get("location"),
                description=event.get("description"),
                link=event.get("htmlLink"),
            )
        except (ValidationError, ValueError, KeyError) as e:
            logger.warning("Skipping malformed calendar event %s: %s", event.get("id"), e)
            return None


def _parse_event_time(value: dict) -> datetime:
    """Parse a Google ``{dateTime}`` or all-day ``{date}`` value."""
    if value.get("dateTime"):
        return datetime.fromisoformat(value["dateTime"].replace("Z", "+00:00"))
    # All-day event: midnight UTC of that date
    d = date.fromisoformat(value["date"])
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def _to_rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.isoformat()


def _tz_name(moment: datetime) -> str | None:
    """IANA name when known; fixed offsets travel inside the dateTime itself."""
    key = getattr(moment.tzinfo, "key", None)  # zoneinfo.ZoneInfo
    if key:
        return key
    if moment.utcoffset() in (None, timedelta(0)):
        return "UTC"
    return None
