"""
Calendar tool service.

Exposes the two calendar operations as named tools:
- get-events-range: list events between two dates
- create-event: insert one event

Tools call the gateway directly with an acquired credential. There is no
synthetic fallback at this layer; backend errors propagate to the caller.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ValidationError

from calendar_copilot.config import get_settings
from calendar_copilot.schemas.calendar import CalendarEvent
from calendar_copilot.schemas.tools import CreateEventInput, GetEventsRangeInput
from calendar_copilot.services.calendar.credentials import CredentialProvider
from calendar_copilot.services.calendar.errors import (
    BackendUnavailable,
    CalendarNotFound,
    InvalidDuration,
    InvalidTemporalExpression,
    InvalidToolInput,
    NoCredentialAvailable,
    PermissionDenied,
    UnknownTool,
)
from calendar_copilot.services.calendar.gateway import CalendarSource
from calendar_copilot.services.calendar.temporal import (
    end_of_day,
    has_time_component,
    resolve,
    start_of_day,
)

settings = get_settings()
logger = logging.getLogger(__name__)

SCHEMA_VERSION = "2024-11-05"

GET_EVENTS_RANGE = "get-events-range"
CREATE_EVENT = "create-event"

TOOL_DESCRIPTIONS = {
    GET_EVENTS_RANGE: (
        "Retrieves calendar events within a specified date range. Must be in ISO format "
        "(YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS). A date without a time covers that whole day."
    ),
    CREATE_EVENT: "Creates a new calendar event",
}

TOOL_INPUTS: dict[str, type[BaseModel]] = {
    GET_EVENTS_RANGE: GetEventsRangeInput,
    CREATE_EVENT: CreateEventInput,
}

TOOL_EXAMPLES = {
    GET_EVENTS_RANGE: [
        {
            "input": {"startDate": "2024-03-11", "endDate": "2024-03-12"},
            "output": {
                "events": [
                    {
                        "id": "abc123",
                        "title": "Team Meeting",
                        "start": "2024-03-11T10:00:00Z",
                        "end": "2024-03-11T11:00:00Z",
                    }
                ]
            },
        }
    ],
    CREATE_EVENT: [
        {
            "input": {
                "title": "Coffee with Alice",
                "datetime": "2024-03-12T15:00:00",
                "duration": 30,
                "attendees": ["alice@example.com"],
            },
            "output": {
                "success": True,
                "event": {
                    "title": "Coffee with Alice",
                    "start": "2024-03-12T15:00:00Z",
                    "end": "2024-03-12T15:30:00Z",
                    "attendees": ["alice@example.com"],
                },
            },
        }
    ],
}

# HTTP-equivalent status for errors raised while running a tool
ERROR_STATUS_CODES: dict[type[Exception], int] = {
    UnknownTool: 400,
    InvalidToolInput: 400,
    InvalidTemporalExpression: 400,
    InvalidDuration: 400,
    NoCredentialAvailable: 401,
    PermissionDenied: 403,
    CalendarNotFound: 404,
    BackendUnavailable: 502,
}


def status_code_for(error: Exception) -> int:
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_type):
            return status_code
    return 500


def tool_definitions() -> list[dict[str, Any]]:
    """Name, description, JSON input schema and examples of every tool."""
    return [
        {
            "name": name,
            "description": TOOL_DESCRIPTIONS[name],
            "inputSchema": model.model_json_schema(by_alias=True),
            "examples": TOOL_EXAMPLES[name],
        }
        for name, model in TOOL_INPUTS.items()
    ]


def build_manifest() -> dict[str, Any]:
    return {
        "schemaVersion": SCHEMA_VERSION,
        "name": "calendar-copilot",
        "description": "Google Calendar tools for event management",
        "contact": {"name": "Calendar Copilot"},
        "auth": {"type": "none"},
        "tools": tool_definitions(),
    }


def _default_clock() -> datetime:
    return datetime.now(ZoneInfo(settings.default_timezone))


class CalendarToolService:
    """Runs calendar tools against the real backend."""

    def __init__(
        self,
        credentials: CredentialProvider,
        gateway: CalendarSource,
        clock: Callable[[], datetime] = _default_clock,
    ) -> None:
        self.credentials = credentials
        self.gateway = gateway
        self.clock = clock

    async def execute(self, name: str, payload: dict[str, Any] | None) -> dict[str, Any]:
        """
        Validate ``payload`` against the tool's input schema and run it.

        Raises:
            UnknownTool: empty or unregistered tool name
            InvalidToolInput: payload does not match the input schema
            CalendarCopilotError: anything raised while running the tool
        """
        model = TOOL_INPUTS.get(name)
        if model is None:
            raise UnknownTool(name)

        try:
            params = model.model_validate(payload or {})
        except ValidationError as e:
            raise InvalidToolInput(f"Invalid input for {name}: {e}") from e

        logger.info("Executing tool %s", name)
        if isinstance(params, GetEventsRangeInput):
            events = await self.get_events_range(params)
            return {"events": [_dump(event) for event in events]}

        event = await self.create_event(params)
        return {"success": True, "event": _dump(event)}

    async def get_events_range(self, params: GetEventsRangeInput) -> list[CalendarEvent]:
        now = self.clock()
        start = resolve(params.start_date, now)
        if not has_time_component(params.start_date):
            start = start_of_day(start)
        end = resolve(params.end_date, now)
        if not has_time_component(params.end_date):
            end = end_of_day(end)
        if end <= start:
            raise InvalidTemporalExpression(params.end_date)

        credential = await self.credentials.acquire()
        return await self.gateway.list_events(params.calendar_id, start, end, credential)

    async def create_event(self, params: CreateEventInput) -> CalendarEvent:
        start = resolve(params.start_datetime, self.clock())
        credential = await self.credentials.acquire()
        try:
            return await self.gateway.create_event(
                params.calendar_id,
                params.title,
                start,
                params.duration,
                params.attendees,
                credential,
            )
        except ValidationError as e:
            raise InvalidToolInput(f"Invalid event: {e}") from e


def _dump(event: CalendarEvent) -> dict[str, Any]:
    return event.model_dump(mode="json", exclude_none=True)
