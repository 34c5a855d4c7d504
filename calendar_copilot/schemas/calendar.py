"""
Calendar schemas.

Contains:
- CalendarEvent: normalized backend event
- CalendarIntent: tagged union produced by the intent extractor
- IntentExtraction: wire schema the language model fills in
- ResolvedCredential / CalendarQueryResult / CalendarWriteResult
- QueryRequest / QueryResponse: HTTP boundary of the assistant
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


IntentKind = Literal["get_events", "create_event", "unknown"]


# ========== Events ==========

class CalendarEvent(BaseModel):
    """One event on the backend calendar. Immutable; updates build a new value."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None  # None before creation
    title: str
    start: datetime
    end: datetime
    time_zone: str | None = None
    attendees: list[str] = []
    location: str | None = None
    description: str | None = None
    link: str | None = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @field_validator("attendees")
    @classmethod
    def _unique_attendees(cls, value: list[str]) -> list[str]:
        seen: set[str] = set()
        unique = []
        for email in value:
            email = email.strip()
            key = email.lower()
            if email and key not in seen:
                seen.add(key)
                unique.append(email)
        return unique

    @model_validator(mode="after")
    def _start_before_end(self) -> "CalendarEvent":
        if self.start >= self.end:
            raise ValueError("event start must be before its end")
        return self


# ========== Intents ==========

class ViewRangeIntent(BaseModel):
    """User wants to see events between two (unresolved) date expressions."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["get_events"] = "get_events"
    start_expr: str
    end_expr: str
    description: str


class CreateEventIntent(BaseModel):
    """User wants a new event."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["create_event"] = "create_event"
    title: str
    start_expr: str
    duration_minutes: int
    attendees: list[str] = []
    description: str


class UnknownIntent(BaseModel):
    """Anything else; ``description`` is shown to the user verbatim."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["unknown"] = "unknown"
    description: str


CalendarIntent = Annotated[
    Union[ViewRangeIntent, CreateEventIntent, UnknownIntent],
    Field(discriminator="kind"),
]


class TimeRangeExtraction(BaseModel):
    """Date range for a calendar query."""

    start_date: str = Field(
        description="Start date in ISO format (YYYY-MM-DD) or one of: today, tomorrow, next week, next <weekday>."
    )
    end_date: str = Field(
        description="End date in ISO format (YYYY-MM-DD) or one of: today, tomorrow, next week, next <weekday>."
    )


class EventDetailsExtraction(BaseModel):
    """Details for event creation."""

    title: str = Field(description="The title of the event")
    start_datetime: str = Field(
        description=(
            "The full start date and time in ISO format (YYYY-MM-DDTHH:MM:SS). "
            "If the user gives only a time of day, use today's date."
        )
    )
    duration_minutes: float = Field(description="Duration in minutes (e.g. '1 hour' becomes 60)")
    attendees: list[str] | None = Field(default=None, description="Email addresses of attendees, if mentioned")


class IntentExtraction(BaseModel):
    """Structured output requested from the language model."""

    intent: IntentKind = Field(description="The type of calendar action the user wants to perform")
    time_range: TimeRangeExtraction | None = Field(
        default=None, description="Required if intent is get_events"
    )
    event_details: EventDetailsExtraction | None = Field(
        default=None, description="Required if intent is create_event"
    )
    description: str = Field(description="Description of what the user is asking for")


# ========== Credentials / results ==========

class ResolvedCredential(BaseModel):
    """A usable backend credential and the strategy that produced it."""

    model_config = ConfigDict(frozen=True)

    strategy: Literal["service", "delegated"]
    token: str = Field(repr=False)


class CalendarQueryResult(BaseModel):
    """Outcome of a read, real or synthetic; identical shape either way."""

    events: list[CalendarEvent]
    is_synthetic: bool = False
    degraded_reason: str | None = None


class CalendarWriteResult(BaseModel):
    """Outcome of a write, real or a synthetic echo."""

    event: CalendarEvent
    is_synthetic: bool = False
    degraded_reason: str | None = None


# ========== HTTP boundary ==========

class FailureKind(str, Enum):
    """Why a request ended in the Failed state."""

    VALIDATION = "validation"
    TEMPORAL = "temporal"
    INTENT_EXTRACTION = "intent_extraction"
    MALFORMED_INTENT = "malformed_intent"
    AUTHENTICATION = "authentication"
    INTERNAL = "internal"


class QueryRequest(BaseModel):
    """Assistant request; camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    calendar_id: str = Field(alias="calendarId")

    @field_validator("prompt", "calendar_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class QueryResponse(BaseModel):
    """Assistant response; always carries ``response`` and ``intent``."""

    model_config = ConfigDict(populate_by_name=True)

    response: str
    intent: IntentKind
    events: list[CalendarEvent] | None = None
    event: CalendarEvent | None = None
    mock_data: bool | None = Field(default=None, alias="mockData")
    error: str | None = None
