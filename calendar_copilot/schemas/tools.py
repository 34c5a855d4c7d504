"""Calendar tool server schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from calendar_copilot.config import get_settings

settings = get_settings()


class GetEventsRangeInput(BaseModel):
    """Input of the get-events-range tool."""

    model_config = ConfigDict(populate_by_name=True)

    start_date: str = Field(
        alias="startDate",
        description="Start date in ISO format (YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS)",
    )
    end_date: str = Field(
        alias="endDate",
        description="End date in ISO format (YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS)",
    )
    calendar_id: str = Field(
        default=settings.default_calendar_id,
        alias="calendarId",
        description="Google Calendar ID, defaults to primary calendar",
    )


class CreateEventInput(BaseModel):
    """Input of the create-event tool and the direct create endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, description="Title of the event")
    start_datetime: str = Field(
        alias="datetime",
        description="Start date and time of the event in ISO format (YYYY-MM-DDTHH:MM:SS)",
    )
    duration: int = Field(description="Duration of the event in minutes")
    attendees: list[str] = Field(default=[], description="List of email addresses of attendees")
    calendar_id: str = Field(
        default=settings.default_calendar_id,
        alias="calendarId",
        description="Google Calendar ID, defaults to primary calendar",
    )


class ToolExecuteRequest(BaseModel):
    """``{name, input}`` tool invocation."""

    name: str = ""
    input: dict[str, Any] = {}


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 envelope."""

    jsonrpc: str = "2.0"
    id: int | str | None = None
    method: str
    params: dict[str, Any] | None = None


class ToolInfo(BaseModel):
    name: str
    description: str
