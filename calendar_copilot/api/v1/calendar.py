"""
Calendar API endpoints.

Provides REST API for:
- Answering a natural-language prompt about the user's calendar
- Listing events in a date range
- Creating an event directly
"""

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

from calendar_copilot.config import get_settings
from calendar_copilot.deps import CurrentUserId, Orchestrator, ToolService
from calendar_copilot.schemas.calendar import QueryRequest
from calendar_copilot.schemas.tools import CreateEventInput, GetEventsRangeInput
from calendar_copilot.services.calendar.errors import CalendarCopilotError
from calendar_copilot.services.calendar.tools import status_code_for

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter(tags=["calendar"])


@router.post("/query")
async def query_calendar(
    request: QueryRequest,
    user_id: CurrentUserId,
    orchestrator: Orchestrator,
) -> JSONResponse:
    """
    Answer a natural-language calendar prompt.

    **Example:**
    ```json
    {
        "prompt": "What meetings do I have today?",
        "calendarId": "primary"
    }
    ```

    The body always carries `response` and `intent`; `events`, `event`,
    `mockData` and `error` are present when relevant. `mockData: true`
    means the calendar could not be reached and sample data was used.
    """
    logger.info("Calendar query from user %s", user_id)
    outcome = await orchestrator.handle(request.prompt, request.calendar_id)
    return JSONResponse(
        status_code=outcome.status_code,
        content=outcome.response.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


@router.get("/events")
async def list_events(
    user_id: CurrentUserId,
    tools: ToolService,
    start: Annotated[str, Query(description="Start date (ISO or relative phrase)")],
    end: Annotated[str, Query(description="End date (ISO or relative phrase)")],
    calendar_id: Annotated[str, Query(alias="calendarId")] = settings.default_calendar_id,
):
    """List events from the real calendar. No sample-data fallback."""
    params = GetEventsRangeInput(start_date=start, end_date=end, calendar_id=calendar_id)
    try:
        events = await tools.get_events_range(params)
    except CalendarCopilotError as e:
        logger.error(f"Error in /calendar/events: {e}")
        raise HTTPException(status_code=status_code_for(e), detail=str(e))

    return {"events": [event.model_dump(mode="json", exclude_none=True) for event in events]}


@router.post("/events", status_code=201)
async def create_event(
    request: CreateEventInput,
    user_id: CurrentUserId,
    tools: ToolService,
):
    """Create an event on the real calendar. No sample-data fallback."""
    try:
        event = await tools.create_event(request)
    except CalendarCopilotError as e:
        logger.error(f"Error in POST /calendar/events: {e}")
        raise HTTPException(status_code=status_code_for(e), detail=str(e))

    return {"success": True, "event": event.model_dump(mode="json", exclude_none=True)}
