"""
Calendar Intent Service.

Turns a free-text utterance into a CalendarIntent with one structured
completion call, then checks the answer before anyone acts on it:
- get_events needs both range expressions
- create_event needs a title, a full ISO date-time start and a positive
  whole-minute duration

An unreachable or unparseable model raises IntentExtractionFailed; a
usable answer with bad content raises MalformedIntent.
"""

import logging
import re
from datetime import datetime

from calendar_copilot.config import get_settings
from calendar_copilot.schemas.calendar import (
    CalendarIntent,
    CreateEventIntent,
    IntentExtraction,
    UnknownIntent,
    ViewRangeIntent,
)
from calendar_copilot.services.calendar.errors import (
    IntentExtractionFailed,
    LanguageModelError,
    MalformedIntent,
)
from calendar_copilot.services.calendar.gateway import MAX_DURATION_MINUTES
from calendar_copilot.services.calendar.temporal import has_time_component
from calendar_copilot.services.llm import LanguageModelService

settings = get_settings()
logger = logging.getLogger(__name__)

DEFAULT_UNKNOWN_DESCRIPTION = (
    "I'm not sure what you'd like me to do with your calendar. "
    "Try asking about your events or asking me to schedule something."
)

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

INTENT_SYSTEM_PROMPT = """You are a calendar assistant that helps users query and manage their calendar events.
Your task is to understand what the user is asking for and extract structured information based on the provided JSON schema.

The current date and time is {now}.
When the user asks about their calendar or schedule, determine if they want to:
1. View existing events ('get_events'): fill time_range.start_date and time_range.end_date. Use ISO format YYYY-MM-DD, or one of the phrases "today", "tomorrow", "next week", "next <weekday>". If only one day is mentioned, use it for both dates.
2. Create a new event ('create_event'): fill event_details with the title, start_datetime, duration_minutes and attendees.
   - start_datetime MUST be a full ISO date-time string (YYYY-MM-DDTHH:MM:SS). If the user only gives a time of day (e.g. "at 3pm"), use today's date. Never return just a date or just a time.
   - duration_minutes is a whole number of minutes: "an hour" is 60, "half an hour" is 30.
   - attendees are email addresses only.

If the request is unclear or is not about viewing or creating events, use 'unknown' and write a short, helpful reply to the user in description. Always fill description."""


class CalendarIntentService:
    """Extracts a CalendarIntent from natural language."""

    def __init__(self, llm: LanguageModelService | None = None) -> None:
        self.llm = llm or LanguageModelService()
        self.temperature = settings.llm_intent_temperature

    async def extract(self, utterance: str, now: datetime) -> CalendarIntent:
        """
        Extract the user's calendar intent.

        Args:
            utterance: Raw user prompt
            now: Current instant, used to ground relative phrases

        Raises:
            IntentExtractionFailed: model unreachable or answer unparseable
            MalformedIntent: answer parsed but unusable
        """
        try:
            extraction = await self.llm.structured_completion(
                system=INTENT_SYSTEM_PROMPT.format(now=now.isoformat()),
                content=utterance,
                schema=IntentExtraction,
                temperature=self.temperature,
            )
        except LanguageModelError as e:
            raise IntentExtractionFailed(str(e)) from e

        logger.info("Extracted intent %s", extraction.intent)
        return self._to_intent(extraction)

    def _to_intent(self, extraction: IntentExtraction) -> CalendarIntent:
        description = (extraction.description or "").strip()

        if extraction.intent == "get_events":
            time_range = extraction.time_range
            if time_range is None or not time_range.start_date.strip() or not time_range.end_date.strip():
                raise MalformedIntent("get_events intent is missing its date range")
            return ViewRangeIntent(
                start_expr=time_range.start_date.strip(),
                end_expr=time_range.end_date.strip(),
                description=description,
            )

        if extraction.intent == "create_event":
            details = extraction.event_details
            if details is None:
                raise MalformedIntent("create_event intent is missing its event details")

            title = details.title.strip()
            if not title:
                raise MalformedIntent("create_event intent has no title")

            start_expr = details.start_datetime.strip()
            if not has_time_component(start_expr):
                logger.warning("Rejecting create_event start without a time: %r", start_expr)
                raise MalformedIntent(f"event start {start_expr!r} has no time of day")

            duration = details.duration_minutes
            if duration != int(duration) or duration <= 0:
                raise MalformedIntent(f"event duration {duration!r} is not a positive whole number of minutes")
            if duration > MAX_DURATION_MINUTES:
                raise MalformedIntent(f"event duration {duration!r} is longer than one week")

            attendees = [a.strip() for a in (details.attendees or []) if a and a.strip()]
            invalid = [a for a in attendees if not _EMAIL.match(a)]
            if invalid:
                raise MalformedIntent(f"attendees are not email addresses: {', '.join(invalid)}")

            return CreateEventIntent(
                title=title,
                start_expr=start_expr,
                duration_minutes=int(duration),
                attendees=attendees,
                description=description,
            )

        # Shown to the user verbatim
        if not description:
            return UnknownIntent(description=DEFAULT_UNKNOWN_DESCRIPTION)
        return UnknownIntent(description=extraction.description)
