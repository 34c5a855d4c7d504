"""
Response composition.

Each summary makes one free-text completion and falls back to a fixed,
network-free sentence when that call fails. Composition never raises.
"""

import json
import logging
from datetime import datetime

from calendar_copilot.config import get_settings
from calendar_copilot.schemas.calendar import CalendarEvent
from calendar_copilot.services.llm import LanguageModelService

settings = get_settings()
logger = logging.getLogger(__name__)

QUERY_SYSTEM_PROMPT = (
    "You are a helpful calendar assistant. Generate a natural, conversational response "
    "about the user's calendar based on the events data provided. Be concise but friendly. "
    "Do not use markdown formatting other than for linking to calendar events."
)

CREATION_SYSTEM_PROMPT = (
    "You are a helpful calendar assistant. Generate a natural, conversational response "
    "confirming an event has been created. Be concise but friendly."
)

DRAFT_SYSTEM_PROMPT = (
    "You are a helpful calendar assistant. The user's event could NOT be saved to their "
    "calendar. Describe the event details back to them as an unsaved draft. Never say "
    "the event was created, scheduled or added. Be concise but friendly."
)


def format_when(moment: datetime) -> str:
    """Deterministic human-readable date and time, e.g. 'Tuesday, March 12, 2024 at 2:00 PM'."""
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return f"{moment:%A, %B} {moment.day}, {moment.year} at {hour}:{moment.minute:02d} {meridiem}"


def fallback_query_summary(events: list[CalendarEvent]) -> str:
    if not events:
        return "You don't have any events scheduled in the specified time period."
    return f"You have {len(events)} event(s) scheduled in the specified time period."


def fallback_creation_summary(event: CalendarEvent, synthetic: bool = False) -> str:
    if synthetic:
        return f'I couldn\'t save "{event.title}" for {format_when(event.start)} to your calendar.'
    return f'I\'ve created a new event "{event.title}" for {format_when(event.start)}.'


class ResponseComposer:
    """Turns calendar results into prose for the user."""

    def __init__(self, llm: LanguageModelService | None = None) -> None:
        self.llm = llm or LanguageModelService()

    async def compose_query_summary(
        self,
        events: list[CalendarEvent],
        utterance: str,
        range_start: datetime,
        range_end: datetime,
    ) -> str:
        events_json = json.dumps(
            [event.model_dump(mode="json", exclude_none=True) for event in events], indent=2
        )
        content = f"""User asked: "{utterance}"

Date range: {range_start.isoformat()} to {range_end.isoformat()}

Calendar events ({len(events)} total):
{events_json}

Please provide a natural, conversational response summarizing these events. If there are no events, mention that. Include key details like event titles, times, and dates in a readable format."""

        try:
            return await self.llm.complete(
                system=QUERY_SYSTEM_PROMPT,
                content=content,
                temperature=settings.llm_summary_temperature,
                max_tokens=settings.llm_query_summary_max_tokens,
            )
        except Exception as e:
            logger.warning("Query summary generation failed, using fallback: %s", e)
            return fallback_query_summary(events)

    async def compose_creation_summary(
        self,
        event: CalendarEvent,
        utterance: str,
        synthetic: bool = False,
    ) -> str:
        lines = [
            f'User requested: "{utterance}"',
            "",
            "Draft event details (NOT saved):" if synthetic else "Created event details:",
            f"Summary: {event.title}",
            f"Starts: {format_when(event.start)}",
            f"Ends: {format_when(event.end)}",
        ]
        if event.attendees:
            lines.append(f"Attendees: {', '.join(event.attendees)}")
        if event.link:
            lines.append(f"Link: {event.link}")
        lines += [
            "",
            "Please respond based *only* on the details provided above. Mention the title, date, and time.",
        ]

        try:
            return await self.llm.complete(
                system=DRAFT_SYSTEM_PROMPT if synthetic else CREATION_SYSTEM_PROMPT,
                content="\n".join(lines),
                temperature=settings.llm_summary_temperature,
                max_tokens=settings.llm_creation_summary_max_tokens,
            )
        except Exception as e:
            logger.warning("Creation summary generation failed, using fallback: %s", e)
            return fallback_creation_summary(event, synthetic)
