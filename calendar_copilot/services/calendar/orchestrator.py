"""
Calendar Query Orchestrator.

Runs one prompt through the pipeline:

    Received -> IntentResolved -> Authorizing -> Executing -> Composing -> Done
    Received -> ... -> Failed

- unknown intents return their description verbatim, no calendar access
- backend failures degrade to disclosed synthetic data
- every failure is returned as a QueryOutcome, never raised
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from zoneinfo import ZoneInfo

from calendar_copilot.config import get_settings
from calendar_copilot.schemas.calendar import (
    CreateEventIntent,
    FailureKind,
    IntentKind,
    QueryResponse,
    UnknownIntent,
    ViewRangeIntent,
)
from calendar_copilot.services.calendar.composer import ResponseComposer
from calendar_copilot.services.calendar.credentials import CredentialProvider
from calendar_copilot.services.calendar.errors import (
    IntentExtractionFailed,
    InvalidDuration,
    InvalidTemporalExpression,
    MalformedIntent,
    NoCredentialAvailable,
)
from calendar_copilot.services.calendar.fallback import DegradationPolicy
from calendar_copilot.services.calendar.gateway import CalendarSource
from calendar_copilot.services.calendar.intent_service import CalendarIntentService
from calendar_copilot.services.calendar.temporal import resolve, resolve_range

settings = get_settings()
logger = logging.getLogger(__name__)

READ_DISCLOSURE = (
    "Note: I couldn't reach your calendar, so the events above are sample data, "
    "not your real schedule."
)
WRITE_DISCLOSURE = (
    "Note: I couldn't reach your calendar, so this event was not saved. "
    "Nothing was added to your real calendar."
)

MESSAGES = {
    FailureKind.VALIDATION: "Please provide both a prompt and a calendar ID.",
    FailureKind.INTENT_EXTRACTION: (
        "Sorry, I couldn't process that request right now. Please try again in a moment."
    ),
    FailureKind.MALFORMED_INTENT: (
        "I couldn't work out the exact details for that. Could you be more specific about "
        'the date and time, for example "tomorrow at 2pm for 30 minutes"?'
    ),
    FailureKind.AUTHENTICATION: (
        "I can't access your calendar yet. Please connect your Google Calendar "
        "(or configure a service account) and try again."
    ),
    FailureKind.INTERNAL: "Sorry, something went wrong while handling your request.",
}

STATUS_CODES = {
    FailureKind.VALIDATION: 400,
    FailureKind.TEMPORAL: 200,
    FailureKind.INTENT_EXTRACTION: 200,
    FailureKind.MALFORMED_INTENT: 200,
    FailureKind.AUTHENTICATION: 401,
    FailureKind.INTERNAL: 500,
}


class QueryState(str, Enum):
    RECEIVED = "received"
    INTENT_RESOLVED = "intent_resolved"
    AUTHORIZING = "authorizing"
    EXECUTING = "executing"
    COMPOSING = "composing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class QueryOutcome:
    """Final result of one request plus how it got there."""

    response: QueryResponse
    status_code: int = 200
    failure: FailureKind | None = None
    states: list[QueryState] = field(default_factory=list)

    @property
    def state(self) -> QueryState:
        return self.states[-1]


def _default_clock() -> datetime:
    return datetime.now(ZoneInfo(settings.default_timezone))


class _Run:
    """Per-request state trail."""

    def __init__(self) -> None:
        self.states = [QueryState.RECEIVED]

    def enter(self, state: QueryState) -> None:
        self.states.append(state)

    def done(self, response: QueryResponse) -> QueryOutcome:
        self.enter(QueryState.DONE)
        return QueryOutcome(response=response, states=self.states)

    def fail(
        self,
        kind: FailureKind,
        intent: IntentKind,
        error: Exception | None = None,
        message: str | None = None,
    ) -> QueryOutcome:
        self.enter(QueryState.FAILED)
        if error is not None:
            logger.error("Calendar query failed (%s): %s", kind.value, error)
        return QueryOutcome(
            response=QueryResponse(
                response=message or MESSAGES[kind],
                intent=intent,
                error=kind.value,
            ),
            status_code=STATUS_CODES[kind],
            failure=kind,
            states=self.states,
        )


class CalendarQueryOrchestrator:
    """Ties intent extraction, dates, credentials, the gateway and composition together."""

    def __init__(
        self,
        intent_service: CalendarIntentService,
        credentials: CredentialProvider,
        gateway: CalendarSource,
        composer: ResponseComposer,
        policy: DegradationPolicy | None = None,
        clock: Callable[[], datetime] = _default_clock,
    ) -> None:
        self.intent_service = intent_service
        self.credentials = credentials
        self.gateway = gateway
        self.composer = composer
        self.policy = policy or DegradationPolicy()
        self.clock = clock

    async def handle(
        self,
        prompt: str | None,
        calendar_id: str | None,
        now: datetime | None = None,
    ) -> QueryOutcome:
        """Process one prompt. Never raises."""
        run = _Run()

        if not prompt or not prompt.strip() or not calendar_id or not calendar_id.strip():
            return run.fail(FailureKind.VALIDATION, "unknown")

        now = now or self.clock()
        try:
            return await self._process(run, prompt.strip(), calendar_id.strip(), now)
        except Exception as e:
            logger.exception("Unexpected error in calendar query")
            return run.fail(FailureKind.INTERNAL, "unknown", e)

    async def _process(self, run: _Run, prompt: str, calendar_id: str, now: datetime) -> QueryOutcome:
        try:
            intent = await self.intent_service.extract(prompt, now)
        except IntentExtractionFailed as e:
            return run.fail(FailureKind.INTENT_EXTRACTION, "unknown", e)
        except MalformedIntent as e:
            return run.fail(FailureKind.MALFORMED_INTENT, "unknown", e)

        run.enter(QueryState.INTENT_RESOLVED)

        if isinstance(intent, UnknownIntent):
            return run.done(QueryResponse(response=intent.description, intent="unknown"))
        if isinstance(intent, ViewRangeIntent):
            return await self._view_range(run, intent, prompt, calendar_id, now)
        if isinstance(intent, CreateEventIntent):
            return await self._create_event(run, intent, prompt, calendar_id, now)
        raise TypeError(f"Unsupported intent: {intent!r}")

    # ========== get_events ==========

    async def _view_range(
        self,
        run: _Run,
        intent: ViewRangeIntent,
        prompt: str,
        calendar_id: str,
        now: datetime,
    ) -> QueryOutcome:
        try:
            range_start, range_end = resolve_range(intent.start_expr, intent.end_expr, now)
        except InvalidTemporalExpression as e:
            return run.fail(FailureKind.TEMPORAL, intent.kind, e, _clarify_date(e))

        run.enter(QueryState.AUTHORIZING)
        try:
            credential = await self.credentials.acquire()
        except NoCredentialAvailable as e:
            return run.fail(FailureKind.AUTHENTICATION, intent.kind, e)

        run.enter(QueryState.EXECUTING)
        result = await self.policy.list_events(self.gateway, calendar_id, range_start, range_end, credential)

        run.enter(QueryState.COMPOSING)
        text = await self.composer.compose_query_summary(result.events, prompt, range_start, range_end)
        if result.is_synthetic:
            text = f"{text}\n\n{READ_DISCLOSURE}"

        return run.done(QueryResponse(
            response=text,
            intent=intent.kind,
            events=result.events,
            mock_data=result.is_synthetic,
        ))

    # ========== create_event ==========

    async def _create_event(
        self,
        run: _Run,
        intent: CreateEventIntent,
        prompt: str,
        calendar_id: str,
        now: datetime,
    ) -> QueryOutcome:
        try:
            start = resolve(intent.start_expr, now)
        except InvalidTemporalExpression as e:
            return run.fail(FailureKind.TEMPORAL, intent.kind, e, _clarify_date(e))

        run.enter(QueryState.AUTHORIZING)
        try:
            credential = await self.credentials.acquire()
        except NoCredentialAvailable as e:
            return run.fail(FailureKind.AUTHENTICATION, intent.kind, e)

        run.enter(QueryState.EXECUTING)
        try:
            result = await self.policy.create_event(
                self.gateway,
                calendar_id,
                intent.title,
                start,
                intent.duration_minutes,
                intent.attendees,
                credential,
            )
        except InvalidDuration as e:
            return run.fail(FailureKind.VALIDATION, intent.kind, e, str(e))

        run.enter(QueryState.COMPOSING)
        text = await self.composer.compose_creation_summary(result.event, prompt, synthetic=result.is_synthetic)
        if result.is_synthetic:
            text = f"{text}\n\n{WRITE_DISCLOSURE}"

        return run.done(QueryResponse(
            response=text,
            intent=intent.kind,
            event=result.event,
            mock_data=result.is_synthetic,
        ))


def _clarify_date(error: InvalidTemporalExpression) -> str:
    return (
        f'I couldn\'t understand the date "{error.expr}". Could you rephrase it, '
        'for example "today", "next monday" or "2024-03-15"?'
    )
