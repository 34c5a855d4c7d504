"""
Calendar services package.

Services:
- temporal: resolve date expressions into datetimes
- credentials: ordered credential strategies (service identity, delegated OAuth)
- gateway: Google Calendar list/insert
- fallback: synthetic data source and degradation policy
- intent_service: parse user text into a CalendarIntent (LLM-powered)
- composer: turn results into prose, with deterministic fallbacks
- orchestrator: per-prompt state machine tying it all together
- tools: named get-events-range / create-event tools over the gateway
"""

from calendar_copilot.services.calendar.composer import ResponseComposer
from calendar_copilot.services.calendar.credentials import CredentialProvider, TokenPair, TokenStore
from calendar_copilot.services.calendar.fallback import DegradationPolicy, SyntheticCalendarSource
from calendar_copilot.services.calendar.gateway import GoogleCalendarGateway
from calendar_copilot.services.calendar.intent_service import CalendarIntentService
from calendar_copilot.services.calendar.orchestrator import CalendarQueryOrchestrator, QueryOutcome
from calendar_copilot.services.calendar.tools import CalendarToolService

__all__ = [
    "CalendarIntentService",
    "CalendarQueryOrchestrator",
    "CalendarToolService",
    "CredentialProvider",
    "DegradationPolicy",
    "GoogleCalendarGateway",
    "QueryOutcome",
    "ResponseComposer",
    "SyntheticCalendarSource",
    "TokenPair",
    "TokenStore",
]
