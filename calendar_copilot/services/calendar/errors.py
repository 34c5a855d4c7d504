"""Calendar pipeline errors."""


class CalendarCopilotError(Exception):
    """Base class for every error raised by the calendar pipeline."""


class InvalidTemporalExpression(CalendarCopilotError):
    """Raised when a date expression is empty or cannot be parsed."""

    def __init__(self, expr: str) -> None:
        self.expr = expr
        super().__init__(f"Could not understand the date {expr!r}")


class CredentialStrategyError(CalendarCopilotError):
    """Raised by a single credential strategy that cannot produce a token."""


class NoCredentialAvailable(CalendarCopilotError):
    """Raised when every credential strategy has failed."""

    def __init__(self, failures: dict[str, str]) -> None:
        self.failures = failures
        detail = "; ".join(f"{name}: {reason}" for name, reason in failures.items())
        super().__init__(f"No calendar credential available ({detail})")


class CalendarBackendError(CalendarCopilotError):
    """Raised when the calendar backend rejects or fails a call."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class BackendUnavailable(CalendarBackendError):
    """Transport failure, timeout, auth rejection or unexpected status."""


class CalendarNotFound(CalendarBackendError):
    """The calendar does not exist or is not shared with the credential."""


class PermissionDenied(CalendarBackendError):
    """The credential cannot write to the calendar."""


class InvalidDuration(CalendarCopilotError):
    """Raised before any network call when a duration is not a positive integer."""

    def __init__(self, duration: object) -> None:
        self.duration = duration
        super().__init__(f"Duration must be a positive whole number of minutes, got {duration!r}")


class LanguageModelError(CalendarCopilotError):
    """Raised when the language model call fails or returns nothing usable."""


class IntentExtractionFailed(CalendarCopilotError):
    """The language model could not be reached or returned nothing parseable."""


class MalformedIntent(CalendarCopilotError):
    """The language model answered, but the extracted intent is unusable."""


class UnknownTool(CalendarCopilotError):
    """Raised when a tool invocation names no registered tool."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}" if name else "Invalid request: tool name is required")


class InvalidToolInput(CalendarCopilotError):
    """Raised when a tool's input does not match its schema."""
