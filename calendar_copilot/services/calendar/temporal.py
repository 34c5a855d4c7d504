"""
Temporal expression resolution.

Turns the date expressions produced by the intent extractor into
absolute, timezone-aware datetimes:
- relative phrases: today, tomorrow, next week, next <weekday>
- ISO-8601 dates (YYYY-MM-DD) and date-times (YYYY-MM-DDTHH:MM:SS[Z|±HH:MM])

Naive ISO values are grounded in the timezone of ``now``.
"""

import re
from datetime import datetime, time, timedelta

from calendar_copilot.services.calendar.errors import InvalidTemporalExpression

WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

_RELATIVE_OFFSETS = {
    "today": timedelta(0),
    "tomorrow": timedelta(days=1),
    "next week": timedelta(days=7),
}

# Last representable millisecond of a day
END_OF_DAY = time(23, 59, 59, 999000)

_DATETIME_LITERAL = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}")


def resolve(expr: str, now: datetime) -> datetime:
    """
    Resolve a date expression relative to ``now``.

    Pure function of ``(expr, now)``.

    Raises:
        InvalidTemporalExpression: empty, unknown phrase or unparseable ISO value
    """
    if expr is None or not expr.strip():
        raise InvalidTemporalExpression(expr or "")

    normalized = " ".join(expr.strip().lower().split())

    if normalized in _RELATIVE_OFFSETS:
        return now + _RELATIVE_OFFSETS[normalized]

    if normalized.startswith("next "):
        weekday = WEEKDAYS.get(normalized[len("next "):])
        if weekday is not None:
            days_ahead = (weekday - now.weekday()) % 7
            # Same weekday means a full week ahead, never today
            return now + timedelta(days=days_ahead or 7)

    return _parse_iso(expr.strip(), now)


def _parse_iso(expr: str, now: datetime) -> datetime:
    try:
        parsed = datetime.fromisoformat(expr.replace("Z", "+00:00"))
    except ValueError as e:
        raise InvalidTemporalExpression(expr) from e

    if parsed.tzinfo is None and now.tzinfo is not None:
        parsed = parsed.replace(tzinfo=now.tzinfo)
    return parsed


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min, tzinfo=moment.tzinfo)


def end_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), END_OF_DAY, tzinfo=moment.tzinfo)


def resolve_range(start_expr: str, end_expr: str, now: datetime) -> tuple[datetime, datetime]:
    """
    Resolve a query range to whole days.

    ``start`` snaps to the start of its day and ``end`` to the end of its
    day, so ``("today", "today")`` covers the full calendar day.
    """
    start = start_of_day(resolve(start_expr, now))
    end = end_of_day(resolve(end_expr, now))
    if end < start:
        raise InvalidTemporalExpression(end_expr)
    return start, end


def has_time_component(expr: str) -> bool:
    """True when ``expr`` is a full ISO date-time literal (date, ``T``, time)."""
    return bool(_DATETIME_LITERAL.match(expr.strip()))
