"""Shared fixtures for the calendar copilot test suite."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from calendar_copilot.schemas.calendar import ResolvedCredential

# Monday
NOW = datetime(2024, 3, 11, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def credential():
    return ResolvedCredential(strategy="service", token="test-token")


@pytest.fixture
def llm():
    """LanguageModelService stand-in; set return values per test."""
    mock = AsyncMock()
    mock.structured_completion = AsyncMock()
    mock.complete = AsyncMock(return_value="Here is your schedule.")
    return mock
