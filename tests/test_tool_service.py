"""Tests for the calendar tool service."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from calendar_copilot.schemas.calendar import CalendarEvent
from calendar_copilot.services.calendar.errors import (
    BackendUnavailable,
    CalendarNotFound,
    InvalidDuration,
    InvalidTemporalExpression,
    InvalidToolInput,
    NoCredentialAvailable,
    PermissionDenied,
    UnknownTool,
)
from calendar_copilot.services.calendar.tools import (
    CalendarToolService,
    build_manifest,
    status_code_for,
)
from tests.conftest import NOW

EVENT = CalendarEvent(
    id="evt-1",
    title="Coffee with Alice",
    start=datetime(2024, 3, 12, 15, tzinfo=timezone.utc),
    end=datetime(2024, 3, 12, 15, 30, tzinfo=timezone.utc),
    attendees=["alice@example.com"],
)


@pytest.fixture
def service(credential):
    credentials = AsyncMock()
    credentials.acquire = AsyncMock(return_value=credential)
    gateway = AsyncMock()
    gateway.list_events = AsyncMock(return_value=[EVENT])
    gateway.create_event = AsyncMock(return_value=EVENT)
    return CalendarToolService(credentials=credentials, gateway=gateway, clock=lambda: NOW)


class TestManifest:
    def test_lists_both_tools(self):
        manifest = build_manifest()
        assert manifest["schemaVersion"] == "2024-11-05"
        assert [t["name"] for t in manifest["tools"]] == ["get-events-range", "create-event"]

    def test_input_schema_uses_wire_names(self):
        create = build_manifest()["tools"][1]["inputSchema"]
        assert set(create["required"]) == {"title", "datetime", "duration"}
        assert "calendarId" in create["properties"]


class TestExecute:
    @pytest.mark.asyncio
    async def test_get_events_range(self, service, credential):
        result = await service.execute("get-events-range", {"startDate": "2024-03-12", "endDate": "2024-03-12"})

        assert result["events"][0]["title"] == "Coffee with Alice"
        calendar_id, start, end, used = service.gateway.list_events.call_args.args
        assert calendar_id == "primary"
        assert start == datetime(2024, 3, 12, tzinfo=timezone.utc)
        assert end == datetime(2024, 3, 12, 23, 59, 59, 999000, tzinfo=timezone.utc)
        assert used == credential

    @pytest.mark.asyncio
    async def test_relative_day_covers_whole_day(self, service):
        await service.execute("get-events-range", {"startDate": "today", "endDate": "today"})

        _, start, end, _ = service.gateway.list_events.call_args.args
        assert start == datetime(2024, 3, 11, tzinfo=timezone.utc)
        assert end == datetime(2024, 3, 11, 23, 59, 59, 999000, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_explicit_end_time_is_kept(self, service):
        await service.execute(
            "get-events-range",
            {"startDate": "2024-03-12T10:00:00Z", "endDate": "2024-03-13T10:00:00Z", "calendarId": "team"},
        )
        calendar_id, start, end, _ = service.gateway.list_events.call_args.args
        assert calendar_id == "team"
        assert end - start == timedelta(days=1)

    @pytest.mark.asyncio
    async def test_create_event(self, service):
        result = await service.execute(
            "create-event",
            {"title": "Coffee with Alice", "datetime": "2024-03-12T15:00:00", "duration": 30,
             "attendees": ["alice@example.com"]},
        )

        assert result["success"] is True
        assert result["event"]["id"] == "evt-1"
        args = service.gateway.create_event.call_args.args
        assert args[2] == datetime(2024, 3, 12, 15, tzinfo=timezone.utc)
        assert args[3] == 30

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "delete-everything"])
    async def test_unknown_tool(self, service, name):
        with pytest.raises(UnknownTool):
            await service.execute(name, {})

    @pytest.mark.asyncio
    async def test_invalid_input(self, service):
        with pytest.raises(InvalidToolInput):
            await service.execute("create-event", {"title": "No time"})
        service.credentials.acquire.assert_not_called()

    @pytest.mark.asyncio
    async def test_range_ending_before_start(self, service):
        with pytest.raises(InvalidTemporalExpression):
            await service.execute("get-events-range", {"startDate": "2024-03-15", "endDate": "2024-03-12"})

    @pytest.mark.asyncio
    async def test_backend_errors_propagate(self, service):
        service.gateway.list_events.side_effect = BackendUnavailable("down")
        with pytest.raises(BackendUnavailable):
            await service.execute("get-events-range", {"startDate": "today", "endDate": "today"})


class TestStatusCodes:
    @pytest.mark.parametrize(
        "error,expected",
        [
            (UnknownTool("x"), 400),
            (InvalidToolInput("x"), 400),
            (InvalidDuration(0), 400),
            (InvalidTemporalExpression("x"), 400),
            (NoCredentialAvailable({}), 401),
            (PermissionDenied("x", 403), 403),
            (CalendarNotFound("x", 404), 404),
            (BackendUnavailable("x"), 502),
            (RuntimeError("x"), 500),
        ],
    )
    def test_mapping(self, error, expected):
        assert status_code_for(error) == expected
