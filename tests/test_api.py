"""Smoke tests for the HTTP surface.

External services are replaced through FastAPI dependency overrides, so
these run without network access or credentials.
"""

import time
from datetime import timedelta
from urllib.parse import parse_qs, urlparse
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from calendar_copilot.api.v1.auth import get_oauth_client, get_oauth_states
from calendar_copilot.deps import (
    get_current_user_id,
    get_orchestrator,
    get_token_store,
    get_tool_service,
)
from calendar_copilot.main import app
from calendar_copilot.schemas.calendar import (
    CalendarEvent,
    ResolvedCredential,
    UnknownIntent,
    ViewRangeIntent,
)
from calendar_copilot.services.calendar.composer import ResponseComposer
from calendar_copilot.services.calendar.credentials import TokenPair, TokenStore
from calendar_copilot.services.calendar.errors import (
    BackendUnavailable,
    CalendarNotFound,
    NoCredentialAvailable,
    PermissionDenied,
)
from calendar_copilot.services.calendar.fallback import DegradationPolicy, SyntheticCalendarSource
from calendar_copilot.services.calendar.oauth import GoogleOAuthClient, OAuthStateStore
from calendar_copilot.services.calendar.orchestrator import READ_DISCLOSURE, CalendarQueryOrchestrator
from calendar_copilot.services.calendar.tools import CalendarToolService
from tests.conftest import NOW

CREDENTIAL = ResolvedCredential(strategy="delegated", token="user-token")
EVENT = CalendarEvent(
    id="evt-1",
    title="Standup",
    start=NOW + timedelta(hours=1),
    end=NOW + timedelta(hours=1, minutes=15),
)


# --- Fixtures ---

@pytest.fixture
def gateway():
    mock = AsyncMock()
    mock.list_events = AsyncMock(return_value=[EVENT])
    mock.create_event = AsyncMock(return_value=EVENT)
    return mock


@pytest.fixture
def credentials():
    mock = AsyncMock()
    mock.acquire = AsyncMock(return_value=CREDENTIAL)
    return mock


@pytest.fixture
def intent_service():
    mock = AsyncMock()
    mock.extract = AsyncMock(
        return_value=ViewRangeIntent(start_expr="today", end_expr="today", description="today")
    )
    return mock


@pytest.fixture
def store():
    return TokenStore()


@pytest.fixture
def states():
    store = OAuthStateStore()
    app.dependency_overrides[get_oauth_states] = lambda: store
    return store


@pytest.fixture
def oauth_client():
    """OAuth client whose token endpoint always grants a fresh pair."""
    def token_endpoint(request):
        return httpx.Response(200, json={"access_token": "fresh", "refresh_token": "r", "expires_in": 3600})

    oauth = GoogleOAuthClient(
        client_id="cid",
        client_secret="secret",
        redirect_uri="http://localhost/cb",
        transport=httpx.MockTransport(token_endpoint),
    )
    app.dependency_overrides[get_oauth_client] = lambda: oauth
    return oauth


@pytest.fixture
def client(llm, gateway, credentials, intent_service, store):
    """FastAPI test client with every external seam overridden."""
    orchestrator = CalendarQueryOrchestrator(
        intent_service=intent_service,
        credentials=credentials,
        gateway=gateway,
        composer=ResponseComposer(llm),
        policy=DegradationPolicy(fallback=SyntheticCalendarSource(clock=lambda: NOW)),
        clock=lambda: NOW,
    )
    tools = CalendarToolService(credentials=credentials, gateway=gateway, clock=lambda: NOW)

    app.dependency_overrides[get_current_user_id] = lambda: "user_1"
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_tool_service] = lambda: tools
    app.dependency_overrides[get_token_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


# --- Health ---

class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


# --- Query Endpoint ---

class TestQueryEndpoint:
    def test_view_range(self, client, gateway):
        response = client.post(
            "/api/v1/calendar/query",
            json={"prompt": "What meetings do I have today?", "calendarId": "primary"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["intent"] == "get_events"
        assert data["mockData"] is False
        assert data["events"][0]["title"] == "Standup"
        assert "error" not in data
        assert "event" not in data

    def test_missing_calendar_id_is_400_with_normal_shape(self, client, intent_service):
        response = client.post("/api/v1/calendar/query", json={"prompt": "today?"})

        assert response.status_code == 400
        data = response.json()
        assert data["intent"] == "unknown"
        assert data["error"] == "validation"
        assert data["response"]
        intent_service.extract.assert_not_called()

    def test_blank_prompt_is_400(self, client):
        response = client.post("/api/v1/calendar/query", json={"prompt": "  ", "calendarId": "primary"})
        assert response.status_code == 400

    def test_backend_down_returns_disclosed_sample_data(self, client, gateway):
        gateway.list_events.side_effect = BackendUnavailable("down")

        response = client.post("/api/v1/calendar/query", json={"prompt": "today?", "calendarId": "primary"})

        data = response.json()
        assert response.status_code == 200
        assert data["mockData"] is True
        assert len(data["events"]) > 0
        assert READ_DISCLOSURE in data["response"]

    def test_no_credential_is_401(self, client, credentials, gateway):
        credentials.acquire.side_effect = NoCredentialAvailable({"service": "x", "delegated": "y"})

        response = client.post("/api/v1/calendar/query", json={"prompt": "today?", "calendarId": "primary"})

        assert response.status_code == 401
        assert response.json()["error"] == "authentication"
        gateway.list_events.assert_not_called()

    def test_unknown_intent(self, client, intent_service, credentials):
        intent_service.extract.return_value = UnknownIntent(description="Try asking about your events.")

        response = client.post("/api/v1/calendar/query", json={"prompt": "asdkjasd", "calendarId": "primary"})

        assert response.json() == {"response": "Try asking about your events.", "intent": "unknown"}
        credentials.acquire.assert_not_called()


# --- Direct Event Endpoints ---

class TestEventEndpoints:
    def test_list_events(self, client, gateway):
        response = client.get("/api/v1/calendar/events", params={"start": "today", "end": "today"})

        assert response.status_code == 200
        assert response.json()["events"][0]["id"] == "evt-1"
        assert gateway.list_events.call_args.args[0] == "primary"
        assert gateway.list_events.call_args.args[1] == NOW.replace(hour=0, minute=0)

    def test_list_events_has_no_fallback(self, client, gateway):
        gateway.list_events.side_effect = CalendarNotFound("gone", 404)
        response = client.get(
            "/api/v1/calendar/events", params={"start": "today", "end": "today", "calendarId": "shared"}
        )
        assert response.status_code == 404

    def test_create_event(self, client, gateway):
        response = client.post(
            "/api/v1/calendar/events",
            json={"title": "Standup", "datetime": "2024-03-11T10:00:00", "duration": 15},
        )

        assert response.status_code == 201
        assert response.json()["success"] is True
        assert gateway.create_event.call_args.args[3] == 15

    def test_create_event_forbidden(self, client, gateway):
        gateway.create_event.side_effect = PermissionDenied("read-only", 403)
        response = client.post(
            "/api/v1/calendar/events",
            json={"title": "Standup", "datetime": "2024-03-11T10:00:00", "duration": 15},
        )
        assert response.status_code == 403


# --- Tool Server ---

class TestToolEndpoints:
    def test_manifest(self, client):
        data = client.get("/api/v1/tools/manifest").json()
        assert data["name"] == "calendar-copilot"
        assert len(data["tools"]) == 2

    def test_list_tools(self, client):
        tools = client.get("/api/v1/tools").json()["tools"]
        assert {t["name"] for t in tools} == {"get-events-range", "create-event"}

    def test_initialize(self, client):
        response = client.post("/api/v1/tools/initialize", json={"jsonrpc": "2.0", "id": 1, "method": "initialize"})

        data = response.json()
        assert data["id"] == 1
        assert data["result"]["protocolVersion"] == "2024-11-05"
        assert len(data["result"]["capabilities"]["tools"]) == 2

    def test_unknown_method(self, client):
        response = client.post("/api/v1/tools/initialize", json={"jsonrpc": "2.0", "id": 2, "method": "shutdown"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == -32601

    def test_execute(self, client):
        response = client.post(
            "/api/v1/tools/execute",
            json={"name": "get-events-range", "input": {"startDate": "2024-03-11", "endDate": "2024-03-11"}},
        )
        assert response.status_code == 200
        assert response.json()["events"][0]["title"] == "Standup"

    @pytest.mark.parametrize(
        "error,expected",
        [
            (NoCredentialAvailable({}), 401),
            (CalendarNotFound("gone", 404), 404),
            (BackendUnavailable("down"), 502),
        ],
    )
    def test_execute_error_statuses(self, client, gateway, credentials, error, expected):
        if isinstance(error, NoCredentialAvailable):
            credentials.acquire.side_effect = error
        else:
            gateway.list_events.side_effect = error

        response = client.post(
            "/api/v1/tools/execute",
            json={"name": "get-events-range", "input": {"startDate": "today", "endDate": "today"}},
        )

        assert response.status_code == expected
        assert "error" in response.json()

    def test_execute_unknown_tool(self, client):
        response = client.post("/api/v1/tools/execute", json={"name": "nope", "input": {}})
        assert response.status_code == 400
        assert response.json() == {"error": "Unknown tool: nope"}

    def test_execute_invalid_input(self, client):
        response = client.post("/api/v1/tools/execute", json={"name": "create-event", "input": {"title": "x"}})
        assert response.status_code == 400

    @pytest.mark.parametrize("method", ["get", "post"])
    def test_test_endpoint(self, client, method):
        response = getattr(client, method)("/api/v1/tools/test")
        assert response.json()["success"] is True


# --- Delegated Token Capture ---

class TestAuthEndpoints:
    def test_status_empty(self, client):
        assert client.get("/api/v1/auth/google/status").json()["captured"] is False

    def test_capture_tokens(self, client, store):
        expires_at = time.time() + 3600
        response = client.post(
            "/api/v1/auth/google/tokens",
            json={"access_token": "a", "refresh_token": "r", "expires_at": expires_at},
        )

        assert response.status_code == 200
        assert store.get() == TokenPair(access_token="a", refresh_token="r", expires_at=expires_at)
        status = client.get("/api/v1/auth/google/status").json()
        assert status["captured"] is True
        assert status["has_refresh_token"] is True
        assert status["expired"] is False

    def test_login_url(self, client, oauth_client, states):
        url = client.get("/api/v1/auth/google/login").json()["authorization_url"]

        query = parse_qs(urlparse(url).query)
        assert query["client_id"] == ["cid"]
        assert query["access_type"] == ["offline"]
        assert query["prompt"] == ["consent"]
        assert query["state"][0] != "user_1"
        assert len(query["state"][0]) >= 32

    def test_callback_exchanges_code(self, client, store, oauth_client, states):
        state = states.issue("user_1")

        response = client.get("/api/v1/auth/google/callback", params={"code": "abc", "state": state})

        assert response.status_code == 200
        assert store.get().access_token == "fresh"
        assert store.get().refresh_token == "r"

    def test_callback_state_is_single_use(self, client, store, oauth_client, states):
        state = states.issue("user_1")
        client.get("/api/v1/auth/google/callback", params={"code": "abc", "state": state})
        store.replace(TokenPair(access_token="kept"))

        response = client.get("/api/v1/auth/google/callback", params={"code": "abc", "state": state})

        assert response.status_code == 400
        assert store.get().access_token == "kept"

    @pytest.mark.parametrize("params", [{"code": "other"}, {"code": "other", "state": "user_1"}])
    def test_callback_rejects_missing_or_unknown_state(self, client, store, oauth_client, states, params):
        store.replace(TokenPair(access_token="kept"))
        states.issue("user_1")

        response = client.get("/api/v1/auth/google/callback", params=params)

        assert response.status_code == 400
        assert store.get().access_token == "kept"

    def test_callback_requires_code(self, client):
        assert client.get("/api/v1/auth/google/callback").status_code == 400


# --- Identity ---

class TestIdentity:
    def test_missing_header_is_401(self):
        with patch("calendar_copilot.deps.get_settings") as mock_settings:
            mock_settings.return_value = MagicMock(dev_auth_bypass=False)
            response = TestClient(app).get("/api/v1/auth/google/status")
        assert response.status_code == 401

    def test_bad_scheme_is_401(self):
        with patch("calendar_copilot.deps.get_settings") as mock_settings:
            mock_settings.return_value = MagicMock(dev_auth_bypass=False)
            response = TestClient(app).get(
                "/api/v1/auth/google/status", headers={"Authorization": "Basic abc"}
            )
        assert response.status_code == 401

    def test_dev_bypass(self):
        app.dependency_overrides[get_token_store] = lambda: TokenStore()
        try:
            with patch("calendar_copilot.deps.get_settings") as mock_settings:
                mock_settings.return_value = MagicMock(dev_auth_bypass=True)
                response = TestClient(app).get("/api/v1/auth/google/status")
        finally:
            app.dependency_overrides.clear()
        assert response.status_code == 200
