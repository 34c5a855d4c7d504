"""Google OAuth consent flow: authorization URL and code exchange."""

import logging
import secrets
import time
from urllib.parse import urlencode

import httpx

from calendar_copilot.config import get_settings
from calendar_copilot.services.calendar.credentials import TokenPair
from calendar_copilot.services.calendar.errors import CredentialStrategyError

settings = get_settings()
logger = logging.getLogger(__name__)

STATE_TTL_SECONDS = 600


class OAuthStateStore:
    """One-time ``state`` values issued to signed-in users starting the consent flow."""

    def __init__(self, ttl: float = STATE_TTL_SECONDS) -> None:
        self.ttl = ttl
        self._pending: dict[str, tuple[str, float]] = {}

    def issue(self, user_id: str, now: float | None = None) -> str:
        issued = time.time() if now is None else now
        self._purge(issued)
        state = secrets.token_urlsafe(32)
        self._pending[state] = (user_id, issued + self.ttl)
        return state

    def consume(self, state: str, now: float | None = None) -> str | None:
        """User id the state was issued to, or None if unknown or expired. Single use."""
        entry = self._pending.pop(state, None)
        if entry is None:
            return None
        user_id, expires_at = entry
        if (time.time() if now is None else now) >= expires_at:
            return None
        return user_id

    def _purge(self, now: float) -> None:
        for state in [s for s, (_, expires_at) in self._pending.items() if now >= expires_at]:
            del self._pending[state]


class GoogleOAuthClient:
    """Builds the consent URL and turns the returned code into a TokenPair."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client_id = settings.google_client_id if client_id is None else client_id
        self.client_secret = settings.google_client_secret if client_secret is None else client_secret
        self.redirect_uri = redirect_uri or settings.google_redirect_uri
        self.auth_url = settings.google_auth_url
        self.token_url = settings.google_token_url
        self.timeout = settings.calendar_timeout_seconds
        self._transport = transport

    def get_authorization_url(self, state: str | None = None) -> str:
        """Consent URL requesting offline access so a refresh token is issued."""
        if not self.client_id:
            raise CredentialStrategyError("GOOGLE_CLIENT_ID is not configured")

        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(settings.google_calendar_scopes),
            "access_type": "offline",
            "prompt": "consent",
        }
        if state:
            params["state"] = state
        return f"{self.auth_url}?{urlencode(params)}"

    async def exchange_code(self, code: str, now: float | None = None) -> TokenPair:
        """Exchange an authorization code at the token endpoint."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.token_url,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "redirect_uri": self.redirect_uri,
                    },
                )
                response.raise_for_status()
                data = response.json()
                access_token = data["access_token"]
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error("Google authorization code exchange failed: %s", e)
            raise CredentialStrategyError(f"authorization code exchange failed: {e}") from e

        expires_in = data.get("expires_in")
        issued = time.time() if now is None else now
        return TokenPair(
            access_token=access_token,
            refresh_token=data.get("refresh_token"),
            expires_at=issued + float(expires_in) if expires_in else None,
        )


# Process-wide pending consent flows
oauth_states = OAuthStateStore()
