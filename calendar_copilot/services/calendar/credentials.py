"""
Calendar credential acquisition.

Strategies are tried in a fixed order until one yields a token:
1. ServiceAccountStrategy - signed JWT assertion exchanged at the token endpoint
2. DelegatedOAuthStrategy - the user's captured access/refresh token pair

The captured pair lives in a TokenStore: one immutable TokenPair value,
replaced as a whole when an OAuth flow completes and only read by requests.
"""

import logging
import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx
import jwt

from calendar_copilot.config import get_settings
from calendar_copilot.schemas.calendar import ResolvedCredential
from calendar_copilot.services.calendar.errors import (
    CredentialStrategyError,
    NoCredentialAvailable,
)

settings = get_settings()
logger = logging.getLogger(__name__)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600
EXPIRY_SKEW_SECONDS = 60


@dataclass(frozen=True)
class TokenPair:
    """OAuth tokens captured after a user consent flow."""

    access_token: str
    refresh_token: str | None = None
    expires_at: float | None = None  # epoch seconds

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now if now is not None else time.time()) >= self.expires_at - EXPIRY_SKEW_SECONDS


class TokenStore:
    """Process-wide holder of the captured TokenPair.

    ``replace`` swaps the whole value in one assignment, so concurrent
    readers always see a consistent pair.
    """

    def __init__(self, initial: TokenPair | None = None) -> None:
        self._pair = initial

    def get(self) -> TokenPair | None:
        return self._pair

    def replace(self, pair: TokenPair) -> None:
        self._pair = pair

    def clear(self) -> None:
        self._pair = None


@runtime_checkable
class CredentialStrategy(Protocol):
    """One way of obtaining a backend credential."""

    name: str

    async def acquire(self) -> ResolvedCredential: ...


class ServiceAccountStrategy:
    """Non-interactive credential from statically configured identity material."""

    name = "service"

    def __init__(
        self,
        email: str | None = None,
        private_key: str | None = None,
        scopes: list[str] | None = None,
        token_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.email = settings.google_service_account_email if email is None else email
        raw_key = settings.google_service_account_private_key if private_key is None else private_key
        # .env files usually carry the PEM with escaped newlines
        self.private_key = raw_key.replace("\\n", "\n")
        self.scopes = scopes or settings.google_calendar_scopes
        self.token_url = token_url or settings.google_token_url
        self.timeout = timeout or settings.calendar_timeout_seconds

    def build_assertion(self, issued_at: int | None = None) -> str:
        """Sign the JWT assertion; fails fast on absent or malformed material."""
        if not self.email or not self.private_key.strip():
            raise CredentialStrategyError("service account email or private key is not configured")

        iat = int(time.time()) if issued_at is None else issued_at
        claims = {
            "iss": self.email,
            "scope": " ".join(self.scopes),
            "aud": self.token_url,
            "iat": iat,
            "exp": iat + ASSERTION_LIFETIME_SECONDS,
        }
        try:
            return jwt.encode(claims, self.private_key, algorithm="RS256")
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            raise CredentialStrategyError(f"service account private key is malformed: {e}") from e

    async def acquire(self) -> ResolvedCredential:
        assertion = self.build_assertion()

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.token_url,
                    data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
                )
                response.raise_for_status()
                token = response.json()["access_token"]
        except (httpx.HTTPError, KeyError, ValueError) as e:
            raise CredentialStrategyError(f"service account token exchange failed: {e}") from e

        return ResolvedCredential(strategy="service", token=token)


class DelegatedOAuthStrategy:
    """Credential from the user's captured OAuth token pair.

    An expired access token is refreshed for the current request only;
    the store is never written here.
    """

    name = "delegated"

    def __init__(
        self,
        store: TokenStore,
        client_id: str | None = None,
        client_secret: str | None = None,
        token_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.store = store
        self.client_id = settings.google_client_id if client_id is None else client_id
        self.client_secret = settings.google_client_secret if client_secret is None else client_secret
        self.token_url = token_url or settings.google_token_url
        self.timeout = timeout or settings.calendar_timeout_seconds

    async def acquire(self) -> ResolvedCredential:
        pair = self.store.get()
        if pair is None:
            raise CredentialStrategyError("no OAuth token pair has been captured")

        if pair.is_expired():
            if not (pair.refresh_token and self.client_id):
                raise CredentialStrategyError("captured access token expired and cannot be refreshed")
            return ResolvedCredential(strategy="delegated", token=await self._refresh(pair))

        return ResolvedCredential(strategy="delegated", token=pair.access_token)

    async def _refresh(self, pair: TokenPair) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.token_url,
                    data={
                        "grant_type": "refresh_token",
                        "refresh_token": pair.refresh_token,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                    },
                )
                response.raise_for_status()
                return response.json()["access_token"]
        except (httpx.HTTPError, KeyError, ValueError) as e:
            raise CredentialStrategyError(f"OAuth token refresh failed: {e}") from e


class CredentialProvider:
    """Tries each strategy in order and reports which one succeeded."""

    def __init__(self, strategies: list[CredentialStrategy]) -> None:
        self.strategies = strategies

    async def acquire(self) -> ResolvedCredential:
        failures: dict[str, str] = {}
        for strategy in self.strategies:
            try:
                credential = await strategy.acquire()
            except CredentialStrategyError as e:
                logger.warning("Credential strategy %s unavailable: %s", strategy.name, e)
                failures[strategy.name] = str(e)
                continue
            logger.info("Using %s calendar credential", credential.strategy)
            return credential

        raise NoCredentialAvailable(failures)


def build_credential_provider(store: TokenStore) -> CredentialProvider:
    """Default order: service identity first, then delegated OAuth."""
    return CredentialProvider([
        ServiceAccountStrategy(),
        DelegatedOAuthStrategy(store),
    ])


# Process-wide captured token pair
token_store = TokenStore()
