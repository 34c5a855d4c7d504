"""Clerk authentication module."""

import jwt
from jwt import PyJWKClient

from calendar_copilot.config import get_settings


class ClerkAuth:
    """Clerk JWT validation."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self._jwks_client: PyJWKClient | None = None

    @property
    def jwks_client(self) -> PyJWKClient:
        """Lazy-loaded JWKS client."""
        if self._jwks_client is None:
            if not self.settings.clerk_jwks_url:
                raise ValueError("CLERK_JWKS_URL is not configured")
            self._jwks_client = PyJWKClient(self.settings.clerk_jwks_url)
        return self._jwks_client

    def verify_token(self, token: str) -> dict:
        """Validate Clerk JWT and return claims.

        Args:
            token: JWT token from Authorization header

        Returns:
            JWT claims dict with 'sub' (clerk_user_id), 'email', etc.

        Raises:
            jwt.InvalidTokenError: If token is invalid
        """
        signing_key = self.jwks_client.get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            options={"verify_aud": False},  # Clerk doesn't always set audience
        )
        return claims

    def current_user_id(self, token: str) -> str | None:
        """User id (``sub`` claim) of a valid session token."""
        return self.verify_token(token).get("sub")


clerk_auth = ClerkAuth()
