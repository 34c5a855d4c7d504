"""Delegated OAuth token capture schemas."""

from pydantic import BaseModel, Field


class TokenCaptureRequest(BaseModel):
    """Token pair captured by the web application's Google sign-in."""

    access_token: str = Field(min_length=1)
    refresh_token: str | None = None
    expires_at: float | None = None  # epoch seconds


class GoogleLoginResponse(BaseModel):
    authorization_url: str


class TokenStatusResponse(BaseModel):
    captured: bool
    has_refresh_token: bool = False
    expires_at: float | None = None
    expired: bool = False
