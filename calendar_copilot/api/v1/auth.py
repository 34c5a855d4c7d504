"""
Google delegated-access endpoints.

The captured token pair is held in memory for the whole process and is
lost on restart.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from calendar_copilot.deps import CurrentUserId, Tokens
from calendar_copilot.schemas.auth import GoogleLoginResponse, TokenCaptureRequest, TokenStatusResponse
from calendar_copilot.services.calendar.credentials import TokenPair
from calendar_copilot.services.calendar.errors import CredentialStrategyError
from calendar_copilot.services.calendar.oauth import GoogleOAuthClient, OAuthStateStore, oauth_states

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def get_oauth_client() -> GoogleOAuthClient:
    return GoogleOAuthClient()


def get_oauth_states() -> OAuthStateStore:
    return oauth_states


@router.get("/google/login", response_model=GoogleLoginResponse)
async def google_login(
    user_id: CurrentUserId,
    oauth: GoogleOAuthClient = Depends(get_oauth_client),
    states: OAuthStateStore = Depends(get_oauth_states),
):
    """Return the Google consent URL for calendar access.

    The URL carries a one-time ``state`` bound to the caller; the callback
    only accepts a code that comes back with it.
    """
    try:
        url = oauth.get_authorization_url(state=states.issue(user_id))
    except CredentialStrategyError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return GoogleLoginResponse(authorization_url=url)


@router.get("/google/callback", response_model=TokenStatusResponse)
async def google_callback(
    tokens: Tokens,
    code: str = "",
    state: str = "",
    oauth: GoogleOAuthClient = Depends(get_oauth_client),
    states: OAuthStateStore = Depends(get_oauth_states),
):
    """Handle the OAuth redirect: check the state, exchange the code, store the pair."""
    if not code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="code is required",
        )

    user_id = states.consume(state) if state else None
    if user_id is None:
        logger.warning("Rejected OAuth callback with missing or unknown state")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired OAuth state",
        )

    try:
        pair = await oauth.exchange_code(code)
    except CredentialStrategyError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    tokens.replace(pair)
    logger.info("Captured Google token pair from OAuth callback for user %s", user_id)
    return _status(pair)


@router.post("/google/tokens", response_model=TokenStatusResponse)
async def capture_tokens(request: TokenCaptureRequest, user_id: CurrentUserId, tokens: Tokens):
    """Store a token pair captured by the web application's own sign-in."""
    pair = TokenPair(
        access_token=request.access_token,
        refresh_token=request.refresh_token,
        expires_at=request.expires_at,
    )
    tokens.replace(pair)
    logger.info("Captured Google token pair for user %s", user_id)
    return _status(pair)


@router.get("/google/status", response_model=TokenStatusResponse)
async def token_status(user_id: CurrentUserId, tokens: Tokens):
    return _status(tokens.get())


def _status(pair: TokenPair | None) -> TokenStatusResponse:
    if pair is None:
        return TokenStatusResponse(captured=False)
    return TokenStatusResponse(
        captured=True,
        has_refresh_token=bool(pair.refresh_token),
        expires_at=pair.expires_at,
        expired=pair.is_expired(),
    )
