"""FastAPI dependencies."""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from calendar_copilot.config import get_settings
from calendar_copilot.core.auth import clerk_auth
from calendar_copilot.services.calendar import (
    CalendarIntentService,
    CalendarQueryOrchestrator,
    CalendarToolService,
    CredentialProvider,
    GoogleCalendarGateway,
    ResponseComposer,
    TokenStore,
)
from calendar_copilot.services.calendar.credentials import build_credential_provider, token_store
from calendar_copilot.services.llm import LanguageModelService

logger = logging.getLogger(__name__)

DEV_USER_ID = "dev_user_123"


async def get_current_user_id(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Extract and validate the Clerk JWT, return the user id.

    In dev mode (DEV_AUTH_BYPASS=true), returns a fixed dev user id.
    """
    settings = get_settings()

    if settings.dev_auth_bypass:
        logger.info("DEV MODE: Bypassing Clerk auth, using dev user")
        return DEV_USER_ID

    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        scheme, token = authorization.split(" ", 1)
        if scheme.lower() != "bearer":
            raise ValueError("Invalid scheme")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_id = clerk_auth.current_user_id(token)
    except Exception as e:
        logger.error(f"Token validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token claims",
        )
    return user_id


def get_token_store() -> TokenStore:
    return token_store


def get_credential_provider() -> CredentialProvider:
    return build_credential_provider(token_store)


@lru_cache
def get_gateway() -> GoogleCalendarGateway:
    return GoogleCalendarGateway()


def get_tool_service() -> CalendarToolService:
    return CalendarToolService(credentials=get_credential_provider(), gateway=get_gateway())


@lru_cache
def get_orchestrator() -> CalendarQueryOrchestrator:
    llm = LanguageModelService()
    return CalendarQueryOrchestrator(
        intent_service=CalendarIntentService(llm),
        credentials=get_credential_provider(),
        gateway=get_gateway(),
        composer=ResponseComposer(llm),
    )


# Type aliases for dependency injection
CurrentUserId = Annotated[str, Depends(get_current_user_id)]
Tokens = Annotated[TokenStore, Depends(get_token_store)]
Orchestrator = Annotated[CalendarQueryOrchestrator, Depends(get_orchestrator)]
ToolService = Annotated[CalendarToolService, Depends(get_tool_service)]
