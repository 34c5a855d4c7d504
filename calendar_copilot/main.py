"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from calendar_copilot.api.v1.router import api_router
from calendar_copilot.config import get_settings
from calendar_copilot.schemas.calendar import FailureKind, QueryResponse
from calendar_copilot.services.calendar.orchestrator import MESSAGES

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

QUERY_PATH = "/api/v1/calendar/query"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    if settings.dev_auth_bypass:
        logger.warning("DEV_AUTH_BYPASS is enabled: every request runs as the dev user")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set: intent extraction will fail")

    yield


app = FastAPI(
    title="Calendar Copilot",
    description="Natural-language assistant for Google Calendar",
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are rejected with 400; queries keep the normal response shape."""
    if request.url.path == QUERY_PATH:
        response = QueryResponse(
            response=MESSAGES[FailureKind.VALIDATION],
            intent="unknown",
            error=FailureKind.VALIDATION.value,
        )
        return JSONResponse(
            status_code=400,
            content=response.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    logger.exception("Unhandled error on %s", request.url.path)
    if settings.debug:
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc), "type": type(exc).__name__},
        )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Include API router
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
