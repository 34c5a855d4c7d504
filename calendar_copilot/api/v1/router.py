"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from calendar_copilot.api.v1 import auth, calendar, tools

api_router = APIRouter()

api_router.include_router(calendar.router, prefix="/calendar", tags=["calendar"])
api_router.include_router(tools.router, prefix="/tools", tags=["tools"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
