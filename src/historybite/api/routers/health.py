"""Health check endpoints."""

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from historybite.api.deps import AppSettings, Coordinator

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    environment: str
    claude_api: str
    api_key_protection: bool
    coordinator: dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: AppSettings, coordinator: Coordinator) -> HealthResponse:
    """Check application health status.

    Does not trigger a generation cycle.
    """
    claude_status = "configured" if settings.has_claude_key() else "not configured"
    return HealthResponse(
        status="healthy" if settings.has_claude_key() else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        claude_api=claude_status,
        api_key_protection=settings.has_app_api_key(),
        coordinator=coordinator.stats(),
    )
