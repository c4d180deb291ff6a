"""FastAPI dependencies for dependency injection.

Provides access to the per-application settings and coordinator, shared
secret authentication for protected endpoints, and the stricter refresh
rate limit.
"""

import logging
from typing import Annotated

from fastapi import Depends, Header, Query, Request

from historybite.api.exceptions import RateLimitError, UnauthorizedError
from historybite.api.middleware.rate_limiting import RateLimiter, client_key
from historybite.core.config import Settings
from historybite.core.security import verify_api_key
from historybite.pipeline.coordinator import GenerationCoordinator

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_coordinator(request: Request) -> GenerationCoordinator:
    """The application's single generation coordinator."""
    return request.app.state.coordinator


def get_refresh_limiter(request: Request) -> RateLimiter:
    """Rate limiter dedicated to the refresh endpoint."""
    return request.app.state.refresh_limiter


AppSettings = Annotated[Settings, Depends(get_app_settings)]
Coordinator = Annotated[GenerationCoordinator, Depends(get_coordinator)]


async def require_api_key(
    settings: AppSettings,
    x_api_key: Annotated[str | None, Header()] = None,
    apikey: Annotated[str | None, Query()] = None,
) -> None:
    """Require the shared secret from the X-API-Key header or ``apikey`` query.

    Access is open when no APP_API_KEY is configured (development).

    Raises:
        UnauthorizedError: If the key is missing or wrong
    """
    if not settings.has_app_api_key():
        return

    provided_key = x_api_key or apikey
    if not provided_key:
        raise UnauthorizedError("API key required")

    if not verify_api_key(provided_key, settings.app_api_key):
        raise UnauthorizedError("Invalid API key")


async def refresh_rate_limit(
    request: Request,
    limiter: Annotated[RateLimiter, Depends(get_refresh_limiter)],
) -> None:
    """Apply the refresh endpoint's stricter limit.

    Raises:
        RateLimitError: If the client exceeded the refresh limit
    """
    decision = limiter.check(client_key(request))
    if not decision.allowed:
        raise RateLimitError(
            limiter.message,
            retry_after=limiter.window_seconds,
            headers=decision.headers,
        )


ValidAPIKey = Depends(require_api_key)
RefreshRateLimit = Depends(refresh_rate_limit)
