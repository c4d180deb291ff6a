"""FastAPI application entry point.

Main application configuration, middleware, and startup lifecycle.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from historybite.api.exceptions import register_exception_handlers
from historybite.api.middleware import (
    RateLimiter,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from historybite.core.config import Settings, get_settings
from historybite.generation.client import ClaudeClient
from historybite.pipeline import AuditLog, GenerationCoordinator, ResultStore

logger = logging.getLogger(__name__)

REFRESH_LIMIT_MESSAGE = "Refresh limit exceeded. Please wait before requesting new content."


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Startup:
    - Create the runtime data and log directories
    - Kick off one background generation if a prompt file exists

    Shutdown:
    - Resolve queued callers and stop the coordinator
    - Close the Claude HTTP client
    """
    settings: Settings = app.state.settings
    coordinator: GenerationCoordinator = app.state.coordinator

    for directory in (settings.prompt_file.parent, settings.log_file.parent):
        directory.mkdir(parents=True, exist_ok=True)

    logger.info(f"Environment: {settings.environment}")
    if settings.has_app_api_key():
        logger.info("API key protection: ENABLED")
    else:
        logger.warning("API key protection is DISABLED (set APP_API_KEY)")
    if not settings.has_claude_key():
        logger.warning("CLAUDE_API_KEY is not set; generation cycles will fail")

    if settings.generate_on_startup and settings.prompt_file.exists():
        logger.info("Prompt file found, running initial generation")
        coordinator.schedule()

    yield

    logger.info("Shutting down...")
    await coordinator.close()
    await app.state.claude_client.close()
    logger.info("Generation coordinator stopped")


def build_claude_client(settings: Settings) -> ClaudeClient:
    """Create the Claude client from settings."""
    return ClaudeClient(
        settings.claude_api_key,
        api_url=settings.claude_api_url,
        model=settings.claude_model,
        max_tokens=settings.claude_max_tokens,
        api_version=settings.claude_api_version,
        timeout=settings.claude_timeout_seconds,
    )


def build_coordinator(settings: Settings, client: ClaudeClient) -> GenerationCoordinator:
    """Wire the coordinator with a fresh result slot and the audit log."""
    return GenerationCoordinator(
        client,
        prompt_file=settings.prompt_file,
        store=ResultStore(),
        audit=AuditLog(settings.log_file, timezone=settings.audit_timezone),
        production=settings.is_production,
    )


def create_app(
    settings: Settings | None = None,
    client: ClaudeClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings (defaults to environment settings)
        client: Claude client override, mainly for tests

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    is_production = settings.is_production
    base_path = settings.normalized_base_path

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="A freshly generated story from Indian history on every request",
        version=settings.app_version,
        debug=settings.debug,
        docs_url="/api/docs" if not is_production else None,
        redoc_url="/api/redoc" if not is_production else None,
        openapi_url="/api/openapi.json" if not is_production else None,
        lifespan=lifespan,
    )

    claude_client = client or build_claude_client(settings)
    app.state.settings = settings
    app.state.claude_client = claude_client
    app.state.coordinator = build_coordinator(settings, claude_client)
    app.state.refresh_limiter = RateLimiter(
        settings.refresh_rate_limit_requests,
        settings.refresh_rate_limit_window_seconds,
        message=REFRESH_LIMIT_MESSAGE,
    )
    general_limiter = RateLimiter(
        settings.rate_limit_requests,
        settings.rate_limit_window_seconds,
    )
    app.state.rate_limiter = general_limiter

    # Configure CORS; an empty allow-list admits any origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origin_list or ["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        max_age=86400,
    )
    app.add_middleware(RateLimitMiddleware, limiter=general_limiter)
    app.add_middleware(SecurityHeadersMiddleware)
    # Outermost, so rejected requests are logged too
    app.add_middleware(RequestLoggingMiddleware)

    # Import and register routers
    from historybite.api.routers import health, story

    app.include_router(health.router, prefix="/api", tags=["health"])
    if base_path:
        app.include_router(story.router, prefix=base_path, tags=["story"])
    # Support setups where reverse proxies strip the base path
    app.include_router(story.router, tags=["story"])

    if settings.static_dir is not None and settings.static_dir.is_dir():
        app.mount(
            base_path or "/",
            StaticFiles(directory=settings.static_dir, html=True),
            name="static",
        )

    register_exception_handlers(app)

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        proxy_headers=True,
        server_header=False,
        forwarded_allow_ips="127.0.0.1",
    )
