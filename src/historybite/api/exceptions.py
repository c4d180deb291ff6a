"""Exception handlers for History Bite API.

Every error response body has the shape ``{"error": <message>, ...}`` so the
front end can show ``error`` without inspecting the status code.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from historybite.core.config import get_settings

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An error occurred processing your request"


class APIError(Exception):
    """Error that maps directly onto an HTTP response."""

    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.headers = headers

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message, **self.details}


class UnauthorizedError(APIError):
    """Missing or wrong API key."""

    status_code = 401

    def __init__(self, message: str = "API key required"):
        super().__init__(message)


class RateLimitError(APIError):
    """Client exceeded a rate limit; ``retryAfter`` is the window in seconds."""

    status_code = 429

    def __init__(
        self,
        message: str = "Too many requests, please try again later.",
        retry_after: int = 60,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message, details={"retryAfter": retry_after}, headers=headers)


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return JSONResponse(exc.to_body(), status_code=exc.status_code, headers=exc.headers)


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected exceptions; hide their text from clients in production."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    settings = getattr(request.app.state, "settings", None) or get_settings()
    message = GENERIC_ERROR_MESSAGE if settings.is_production else str(exc)
    return JSONResponse({"error": message}, status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)
