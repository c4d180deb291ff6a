"""Security headers and request logging middleware."""
import json
import logging
import time
from datetime import UTC, datetime
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .rate_limiting import client_key

logger = logging.getLogger(__name__)

CONTENT_SECURITY_POLICY = {
    "default-src": ["'self'"],
    "style-src": ["'self'", "'unsafe-inline'"],
    "script-src": ["'self'", "'unsafe-inline'"],
    "img-src": ["'self'", "data:", "https:"],
    "connect-src": ["'self'"],
    "font-src": ["'self'"],
    "object-src": ["'none'"],
    "media-src": ["'self'"],
    "frame-src": ["'none'"],
    "base-uri": ["'self'"],
    "form-action": ["'self'"],
    "frame-ancestors": ["'none'"],
    "upgrade-insecure-requests": [],
}

HSTS_MAX_AGE_SECONDS = 31536000

SECURITY_STATUS_CODES = {401, 403, 429}


def build_csp(directives: dict[str, list[str]] = CONTENT_SECURITY_POLICY) -> str:
    """Render CSP directives as a header value."""
    return "; ".join(
        " ".join([name, *sources]) for name, sources in directives.items()
    )


def security_headers() -> dict[str, str]:
    """Headers added to every response."""
    return {
        "Content-Security-Policy": build_csp(),
        "Strict-Transport-Security": f"max-age={HSTS_MAX_AGE_SECONDS}; includeSubDomains; preload",
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "SAMEORIGIN",
        "Referrer-Policy": "no-referrer",
        "Cross-Origin-Opener-Policy": "same-origin",
        "X-DNS-Prefetch-Control": "off",
    }


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach CSP, HSTS and related hardening headers."""

    def __init__(self, app: Callable, headers: dict[str, str] | None = None):
        super().__init__(app)
        self.headers = headers or security_headers()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for key, value in self.headers.items():
            response.headers.setdefault(key, value)
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Time every request and log auth and rate limit rejections."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start) * 1000)

        if response.status_code in SECURITY_STATUS_CODES:
            entry = {
                "timestamp": datetime.now(UTC).isoformat(),
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration": f"{duration_ms}ms",
                "ip": client_key(request),
                "userAgent": request.headers.get("user-agent"),
            }
            logger.warning(f"SECURITY: {json.dumps(entry)}")
        else:
            logger.debug(
                f"{request.method} {request.url.path} {response.status_code} {duration_ms}ms"
            )
        return response
