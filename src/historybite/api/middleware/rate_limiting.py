"""Per-client rate limiting.

Each limiter keeps a sliding window of request times per client IP in memory.
Limiters belong to one application instance, so separate apps (and tests)
never share counters.
"""
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

DEFAULT_LIMIT_MESSAGE = "Too many requests, please try again later."


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after: int | None = None
    headers: dict[str, str] = field(init=False)

    def __post_init__(self) -> None:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }
        if self.retry_after is not None:
            headers["Retry-After"] = str(self.retry_after)
        object.__setattr__(self, "headers", headers)


class RateLimiter:
    """Sliding window limiter keyed by client.

    Args:
        limit: Requests allowed per window
        window_seconds: Window length
        message: Error message returned when the limit is hit
        clock: Source of the current time in seconds
    """

    def __init__(
        self,
        limit: int,
        window_seconds: int,
        message: str = DEFAULT_LIMIT_MESSAGE,
        clock: Callable[[], float] = time.time,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}

    def _prune(self, key: str, now: float) -> deque[float]:
        """Drop expired hits; a client with none left is forgotten."""
        hits = self._hits.get(key, deque())
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if not hits:
            self._hits.pop(key, None)
        return hits

    def check(self, key: str) -> RateLimitDecision:
        """Record a request for ``key`` if it fits in the current window.

        Rejected requests are not recorded.
        """
        now = self._clock()
        hits = self._prune(key, now)
        reset_at = int((hits[0] if hits else now) + self.window_seconds)

        if len(hits) >= self.limit:
            return RateLimitDecision(
                allowed=False,
                limit=self.limit,
                remaining=0,
                reset_at=reset_at,
                retry_after=max(1, int(reset_at - now)),
            )

        hits.append(now)
        self._hits[key] = hits
        return RateLimitDecision(
            allowed=True,
            limit=self.limit,
            remaining=self.limit - len(hits),
            reset_at=reset_at,
        )

    def rejection_body(self) -> dict:
        """JSON body returned with a 429 response."""
        return {"error": self.message, "retryAfter": self.window_seconds}


def client_key(request: Request) -> str:
    """Identify the client by IP (proxy headers are resolved by uvicorn)."""
    if request.client is None:
        return "unknown"
    return request.client.host


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Apply the general rate limit to every non-exempt path."""

    def __init__(
        self,
        app: Callable,
        limiter: RateLimiter,
        exempt_paths: list[str] | None = None,
    ):
        super().__init__(app)
        self.limiter = limiter
        self.exempt_paths = tuple(
            exempt_paths or ["/api/docs", "/api/redoc", "/api/openapi.json", "/api/health"]
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path.startswith(self.exempt_paths):
            return await call_next(request)

        decision = self.limiter.check(client_key(request))
        if not decision.allowed:
            return JSONResponse(
                status_code=429,
                content=self.limiter.rejection_body(),
                headers=decision.headers,
            )

        response = await call_next(request)
        response.headers.update(decision.headers)
        return response
