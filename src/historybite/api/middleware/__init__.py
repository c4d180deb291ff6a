"""FastAPI middleware for request processing.

Middleware components:
- Rate limiting
- Security headers
- Request logging
"""

from .rate_limiting import RateLimiter, RateLimitMiddleware, client_key
from .security import RequestLoggingMiddleware, SecurityHeadersMiddleware, security_headers

__all__ = [
    "RateLimitMiddleware",
    "RateLimiter",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "client_key",
    "security_headers",
]
