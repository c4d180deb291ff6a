"""API routers for different endpoint groups.

Routers:
- health: Health check endpoint
- story: Story generation and manual refresh
"""

from .health import router as health_router
from .story import router as story_router

__all__ = [
    "health_router",
    "story_router",
]
