"""Story router.

Every read runs a fresh generation cycle through the coordinator; there is
no cache-only read path.
"""

import logging
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from historybite.api.deps import Coordinator, RefreshRateLimit, ValidAPIKey

logger = logging.getLogger(__name__)

router = APIRouter()


class RefreshResponse(BaseModel):
    """Refresh acknowledgement."""

    message: str
    success: bool


@router.get("/api/result")
async def get_result(coordinator: Coordinator) -> dict[str, Any]:
    """Generate a new story and return the resulting snapshot.

    Returns:
        Snapshot with ``response``, ``isProcessing``, ``lastModified`` and ``error``.
    """
    result = await coordinator.trigger()
    return result.to_wire()


@router.post(
    "/api/refresh",
    response_model=RefreshResponse,
    dependencies=[ValidAPIKey, RefreshRateLimit],
)
async def refresh(coordinator: Coordinator) -> RefreshResponse:
    """Manually trigger a generation cycle (API key protected)."""
    logger.info("Manual refresh triggered")
    await coordinator.trigger()
    return RefreshResponse(message="Refresh triggered", success=True)
