"""Generation result snapshot.

A ``GenerationResult`` is immutable: the coordinator replaces the whole
snapshot instead of mutating fields, so readers never observe a partially
written result.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .story import Story

WAITING_MESSAGE = "Waiting for prompt... Edit prompt.txt and save to see results here."
PROCESSING_MESSAGE = "Processing..."
EMPTY_PROMPT_MESSAGE = "Please add your prompt to prompt.txt"
PROMPT_MISSING_MESSAGE = "prompt.txt file not found"
API_KEY_MISSING_MESSAGE = "API key not configured"
FAILURE_MESSAGE = "Error processing request"


class GenerationResult(BaseModel):
    """The single current outcome served to clients.

    Attributes:
        payload: Parsed story, raw generated text, or a user-safe placeholder
        is_processing: True while a generation cycle is in flight
        last_modified: When the payload was produced (UTC)
        error: User-safe error message, None on success
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    payload: Story | str | None = Field(default=None, alias="response")
    is_processing: bool = Field(default=False, alias="isProcessing")
    last_modified: datetime | None = Field(default=None, alias="lastModified")
    error: str | None = None

    @field_serializer("payload")
    def _serialize_payload(self, payload: Story | str | None) -> dict[str, Any] | str | None:
        if isinstance(payload, Story):
            return payload.to_payload()
        return payload

    @property
    def is_story(self) -> bool:
        """Check whether the payload is a structured story."""
        return isinstance(self.payload, Story)

    def to_wire(self) -> dict[str, Any]:
        """Convert to the JSON-serializable dictionary returned by the API."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def waiting(cls) -> "GenerationResult":
        """Placeholder used before the first generation cycle."""
        return cls(payload=WAITING_MESSAGE)

    @classmethod
    def processing(cls, last_modified: datetime | None = None) -> "GenerationResult":
        """Transient snapshot stored while a cycle is running."""
        return cls(
            payload=PROCESSING_MESSAGE,
            is_processing=True,
            last_modified=last_modified,
        )

    @classmethod
    def success(cls, payload: Story | str) -> "GenerationResult":
        """Snapshot for a completed cycle."""
        return cls(payload=payload, last_modified=datetime.now(UTC))

    @classmethod
    def failure(
        cls,
        error: str,
        payload: str = FAILURE_MESSAGE,
        *,
        timestamped: bool = True,
    ) -> "GenerationResult":
        """Snapshot for a failed cycle with a user-safe fallback payload."""
        return cls(
            payload=payload,
            error=error,
            last_modified=datetime.now(UTC) if timestamped else None,
        )
