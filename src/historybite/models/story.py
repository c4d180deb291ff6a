"""Story payload model.

The structured shape extracted from generated text. Only ``name`` and
``content`` are required; any additional keys the model emits are kept so the
front end receives the object exactly as generated.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Story(BaseModel):
    """Parsed story of the day."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="allow",
    )

    name: str = Field(..., min_length=1)
    title: str | None = None
    content: str = Field(..., min_length=1)
    shareable_quote: str | None = Field(default=None, alias="shareableQuote")

    def to_payload(self) -> dict[str, Any]:
        """Convert to the JSON object sent to clients (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
