"""Turn raw model output into a Story, or degrade to raw text.

Models frequently wrap the JSON in a markdown fence or put literal newlines
inside string values, which strict JSON rejects. Each step below is a fallback
for the previous one:

1. Extract the content of a ```json fenced block if there is one.
2. Strict ``json.loads``.
3. Escape literal control characters inside the free-text fields and retry.
4. Accept the object as a Story if ``name`` and ``content`` are non-empty.
5. Otherwise keep the raw text as the payload.

Only a response with no text at all is an error.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from historybite.models.story import Story

from .errors import NormalizationError

logger = logging.getLogger(__name__)

FENCED_JSON_PATTERN = re.compile(r"```json\s*(\{[\s\S]*?\})\s*```")
FREE_TEXT_FIELDS = ("content", "shareableQuote")
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def _field_pattern(field: str) -> re.Pattern[str]:
    # The value group tolerates escaped quotes and spans lines.
    return re.compile(rf'"{field}":\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)


_FIELD_PATTERNS = {field: _field_pattern(field) for field in FREE_TEXT_FIELDS}


def extract_json_block(text: str) -> str:
    """Return the content of the first ```json fenced block, or the text itself."""
    match = FENCED_JSON_PATTERN.search(text)
    if match:
        return match.group(1)
    return text


def _escape_control_characters(value: str) -> str:
    for raw, escaped in _CONTROL_ESCAPES.items():
        value = value.replace(raw, escaped)
    return value


def repair_json(text: str) -> str:
    """Escape literal newlines, carriage returns and tabs in free-text fields.

    Args:
        text: JSON-like text that failed a strict parse

    Returns:
        Text with ``content`` and ``shareableQuote`` values escaped
    """
    repaired = text.strip()
    for field, pattern in _FIELD_PATTERNS.items():
        repaired = pattern.sub(
            lambda match, name=field: f'"{name}": "{_escape_control_characters(match.group(1))}"',
            repaired,
        )
    return repaired


def parse_json_object(text: str) -> Any | None:
    """Parse text strictly, retrying once after ``repair_json``.

    Returns:
        The decoded JSON value, or None if both attempts fail
    """
    try:
        return json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        logger.info("Initial parse failed, attempting to fix JSON...")

    try:
        return json.loads(repair_json(text))
    except (json.JSONDecodeError, RecursionError) as e:
        logger.warning(f"JSON parse error: {e}")
        logger.warning(f"Failed response sample: {text[:500]}")
        return None


def to_story(data: Any) -> Story | None:
    """Validate decoded JSON as a Story, returning None if it does not qualify."""
    if not isinstance(data, dict):
        return None
    if not data.get("name") or not data.get("content"):
        return None
    try:
        return Story.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Story validation failed: {e.error_count()} errors")
        return None


def normalize_response(raw: str | None) -> Story | str:
    """Normalize raw model output into a Story or a degraded text payload.

    Args:
        raw: Text returned by the generation client

    Returns:
        A Story when the output holds a valid story object, otherwise
        the raw text unchanged

    Raises:
        NormalizationError: If there is no usable text at all
    """
    if raw is None or not raw.strip():
        raise NormalizationError(
            "Claude API returned no text",
            code="EMPTY_RESPONSE",
        )

    candidate = extract_json_block(raw)
    story = to_story(parse_json_object(candidate))
    if story is not None:
        return story
    return raw
