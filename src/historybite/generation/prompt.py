"""Prompt source and augmentation.

The base prompt lives in a plain text file that operators edit by hand. Before
every generation it is read fresh and extended with a metadata block plus fixed
instructions so that consecutive generations produce different stories.
"""

from __future__ import annotations

import random
import secrets
import string
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from .errors import PromptSourceError

GENERATION_ID_ALPHABET = string.digits + string.ascii_lowercase
GENERATION_ID_LENGTH = 8
RANDOM_SEED_MAX = 999_999

CRITICAL_INSTRUCTIONS = (
    "Generate a story about a COMPLETELY DIFFERENT historical figure than any previous generation",
    "Use the random seed above to select a unique figure",
    "Vary the time period, region, and theme",
    "NEVER repeat the same historical figure",
    "Prioritize lesser-known figures to maximize variety",
)


def read_prompt(path: Path) -> str:
    """Read the base prompt file and trim surrounding whitespace.

    Args:
        path: Location of the prompt file

    Returns:
        Trimmed prompt text, possibly empty

    Raises:
        PromptSourceError: If the file does not exist or cannot be read
    """
    if not path.is_file():
        raise PromptSourceError(
            f"Prompt file not found: {path}",
            code="PROMPT_NOT_FOUND",
            details={"path": str(path)},
        )
    try:
        return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        raise PromptSourceError(
            f"Unable to read prompt file {path}: {e}",
            code="PROMPT_UNREADABLE",
            details={"path": str(path)},
        ) from e


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as ISO 8601 in UTC with millisecond precision and Z suffix."""
    return dt.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_generation_id(length: int = GENERATION_ID_LENGTH) -> str:
    """Return a short random lowercase alphanumeric token."""
    return "".join(secrets.choice(GENERATION_ID_ALPHABET) for _ in range(length))


def new_unique_request_id() -> float:
    """Wall-clock milliseconds plus a random fraction."""
    return time.time() * 1000 + random.random()


def augment_prompt(
    base_prompt: str,
    *,
    generation_id: str,
    timestamp: str,
    unique_request_id: float,
    random_seed: int,
) -> str:
    """Append the uniqueness metadata block and critical instructions.

    Args:
        base_prompt: Trimmed, non-empty prompt text
        generation_id: Short random token
        timestamp: ISO 8601 timestamp of the request
        unique_request_id: High precision request identifier
        random_seed: Bounded random integer

    Returns:
        The prompt sent upstream

    Raises:
        ValueError: If the base prompt is empty
    """
    if not base_prompt or not base_prompt.strip():
        raise ValueError("base_prompt must not be empty")

    instructions = "\n".join(
        f"{index}. {instruction}"
        for index, instruction in enumerate(CRITICAL_INSTRUCTIONS, start=1)
    )
    return (
        f"{base_prompt}\n"
        "\n"
        "Generation Metadata (use this to ensure uniqueness):\n"
        f"- Generation ID: {generation_id}\n"
        f"- Timestamp: {timestamp}\n"
        f"- Unique Request ID: {unique_request_id}\n"
        f"- Random Seed: {random_seed}\n"
        "\n"
        "CRITICAL INSTRUCTIONS:\n"
        f"{instructions}"
    )


@dataclass(frozen=True)
class GenerationRequest:
    """One generation attempt; discarded after the audit log write."""

    base_prompt: str
    augmented_prompt: str
    generation_id: str
    request_timestamp: datetime
    unique_request_id: float
    random_seed: int

    @classmethod
    def create(cls, base_prompt: str) -> GenerationRequest:
        """Build a request with freshly generated uniqueness metadata."""
        now = datetime.now(UTC)
        generation_id = new_generation_id()
        unique_request_id = new_unique_request_id()
        random_seed = random.randint(0, RANDOM_SEED_MAX)
        augmented = augment_prompt(
            base_prompt,
            generation_id=generation_id,
            timestamp=format_timestamp(now),
            unique_request_id=unique_request_id,
            random_seed=random_seed,
        )
        return cls(
            base_prompt=base_prompt,
            augmented_prompt=augmented,
            generation_id=generation_id,
            request_timestamp=now,
            unique_request_id=unique_request_id,
            random_seed=random_seed,
        )
