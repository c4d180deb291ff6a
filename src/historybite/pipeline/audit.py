"""Append-only audit log of generation attempts.

Each attempt is written as one human-readable block holding the UTC and
local timestamps, the full prompt and either the outcome or the error. A
failed write is logged and otherwise ignored so it never fails the request.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from historybite.models.story import Story

logger = logging.getLogger(__name__)

SEPARATOR = "=" * 80
LOCAL_TIME_FORMAT = "%m/%d/%Y, %H:%M:%S"


@dataclass(frozen=True)
class AuditRecord:
    """One generation attempt as written to the audit log."""

    timestamp_utc: datetime
    timestamp_local: datetime
    prompt: str | None
    payload: Story | str | None = None
    error: str | None = None
    succeeded: bool = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "succeeded", self.error is None)

    @property
    def local_label(self) -> str:
        """Short zone name for the local timestamp, e.g. PST or PDT."""
        return self.timestamp_local.strftime("%Z") or "LOCAL"

    @property
    def local_display(self) -> str:
        return self.timestamp_local.strftime(LOCAL_TIME_FORMAT)

    def _render_outcome(self) -> str:
        if self.error is not None:
            return f"ERROR:\n{self.error}"
        if isinstance(self.payload, Story):
            body = json.dumps(self.payload.to_payload(), indent=2, ensure_ascii=False)
        else:
            body = str(self.payload)
        return f"RESPONSE RECEIVED:\n{body}"

    def render(self) -> str:
        """Format the record as the text block appended to the log file."""
        utc_iso = self.timestamp_utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")
        return (
            f"\n{SEPARATOR}\n"
            f"TIMESTAMP (UTC): {utc_iso}\n"
            f"TIMESTAMP ({self.local_label}): {self.local_display}\n"
            f"{SEPARATOR}\n"
            "\n"
            "PROMPT SENT:\n"
            f"{self.prompt or 'No prompt'}\n"
            "\n"
            f"{SEPARATOR}\n"
            "\n"
            f"{self._render_outcome()}\n"
            "\n"
            f"{SEPARATOR}\n"
            "\n"
        )


def resolve_timezone(name: str) -> tzinfo:
    """Look up an IANA zone, falling back to UTC for unknown names."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown audit timezone '{name}', using UTC")
        return UTC


class AuditLog:
    """Appends ``AuditRecord`` blocks to a text file.

    Args:
        path: Log file location; the parent directory is created on demand
        timezone: IANA name of the zone used for the local timestamp
    """

    def __init__(self, path: Path, timezone: str = "America/Los_Angeles") -> None:
        self.path = path
        self.timezone = resolve_timezone(timezone)

    def build_record(
        self,
        prompt: str | None,
        *,
        payload: Story | str | None = None,
        error: str | None = None,
    ) -> AuditRecord:
        now = datetime.now(UTC)
        return AuditRecord(
            timestamp_utc=now,
            timestamp_local=now.astimezone(self.timezone),
            prompt=prompt,
            payload=payload,
            error=error,
        )

    def record(
        self,
        prompt: str | None,
        *,
        payload: Story | str | None = None,
        error: str | None = None,
    ) -> AuditRecord:
        """Append one attempt to the log.

        Args:
            prompt: Prompt sent upstream, None if none was built
            payload: Normalized outcome on success
            error: Full error detail on failure

        Returns:
            The record that was (or failed to be) written
        """
        entry = self.build_record(prompt, payload=payload, error=error)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(entry.render())
        except OSError as e:
            logger.error(f"Failed to write log: {e}")
            return entry

        status = "SUCCESS" if entry.succeeded else "ERROR"
        logger.info(f"[{entry.local_display} {entry.local_label}] Request logged - {status}")
        return entry
