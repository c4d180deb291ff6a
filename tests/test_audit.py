"""Tests for the audit log."""

from datetime import UTC, datetime
from pathlib import Path

from historybite.models.story import Story
from historybite.pipeline.audit import SEPARATOR, AuditLog, AuditRecord, resolve_timezone


def _record(**kwargs) -> AuditRecord:
    utc = datetime(2026, 1, 15, 20, 30, 0, 123000, tzinfo=UTC)
    return AuditRecord(
        timestamp_utc=utc,
        timestamp_local=utc.astimezone(resolve_timezone("America/Los_Angeles")),
        **kwargs,
    )


class TestAuditRecord:
    """Test the rendered block."""

    def test_success_block(self) -> None:
        """Test a successful attempt renders prompt and response."""
        text = _record(prompt="Tell a story.", payload="A plain tale.").render()

        assert text.count(SEPARATOR) == 4
        assert "TIMESTAMP (UTC): 2026-01-15T20:30:00.123Z" in text
        assert "TIMESTAMP (PST): 01/15/2026, 12:30:00" in text
        assert "PROMPT SENT:\nTell a story.\n" in text
        assert "RESPONSE RECEIVED:\nA plain tale.\n" in text

    def test_story_rendered_as_json(self) -> None:
        """Test a story payload is written as indented JSON."""
        story = Story(name="Ashoka", content="After Kalinga.", shareableQuote="Dhamma.")
        text = _record(prompt="p", payload=story).render()

        assert '"name": "Ashoka"' in text
        assert '"shareableQuote": "Dhamma."' in text

    def test_error_block(self) -> None:
        """Test a failure renders the error instead of a response."""
        record = _record(prompt=None, error="File not found")
        text = record.render()

        assert record.succeeded is False
        assert "PROMPT SENT:\nNo prompt\n" in text
        assert "ERROR:\nFile not found\n" in text
        assert "RESPONSE RECEIVED" not in text

    def test_summer_label(self) -> None:
        """Test daylight saving time is reflected in the local label."""
        utc = datetime(2026, 7, 1, 12, 0, tzinfo=UTC)
        record = AuditRecord(
            timestamp_utc=utc,
            timestamp_local=utc.astimezone(resolve_timezone("America/Los_Angeles")),
            prompt="p",
            payload="x",
        )
        assert record.local_label == "PDT"


class TestAuditLog:
    """Test appending to the log file."""

    def test_appends_blocks(self, tmp_path: Path) -> None:
        """Test each attempt is appended and the directory is created."""
        path = tmp_path / "logs" / "claude_runs.log"
        audit = AuditLog(path)

        audit.record("first prompt", payload="one")
        audit.record("second prompt", error="Claude API error: 500")

        text = path.read_text(encoding="utf-8")
        assert text.index("first prompt") < text.index("second prompt")
        assert "RESPONSE RECEIVED:\none" in text
        assert "ERROR:\nClaude API error: 500" in text

    def test_write_failure_is_not_raised(self, tmp_path: Path) -> None:
        """Test an unwritable log path is logged and ignored."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        audit = AuditLog(blocker / "claude_runs.log")

        record = audit.record("prompt", payload="ok")

        assert record.succeeded is True

    def test_unknown_timezone_falls_back_to_utc(self, tmp_path: Path) -> None:
        """Test an unknown zone name does not break logging."""
        audit = AuditLog(tmp_path / "log.txt", timezone="Mars/Olympus_Mons")

        record = audit.record("prompt", payload="ok")

        assert record.local_label == "UTC"
