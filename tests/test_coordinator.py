"""Tests for the single-flight generation coordinator."""

import asyncio
from pathlib import Path

import httpx
import pytest

from historybite.generation.client import ClaudeClient
from historybite.generation.errors import UpstreamError
from historybite.models.result import (
    API_KEY_MISSING_MESSAGE,
    EMPTY_PROMPT_MESSAGE,
    FAILURE_MESSAGE,
    PROCESSING_MESSAGE,
    PROMPT_MISSING_MESSAGE,
    WAITING_MESSAGE,
    GenerationResult,
)
from historybite.pipeline.audit import AuditLog
from historybite.pipeline.coordinator import (
    PRODUCTION_ERROR_MESSAGE,
    SHUTDOWN_ERROR_MESSAGE,
    CoordinatorState,
    GenerationCoordinator,
)

from tests.helpers import STORY, FakeGenerator


def _coordinator(
    client,
    prompt_file: Path,
    log_file: Path | None = None,
    **kwargs,
) -> GenerationCoordinator:
    audit = AuditLog(log_file) if log_file is not None else None
    return GenerationCoordinator(client, prompt_file=prompt_file, audit=audit, **kwargs)


class TestSingleFlight:
    """Test upstream calls never overlap."""

    @pytest.mark.asyncio
    async def test_concurrent_triggers_are_serialized(self, prompt_file: Path) -> None:
        """Test five concurrent callers produce five non-overlapping calls."""
        generator = FakeGenerator(delay=0.01)
        coordinator = _coordinator(generator, prompt_file)

        results = await asyncio.gather(*(coordinator.trigger() for _ in range(5)))

        assert generator.calls == 5
        assert generator.max_active == 1
        assert all(result.is_story for result in results)
        assert all(result.error is None for result in results)

    @pytest.mark.asyncio
    async def test_waiters_served_in_arrival_order(self, prompt_file: Path) -> None:
        """Test each caller receives the snapshot of its own cycle."""
        responses = [f"story number {n}" for n in range(3)]
        generator = FakeGenerator(responses=list(responses), delay=0.01)
        coordinator = _coordinator(generator, prompt_file)

        results = await asyncio.gather(*(coordinator.trigger() for _ in range(3)))

        assert [result.payload for result in results] == responses

    @pytest.mark.asyncio
    async def test_every_cycle_sends_a_fresh_prompt(self, prompt_file: Path) -> None:
        """Test each cycle augments the prompt with new metadata."""
        generator = FakeGenerator()
        coordinator = _coordinator(generator, prompt_file)

        await coordinator.trigger()
        await coordinator.trigger()

        first, second = generator.prompts
        assert first.startswith("Tell a story.")
        assert second.startswith("Tell a story.")
        assert first != second

    @pytest.mark.asyncio
    async def test_cancelled_caller_still_runs_its_cycle(self, prompt_file: Path) -> None:
        """Test a caller that gives up does not abort the queued cycle."""
        generator = FakeGenerator(delay=0.01)
        coordinator = _coordinator(generator, prompt_file)

        abandoned = asyncio.create_task(coordinator.trigger())
        await asyncio.sleep(0)
        abandoned.cancel()
        result = await coordinator.trigger()

        assert result.is_story
        assert generator.calls == 2

    @pytest.mark.asyncio
    async def test_processing_snapshot_visible_during_cycle(self, prompt_file: Path) -> None:
        """Test readers observe a processing snapshot while a call is in flight."""
        observed: list[GenerationResult] = []
        coordinator: GenerationCoordinator | None = None

        def on_call(prompt: str) -> None:
            observed.append(coordinator.get_result())

        generator = FakeGenerator(on_call=on_call)
        coordinator = _coordinator(generator, prompt_file)

        assert coordinator.get_result().payload == WAITING_MESSAGE
        result = await coordinator.trigger()

        assert observed[0].is_processing is True
        assert observed[0].payload == PROCESSING_MESSAGE
        assert result.is_processing is False
        assert coordinator.get_result() is result
        assert coordinator.state == CoordinatorState.IDLE


class TestFailures:
    """Test every failure becomes an error snapshot."""

    @pytest.mark.asyncio
    async def test_missing_api_key_makes_no_request(
        self, prompt_file: Path, log_file: Path
    ) -> None:
        """Test a missing key fails without touching the network."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(500)

        client = ClaudeClient("", transport=httpx.MockTransport(handler))
        coordinator = _coordinator(client, prompt_file, log_file)

        result = await coordinator.trigger()
        await client.close()

        assert seen == []
        assert result.payload == API_KEY_MISSING_MESSAGE
        assert "CLAUDE_API_KEY" in result.error
        assert "CLAUDE_API_KEY not configured" in log_file.read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_timeout_recovers_for_next_waiter(
        self, prompt_file: Path, log_file: Path
    ) -> None:
        """Test a timed out call is recorded and the next caller is still served."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(
                200, json={"content": [{"type": "text", "text": "A plain tale."}]}
            )

        client = ClaudeClient("test-key", transport=httpx.MockTransport(handler))
        coordinator = _coordinator(client, prompt_file, log_file)

        first, second = await asyncio.gather(coordinator.trigger(), coordinator.trigger())
        await client.close()

        assert "timed out" in first.error
        assert first.payload == FAILURE_MESSAGE
        assert second.error is None
        assert second.payload == "A plain tale."
        assert coordinator.state == CoordinatorState.IDLE

        log = log_file.read_text(encoding="utf-8")
        assert "timed out" in log
        assert "RESPONSE RECEIVED:\nA plain tale." in log

    @pytest.mark.asyncio
    async def test_missing_prompt_file(self, tmp_path: Path, log_file: Path) -> None:
        """Test a missing prompt file yields the not-found snapshot."""
        generator = FakeGenerator()
        coordinator = _coordinator(generator, tmp_path / "missing.txt", log_file)

        result = await coordinator.trigger()

        assert result.error == "File not found"
        assert result.payload == PROMPT_MISSING_MESSAGE
        assert result.last_modified is None
        assert generator.calls == 0
        assert "No prompt" in log_file.read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_empty_prompt_skips_generation(
        self, prompt_file: Path, log_file: Path
    ) -> None:
        """Test an empty prompt produces guidance and no upstream call."""
        prompt_file.write_text("  \n", encoding="utf-8")
        generator = FakeGenerator()
        coordinator = _coordinator(generator, prompt_file, log_file)

        result = await coordinator.trigger()

        assert result.payload == EMPTY_PROMPT_MESSAGE
        assert result.error is None
        assert generator.calls == 0
        assert not log_file.exists()

    @pytest.mark.asyncio
    async def test_upstream_error_detail_shown_outside_production(
        self, prompt_file: Path
    ) -> None:
        """Test the error detail reaches the snapshot in development."""
        generator = FakeGenerator(responses=[UpstreamError("Claude API error: 529", code="HTTP_529")])
        coordinator = _coordinator(generator, prompt_file)

        result = await coordinator.trigger()

        assert result.error == "Claude API error: 529"
        assert result.payload == FAILURE_MESSAGE
        assert result.last_modified is not None

    @pytest.mark.asyncio
    async def test_error_detail_is_sanitized(self, prompt_file: Path) -> None:
        """Test markup in error detail is stripped before it is served."""
        generator = FakeGenerator(responses=[UpstreamError("<b>bad</b> gateway")])
        coordinator = _coordinator(generator, prompt_file)

        result = await coordinator.trigger()

        assert "<" not in result.error
        assert "bad" in result.error

    @pytest.mark.asyncio
    async def test_production_masks_detail(self, prompt_file: Path, log_file: Path) -> None:
        """Test production snapshots hide detail while the audit log keeps it."""
        generator = FakeGenerator(responses=[UpstreamError("secret upstream detail")])
        coordinator = _coordinator(generator, prompt_file, log_file, production=True)

        result = await coordinator.trigger()

        assert result.error == PRODUCTION_ERROR_MESSAGE
        assert "secret upstream detail" in log_file.read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, prompt_file: Path) -> None:
        """Test a bug in the generator becomes an error snapshot."""
        generator = FakeGenerator(responses=[RuntimeError("boom")])
        coordinator = _coordinator(generator, prompt_file)

        result = await coordinator.trigger()
        follow_up = await coordinator.trigger()

        assert result.error == "boom"
        assert follow_up.is_story
        assert coordinator.stats()["failures"] == 1

    @pytest.mark.asyncio
    async def test_empty_generated_text(self, prompt_file: Path) -> None:
        """Test an empty model reply is a failed cycle."""
        generator = FakeGenerator(responses=[""])
        coordinator = _coordinator(generator, prompt_file)

        result = await coordinator.trigger()

        assert result.error is not None
        assert result.payload == FAILURE_MESSAGE


class TestSuccess:
    """Test successful cycles."""

    @pytest.mark.asyncio
    async def test_story_is_stored_and_audited(self, prompt_file: Path, log_file: Path) -> None:
        """Test a story reaches the store and the audit log."""
        coordinator = _coordinator(FakeGenerator(), prompt_file, log_file)

        result = await coordinator.trigger()

        assert result.is_story
        assert result.to_wire()["response"] == STORY
        assert coordinator.get_result() is result
        log = log_file.read_text(encoding="utf-8")
        assert "PROMPT SENT:\nTell a story." in log
        assert STORY["name"] in log

    @pytest.mark.asyncio
    async def test_prompt_edits_picked_up(self, prompt_file: Path) -> None:
        """Test the prompt file is re-read on every cycle."""
        generator = FakeGenerator()
        coordinator = _coordinator(generator, prompt_file)

        await coordinator.trigger()
        prompt_file.write_text("Tell another story.", encoding="utf-8")
        await coordinator.trigger()

        assert generator.prompts[1].startswith("Tell another story.")


class TestLifecycle:
    """Test background scheduling, shutdown and stats."""

    @pytest.mark.asyncio
    async def test_schedule_runs_in_background(self, prompt_file: Path) -> None:
        """Test a scheduled cycle completes without an awaiting caller."""
        generator = FakeGenerator()
        coordinator = _coordinator(generator, prompt_file)

        task = coordinator.schedule()
        result = await task

        assert result.is_story
        assert generator.calls == 1

    @pytest.mark.asyncio
    async def test_close_resolves_waiters(self, prompt_file: Path) -> None:
        """Test shutdown resolves the running and queued callers."""
        generator = FakeGenerator(delay=10)
        coordinator = _coordinator(generator, prompt_file)

        tasks = [asyncio.create_task(coordinator.trigger()) for _ in range(3)]
        await asyncio.sleep(0.01)
        await coordinator.close()
        results = await asyncio.gather(*tasks)

        assert [result.error for result in results] == [SHUTDOWN_ERROR_MESSAGE] * 3
        assert generator.calls == 1
        stored = coordinator.get_result()
        assert stored.is_processing is False
        assert stored.error == SHUTDOWN_ERROR_MESSAGE
        assert coordinator.state == CoordinatorState.IDLE
        with pytest.raises(RuntimeError):
            await coordinator.trigger()

    @pytest.mark.asyncio
    async def test_stats(self, prompt_file: Path) -> None:
        """Test counters track cycles and failures."""
        generator = FakeGenerator(responses=[UpstreamError("nope")])
        coordinator = _coordinator(generator, prompt_file)

        await coordinator.trigger()
        await coordinator.trigger()

        assert coordinator.stats() == {
            "state": "idle",
            "queue_depth": 0,
            "cycles": 2,
            "failures": 1,
        }
