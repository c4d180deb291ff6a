"""Single-flight generation coordinator.

Serializes generation cycles so that at most one Claude call is in flight at
any moment. Callers are queued in arrival order and a single worker task
drains the queue one waiter at a time; every waiter gets the snapshot of its
own fresh cycle. This bounds upstream concurrency to one, it does not share
results between callers.

Example:
    coordinator = GenerationCoordinator(client, prompt_file=settings.prompt_file)
    result = await coordinator.trigger()
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from historybite.core.security import sanitize_input
from historybite.generation.errors import ConfigError, GenerationError, PromptSourceError
from historybite.generation.normalizer import normalize_response
from historybite.generation.prompt import GenerationRequest, read_prompt
from historybite.models.result import (
    API_KEY_MISSING_MESSAGE,
    EMPTY_PROMPT_MESSAGE,
    PROMPT_MISSING_MESSAGE,
    GenerationResult,
)

from .audit import AuditLog
from .store import ResultStore

logger = logging.getLogger(__name__)

PRODUCTION_ERROR_MESSAGE = "Processing failed"
PROMPT_MISSING_ERROR = "File not found"
SHUTDOWN_ERROR_MESSAGE = "Service shutting down"


class TextGenerator(Protocol):
    """Anything that turns a prompt into raw generated text."""

    async def generate(self, prompt: str) -> str: ...


class CoordinatorState(str, Enum):
    """Whether a generation cycle is currently running."""

    IDLE = "idle"
    PROCESSING = "processing"


@dataclass
class _Waiter:
    future: asyncio.Future[GenerationResult]
    enqueued_at: float = field(default_factory=time.monotonic)


class GenerationCoordinator:
    """Runs generation cycles one at a time on behalf of queued callers.

    Args:
        client: Generation client used for the upstream call
        prompt_file: Base prompt location, read fresh every cycle
        store: Result slot written after every cycle
        audit: Audit log receiving every attempt; None disables auditing
        production: Hide internal error detail from user-facing snapshots
    """

    def __init__(
        self,
        client: TextGenerator,
        *,
        prompt_file: Path,
        store: ResultStore | None = None,
        audit: AuditLog | None = None,
        production: bool = False,
    ) -> None:
        self.client = client
        self.prompt_file = prompt_file
        self.store = store or ResultStore()
        self.audit = audit
        self.production = production
        self.state = CoordinatorState.IDLE

        self._queue: deque[_Waiter] = deque()
        self._current: _Waiter | None = None
        self._worker: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[Any]] = set()
        self._closed = False

        # counters
        self._cycles = 0
        self._failures = 0

    @property
    def queue_depth(self) -> int:
        """Number of callers waiting behind the current cycle."""
        return len(self._queue)

    @property
    def is_busy(self) -> bool:
        """True while the worker task is draining the queue."""
        return self._worker is not None and not self._worker.done()

    def get_result(self) -> GenerationResult:
        """Return the current snapshot without triggering a cycle."""
        return self.store.get()

    async def trigger(self) -> GenerationResult:
        """Queue a generation cycle and wait for its result.

        Returns:
            The snapshot written by this caller's own cycle

        Raises:
            RuntimeError: If the coordinator has been closed
        """
        if self._closed:
            raise RuntimeError("Coordinator is closed")

        waiter = _Waiter(future=asyncio.get_running_loop().create_future())
        self._queue.append(waiter)
        if self.is_busy:
            logger.debug(f"Generation in progress, queued caller ({self.queue_depth} waiting)")
        else:
            self._worker = asyncio.create_task(self._drain())

        # Shielded: a caller that goes away does not abort its queued cycle.
        return await asyncio.shield(waiter.future)

    def schedule(self) -> asyncio.Task[GenerationResult]:
        """Trigger a cycle in the background without waiting for it."""
        task = asyncio.create_task(self.trigger())
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _drain(self) -> None:
        while self._queue:
            waiter = self._queue.popleft()
            self._current = waiter
            waited = time.monotonic() - waiter.enqueued_at
            if waited > 1:
                logger.info(f"Starting queued generation after {waited:.1f}s wait")
            result = await self.run_cycle()
            self._current = None
            if not waiter.future.done():
                waiter.future.set_result(result)

    async def run_cycle(self) -> GenerationResult:
        """Run one full cycle: read, augment, generate, normalize, store, audit.

        Never raises; every failure becomes an error snapshot.
        """
        self.state = CoordinatorState.PROCESSING
        self._cycles += 1
        prompt: str | None = None
        try:
            try:
                base_prompt = read_prompt(self.prompt_file)
            except PromptSourceError as e:
                logger.warning(e.message)
                self._failures += 1
                self._audit(None, error=e.message)
                return self.store.set(
                    GenerationResult.failure(
                        PROMPT_MISSING_ERROR,
                        payload=PROMPT_MISSING_MESSAGE,
                        timestamped=False,
                    )
                )

            if not base_prompt:
                logger.info("Prompt file is empty, nothing to generate")
                return self.store.set(GenerationResult(payload=EMPTY_PROMPT_MESSAGE))

            request = GenerationRequest.create(base_prompt)
            prompt = request.augmented_prompt
            self.store.set(GenerationResult.processing(self.store.get().last_modified))
            logger.info(f"Generation {request.generation_id} started")

            raw = await self.client.generate(prompt)
            payload = normalize_response(raw)
            result = self.store.set(GenerationResult.success(payload))
            self._audit(prompt, payload=payload)
            kind = "story" if result.is_story else "raw text"
            logger.info(f"Generation {request.generation_id} completed ({kind})")
            return result

        except ConfigError as e:
            logger.error(f"Claude API error: {e.message}")
            self._failures += 1
            self._audit(prompt, error=e.message)
            return self.store.set(
                GenerationResult.failure(e.message, payload=API_KEY_MISSING_MESSAGE)
            )
        except GenerationError as e:
            logger.error(f"Claude API error: {e.message}")
            return self._record_failure(prompt, e.message)
        except Exception as e:
            logger.exception("Error processing prompt")
            return self._record_failure(prompt, str(e) or type(e).__name__)
        finally:
            self.state = CoordinatorState.IDLE

    def _record_failure(self, prompt: str | None, detail: str) -> GenerationResult:
        self._failures += 1
        self._audit(prompt, error=detail)
        return self.store.set(GenerationResult.failure(self.user_safe_error(detail)))

    def user_safe_error(self, detail: str) -> str:
        """Hide internal detail in production, sanitize it otherwise."""
        if self.production:
            return PRODUCTION_ERROR_MESSAGE
        return str(sanitize_input(detail))

    def _audit(self, prompt: str | None, **outcome: Any) -> None:
        if self.audit is not None:
            self.audit.record(prompt, **outcome)

    async def close(self) -> None:
        """Stop the worker and resolve any callers still waiting."""
        self._closed = True
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass

        pending = [self._current] if self._current is not None else []
        pending.extend(self._queue)
        self._queue.clear()
        self._current = None
        if self.store.get().is_processing:
            self.store.set(GenerationResult.failure(SHUTDOWN_ERROR_MESSAGE))
        for waiter in pending:
            if not waiter.future.done():
                waiter.future.set_result(GenerationResult.failure(SHUTDOWN_ERROR_MESSAGE))
        self.state = CoordinatorState.IDLE

    def stats(self) -> dict[str, Any]:
        """Report coordinator state and counters."""
        return {
            "state": self.state.value,
            "queue_depth": self.queue_depth,
            "cycles": self._cycles,
            "failures": self._failures,
        }
