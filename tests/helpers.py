"""Test doubles and sample payloads."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

STORY = {
    "name": "Rani Abbakka Chowta",
    "title": "The Fearless Queen of Ullal",
    "content": "In the sixteenth century, a queen defied the Portuguese.\n\nShe never surrendered.",
    "shareableQuote": "Courage is the only fortress that cannot be breached.",
}


def story_text(story: dict[str, Any] | None = None) -> str:
    """A well-formed story as the model would return it."""
    return json.dumps(story or STORY)


def claude_envelope(text: str) -> dict[str, Any]:
    """Messages API response body wrapping ``text``."""
    return {
        "id": "msg_01",
        "type": "message",
        "role": "assistant",
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
    }


class FakeGenerator:
    """Stand-in for ClaudeClient that records calls and overlap.

    Each call consumes the next scripted item: a string is returned,
    an exception is raised. Without a script it returns a valid story.
    """

    def __init__(
        self,
        responses: list[str | Exception] | None = None,
        delay: float = 0.0,
        on_call: Callable[[str], None] | None = None,
    ) -> None:
        self.responses = list(responses or [])
        self.delay = delay
        self.on_call = on_call
        self.prompts: list[str] = []
        self.active = 0
        self.max_active = 0

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.on_call is not None:
                self.on_call(prompt)
            await asyncio.sleep(self.delay)
            item: str | Exception = self.responses.pop(0) if self.responses else story_text()
            if isinstance(item, Exception):
                raise item
            return item
        finally:
            self.active -= 1
