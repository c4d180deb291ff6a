"""Shared fixtures for History Bite tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from historybite.core.config import Settings

from tests.helpers import claude_envelope, story_text


@pytest.fixture
def runtime_dir(tmp_path: Path) -> Path:
    return tmp_path / "runtime"


@pytest.fixture
def prompt_file(runtime_dir: Path) -> Path:
    """A prompt file with a simple base prompt."""
    path = runtime_dir / "data" / "prompt.txt"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("  Tell a story.\n", encoding="utf-8")
    return path


@pytest.fixture
def log_file(runtime_dir: Path) -> Path:
    return runtime_dir / "logs" / "claude_runs.log"


@pytest.fixture
def make_settings(runtime_dir: Path) -> Callable[..., Settings]:
    """Build isolated settings that ignore any .env file."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "runtime_dir": runtime_dir,
            "environment": "development",
            "claude_api_key": "test-key",
            "app_api_key": "",
            "allowed_origins": "",
            "base_path": "/indianhistorybite",
            "generate_on_startup": False,
            "static_dir": None,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def story_transport() -> Callable[..., httpx.MockTransport]:
    """Factory for a mock Claude endpoint that records the requests it sees."""

    def _make(
        text: str | None = None,
        seen: list[httpx.Request] | None = None,
    ) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            if seen is not None:
                seen.append(request)
            return httpx.Response(200, json=claude_envelope(text or story_text()))

        return httpx.MockTransport(handler)

    return _make
