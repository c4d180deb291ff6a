"""Exceptions raised by the generation pipeline stages.

Every stage failure is a ``GenerationError``. The coordinator catches them at
the cycle boundary and turns them into an error snapshot, so none of these
ever reach an HTTP caller.
"""

from typing import Any


class GenerationError(Exception):
    """Base exception for generation failures.

    Args:
        message: Human-readable error message (full internal detail)
        code: Machine-readable error code for programmatic handling
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ConfigError(GenerationError):
    """Raised when the Claude API key is not configured.

    No network call is attempted.
    """

    pass


class UpstreamError(GenerationError):
    """Raised on timeout, network failure, non-2xx status or a malformed envelope."""

    pass


class NormalizationError(GenerationError):
    """Raised when the provider returned no usable text at all."""

    pass


class PromptSourceError(GenerationError):
    """Raised when the prompt file is missing or unreadable."""

    pass
