"""Claude Messages API client.

Performs exactly one HTTP request per ``generate`` call. There is no retry
loop: a failed call surfaces as ``UpstreamError`` and the coordinator records
it for the current cycle.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import ConfigError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.anthropic.com/v1/messages"
DEFAULT_MODEL = "claude-3-5-haiku-20241022"
DEFAULT_MAX_TOKENS = 4000
DEFAULT_API_VERSION = "2023-06-01"
DEFAULT_TIMEOUT_SECONDS = 60.0


class ClaudeClient:
    """Async client for a single-message Claude completion.

    Args:
        api_key: Anthropic API key; empty means not configured
        api_url: Messages endpoint
        model: Model identifier
        max_tokens: Upper bound on generated tokens
        api_version: Value of the ``anthropic-version`` header
        timeout: Request timeout in seconds
        transport: Optional httpx transport (used by tests)

    Example:
        ```python
        async with ClaudeClient(api_key="sk-ant-...") as client:
            text = await client.generate("Tell a story.")
        ```
    """

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = DEFAULT_API_URL,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.max_tokens = max_tokens
        self.api_version = api_version
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> ClaudeClient:
        """Support async context manager."""
        await self._get_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Close client on context exit."""
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release connections."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def build_payload(self, prompt: str) -> dict[str, Any]:
        """Build the request body for a single user message."""
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

    def build_headers(self) -> dict[str, str]:
        """Build the required request headers."""
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
        }

    async def generate(self, prompt: str) -> str:
        """Send the prompt and return the raw generated text.

        Args:
            prompt: Augmented prompt

        Returns:
            Text of the first content block (may be empty)

        Raises:
            ConfigError: If no API key is configured
            UpstreamError: On timeout, network failure, non-2xx status
                or an envelope without text
        """
        if not self.api_key:
            raise ConfigError("CLAUDE_API_KEY not configured", code="MISSING_API_KEY")

        client = await self._get_client()
        try:
            response = await client.post(
                self.api_url,
                json=self.build_payload(prompt),
                headers=self.build_headers(),
            )
        except httpx.TimeoutException as e:
            raise UpstreamError(
                f"Claude API request timed out after {self.timeout:g} seconds",
                code="TIMEOUT",
                details={"timeout": self.timeout},
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(
                f"Claude API request failed: {e!s}",
                code="CONNECTION_FAILED",
            ) from e

        if not response.is_success:
            error_body: Any = response.text
            try:
                error_body = response.json()
            except ValueError:
                pass
            raise UpstreamError(
                f"Claude API error {response.status_code}",
                code=f"HTTP_{response.status_code}",
                details={"response": error_body, "status_code": response.status_code},
            )

        try:
            envelope = response.json()
        except ValueError as e:
            raise UpstreamError(
                "Invalid response from Claude API",
                code="INVALID_ENVELOPE",
            ) from e

        text = self.extract_text(envelope)
        if text is None:
            raise UpstreamError(
                "Invalid response from Claude API",
                code="INVALID_ENVELOPE",
                details={"response": envelope},
            )
        logger.debug(f"Claude API returned {len(text)} characters")
        return text

    @staticmethod
    def extract_text(envelope: Any) -> str | None:
        """Return ``content[0].text`` from a Messages API envelope, or None."""
        if not isinstance(envelope, dict):
            return None
        content = envelope.get("content")
        if not isinstance(content, list) or not content:
            return None
        first = content[0]
        if not isinstance(first, dict):
            return None
        text = first.get("text")
        if not isinstance(text, str):
            return None
        return text
