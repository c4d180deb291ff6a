"""Security utilities for API key checks and output sanitization."""
import re
import secrets

_TAG_PATTERN = re.compile(r"<[^>]*>?")

_ESCAPE_MAP = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
}
_ESCAPE_PATTERN = re.compile(r"[&<>\"'/]")


def verify_api_key(provided_key: str | None, expected_key: str) -> bool:
    """Compare a client supplied API key with the configured one.

    Args:
        provided_key: Key sent by the client (header or query string)
        expected_key: Configured shared secret

    Returns:
        True if both keys are present and equal, False otherwise
    """
    if not provided_key or not expected_key:
        return False
    # compare_digest runs in constant time for equal-length inputs
    return secrets.compare_digest(
        provided_key.encode("utf-8"),
        expected_key.encode("utf-8"),
    )


def sanitize_input(value: object) -> object:
    """Strip HTML tags and escape markup characters in a string.

    Non-string values are returned unchanged.

    Args:
        value: Text to sanitize

    Returns:
        Sanitized text safe to embed in an HTML error banner
    """
    if not isinstance(value, str):
        return value
    stripped = _TAG_PATTERN.sub("", value)
    return _ESCAPE_PATTERN.sub(lambda match: _ESCAPE_MAP[match.group(0)], stripped)
