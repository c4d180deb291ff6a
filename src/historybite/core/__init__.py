"""Core utilities and configuration for History Bite.

This module contains:
- Configuration and settings management
- Security utilities (API key comparison, output sanitization)
"""
from .config import Settings, get_settings
from .security import sanitize_input, verify_api_key

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Security
    "sanitize_input",
    "verify_api_key",
]
