"""FastAPI application and REST API endpoints.

This module contains:
- Main FastAPI application configuration
- API key authentication and rate limiting
- Story generation endpoints
"""

from .main import create_app

__all__ = ["create_app"]
