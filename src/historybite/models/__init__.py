"""Data models for History Bite.

Models:
- Story: structured story payload parsed from generated text
- GenerationResult: immutable snapshot of the current outcome
"""

from .result import GenerationResult
from .story import Story

__all__ = [
    "GenerationResult",
    "Story",
]
