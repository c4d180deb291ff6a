"""History Bite - a freshly generated story from Indian history, on every request.

A small web backend that reads a base prompt, asks Claude for a story,
normalizes the (often slightly malformed) JSON it returns and serves the
result. Only one upstream call runs at a time; concurrent requests queue up
and each runs its own cycle in arrival order.

Quick Start:
    from historybite import ClaudeClient, GenerationCoordinator

    async with ClaudeClient(api_key="sk-ant-...") as client:
        coordinator = GenerationCoordinator(client, prompt_file=Path("prompt.txt"))
        result = await coordinator.trigger()
        print(result.to_wire())
"""

__version__ = "0.1.0"

from historybite.generation import ClaudeClient, GenerationRequest, normalize_response
from historybite.models import GenerationResult, Story
from historybite.pipeline import AuditLog, GenerationCoordinator, ResultStore

__all__ = [
    # Version
    "__version__",
    # Generation
    "ClaudeClient",
    "GenerationRequest",
    "normalize_response",
    # Models
    "GenerationResult",
    "Story",
    # Pipeline
    "AuditLog",
    "GenerationCoordinator",
    "ResultStore",
]
