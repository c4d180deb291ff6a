"""History Bite generation pipeline.

Provides the single-flight coordinator that serializes generation cycles,
the result slot it writes, and the audit log every attempt is appended to.

Usage:
    from historybite.pipeline import AuditLog, GenerationCoordinator, ResultStore

    coordinator = GenerationCoordinator(
        client,
        prompt_file=settings.prompt_file,
        store=ResultStore(),
        audit=AuditLog(settings.log_file),
    )
    result = await coordinator.trigger()
"""

from .audit import AuditLog, AuditRecord
from .coordinator import CoordinatorState, GenerationCoordinator
from .store import ResultStore

__all__ = [
    "AuditLog",
    "AuditRecord",
    "CoordinatorState",
    "GenerationCoordinator",
    "ResultStore",
]
