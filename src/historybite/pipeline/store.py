"""Single-slot holder for the current generation result."""

from historybite.models.result import GenerationResult


class ResultStore:
    """Holds the most recent ``GenerationResult`` snapshot.

    Snapshots are immutable, so ``set`` is a plain reference swap and ``get``
    never observes a half-written result. No history is kept.
    """

    def __init__(self, initial: GenerationResult | None = None) -> None:
        self._snapshot = initial or GenerationResult.waiting()

    def get(self) -> GenerationResult:
        """Return the current snapshot."""
        return self._snapshot

    def set(self, snapshot: GenerationResult) -> GenerationResult:
        """Replace the current snapshot and return it."""
        self._snapshot = snapshot
        return snapshot
