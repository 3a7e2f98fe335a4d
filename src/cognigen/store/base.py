"""Generation store interface.

The store holds the fingerprint-keyed result cache and the append-only
generation history. The engine receives a store instance rather than owning
module-level state, so tests and deployments choose the backend.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cognigen.pipeline.models import GenerationResult, GenerationStatus, HistoryRecord


@runtime_checkable
class GenerationStore(Protocol):
    """Persistence for cached results and generation history."""

    async def get_cached(self, fingerprint: str) -> GenerationResult | None:
        """Return the cached result for a fingerprint, if any."""
        ...

    async def put_cached(self, fingerprint: str, result: GenerationResult) -> None:
        """Store a result under a fingerprint, replacing any previous entry."""
        ...

    async def clear_cache(self) -> int:
        """Drop every cached result and return how many were removed."""
        ...

    async def append_history(self, record: HistoryRecord) -> None:
        """Append a history record. Records are never updated or removed."""
        ...

    async def list_history(
        self,
        limit: int = 50,
        user_id: str | None = None,
        project_id: str | None = None,
        status: GenerationStatus | None = None,
    ) -> list[HistoryRecord]:
        """Return history records, most recent first."""
        ...
