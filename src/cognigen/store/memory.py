"""In-process generation store."""

from __future__ import annotations

import asyncio
from collections import OrderedDict

import structlog

from cognigen.pipeline.models import GenerationResult, GenerationStatus, HistoryRecord

logger = structlog.get_logger(__name__)


class InMemoryGenerationStore:
    """Generation store backed by process memory.

    The cache is an LRU bounded by ``max_entries``; history is unbounded.
    Cached results are copied on the way in and out so callers cannot
    mutate the stored entry.

    Attributes:
        max_entries: Maximum number of cached results, None for unbounded
    """

    def __init__(self, max_entries: int | None = 256) -> None:
        self.max_entries = max_entries
        self._cache: OrderedDict[str, GenerationResult] = OrderedDict()
        self._history: list[HistoryRecord] = []
        self._lock = asyncio.Lock()

    async def get_cached(self, fingerprint: str) -> GenerationResult | None:
        async with self._lock:
            result = self._cache.get(fingerprint)
            if result is None:
                return None
            self._cache.move_to_end(fingerprint)
            return result.model_copy(deep=True)

    async def put_cached(self, fingerprint: str, result: GenerationResult) -> None:
        async with self._lock:
            self._cache[fingerprint] = result.model_copy(deep=True)
            self._cache.move_to_end(fingerprint)
            if self.max_entries is not None:
                while len(self._cache) > self.max_entries:
                    evicted, _ = self._cache.popitem(last=False)
                    logger.debug("cache_entry_evicted", fingerprint=evicted)

    async def clear_cache(self) -> int:
        async with self._lock:
            count = len(self._cache)
            self._cache.clear()
            return count

    async def append_history(self, record: HistoryRecord) -> None:
        async with self._lock:
            self._history.append(record)

    async def list_history(
        self,
        limit: int = 50,
        user_id: str | None = None,
        project_id: str | None = None,
        status: GenerationStatus | None = None,
    ) -> list[HistoryRecord]:
        async with self._lock:
            records = [
                r
                for r in reversed(self._history)
                if (user_id is None or r.user_id == user_id)
                and (project_id is None or r.project_id == project_id)
                and (status is None or r.status == status)
            ]
        return records[:limit]
