"""SQLAlchemy-backed generation store."""

from __future__ import annotations

from datetime import timezone

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cognigen.pipeline.models import (
    GenerationMode,
    GenerationResult,
    GenerationStatus,
    GenerationTarget,
    HistoryRecord,
)
from cognigen.store.models import GenerationCacheRow, GenerationHistoryRow

logger = structlog.get_logger(__name__)


def _to_record(row: GenerationHistoryRow) -> HistoryRecord:
    created_at = row.created_at
    if created_at.tzinfo is None:
        # SQLite drops the offset on round trip
        created_at = created_at.replace(tzinfo=timezone.utc)
    return HistoryRecord(
        generation_id=row.generation_id,
        request_id=row.request_id,
        user_id=row.user_id,
        project_id=row.project_id,
        fingerprint=row.fingerprint,
        mode=GenerationMode(row.mode),
        target=GenerationTarget(row.target),
        status=GenerationStatus(row.status),
        error_code=row.error_code,
        quality_score=row.quality_score,
        validated=row.validated,
        total_components=row.total_components,
        total_lines=row.total_lines,
        generation_time_ms=row.generation_time_ms,
        architecture_style=row.architecture_style,
        component_names=list(row.component_names or []),
        domain=row.domain,
        created_at=created_at,
    )


class SqlGenerationStore:
    """Generation store persisted through SQLAlchemy async sessions.

    Results are stored as their JSON serialization so a cache hit returns
    exactly what was written.

    Attributes:
        session_factory: Factory producing AsyncSession instances
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory
        self._logger = logger.bind(component="SqlGenerationStore")

    async def get_cached(self, fingerprint: str) -> GenerationResult | None:
        async with self.session_factory() as session:
            row = await session.get(GenerationCacheRow, fingerprint)
            if row is None:
                return None
            return GenerationResult.model_validate_json(row.result_json)

    async def put_cached(self, fingerprint: str, result: GenerationResult) -> None:
        payload = result.model_dump_json()
        async with self.session_factory() as session:
            async with session.begin():
                row = await session.get(GenerationCacheRow, fingerprint)
                if row is None:
                    session.add(GenerationCacheRow(fingerprint=fingerprint, result_json=payload))
                else:
                    row.result_json = payload
        self._logger.debug("cache_row_written", fingerprint=fingerprint)

    async def clear_cache(self) -> int:
        async with self.session_factory() as session:
            async with session.begin():
                count = await session.scalar(
                    select(func.count()).select_from(GenerationCacheRow)
                )
                await session.execute(delete(GenerationCacheRow))
        self._logger.info("cache_cleared", removed=count or 0)
        return count or 0

    async def append_history(self, record: HistoryRecord) -> None:
        row = GenerationHistoryRow(
            generation_id=record.generation_id,
            request_id=record.request_id,
            user_id=record.user_id,
            project_id=record.project_id,
            fingerprint=record.fingerprint,
            mode=record.mode.value,
            target=record.target.value,
            status=record.status.value,
            error_code=record.error_code,
            quality_score=record.quality_score,
            validated=record.validated,
            total_components=record.total_components,
            total_lines=record.total_lines,
            generation_time_ms=record.generation_time_ms,
            architecture_style=record.architecture_style,
            component_names=list(record.component_names),
            domain=record.domain,
            created_at=record.created_at,
        )
        async with self.session_factory() as session:
            async with session.begin():
                session.add(row)

    async def list_history(
        self,
        limit: int = 50,
        user_id: str | None = None,
        project_id: str | None = None,
        status: GenerationStatus | None = None,
    ) -> list[HistoryRecord]:
        stmt = select(GenerationHistoryRow)
        if user_id is not None:
            stmt = stmt.where(GenerationHistoryRow.user_id == user_id)
        if project_id is not None:
            stmt = stmt.where(GenerationHistoryRow.project_id == project_id)
        if status is not None:
            stmt = stmt.where(GenerationHistoryRow.status == status.value)
        stmt = stmt.order_by(GenerationHistoryRow.id.desc()).limit(limit)

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [_to_record(row) for row in result.scalars().all()]
