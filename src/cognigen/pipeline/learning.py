"""Learning feedback: record outcomes and recall hints from past successes.

Recording is fire-and-forget. :meth:`LearningRecorder.schedule` starts a
background task and returns immediately; failures inside the task are logged
and swallowed. :meth:`LearningRecorder.drain` waits for pending tasks, which
the engine calls on shutdown.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any

import structlog

from cognigen.capabilities.base import LearningCapability
from cognigen.pipeline.models import (
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
    HistoryRecord,
)
from cognigen.store.base import GenerationStore

logger = structlog.get_logger(__name__)


class LearningSource(str, Enum):
    """Where a learning event originates."""

    GENERATION = "generation"
    VALIDATION = "validation"
    USER_FEEDBACK = "user-feedback"
    ERROR_ANALYSIS = "error-analysis"
    SUCCESS_PATTERN = "success-pattern"
    CROSS_PROJECT = "cross-project"


class PatternType(str, Enum):
    """Kind of pattern a learning event describes."""

    ARCHITECTURE = "architecture"
    CODE_STRUCTURE = "code-structure"
    NAMING = "naming"
    ERROR_PATTERN = "error-pattern"
    SUCCESS_PATTERN = "success-pattern"
    OPTIMIZATION = "optimization"


def is_successful(result: GenerationResult, min_quality_score: int) -> bool:
    return result.validated and result.quality_score >= min_quality_score


def build_event(
    request: GenerationRequest, result: GenerationResult, min_quality_score: int
) -> dict[str, Any]:
    """Assemble the keyword arguments of a learning record call."""
    success = is_successful(result, min_quality_score)
    return {
        "source": LearningSource.GENERATION.value,
        "pattern_type": (
            PatternType.SUCCESS_PATTERN.value if success else PatternType.ERROR_PATTERN.value
        ),
        "input": {
            "mode": request.mode.value,
            "target": request.target.value,
            "prompt": request.prompt,
            "blueprint_id": request.blueprint_id,
            "language": request.language,
            "framework": request.framework,
            "context": request.context.model_dump(mode="json"),
        },
        "output": {
            "files": [c.file_name for c in result.components],
            "architecture": result.architecture.model_dump(mode="json"),
            "quality_score": result.quality_score,
        },
        "success": success,
        "metadata": {
            "request_id": request.request_id,
            "user_id": request.user_id,
            "project_id": request.project_id,
            "generation_id": result.generation_id,
        },
    }


def hint_from_record(record: HistoryRecord) -> str:
    names = ", ".join(record.component_names[:5]) or "no components"
    return (
        f"{record.architecture_style or 'layered'} architecture with {names} "
        f"scored {record.quality_score}"
    )


class LearningRecorder:
    """Sends learning events and recalls hints from successful history.

    Attributes:
        capability: Learning capability, or None when learning is disabled
        store: Generation store used to recall past successes
        timeout_seconds: Timeout applied to each record call
        hint_limit: Maximum hints returned by :meth:`recall_hints`
    """

    def __init__(
        self,
        capability: LearningCapability | None,
        store: GenerationStore,
        timeout_seconds: float = 10.0,
        hint_limit: int = 3,
    ) -> None:
        self.capability = capability
        self.store = store
        self.timeout_seconds = timeout_seconds
        self.hint_limit = hint_limit
        self._pending: set[asyncio.Task[None]] = set()
        self._logger = logger.bind(component="LearningRecorder")

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(
        self,
        request: GenerationRequest,
        result: GenerationResult,
        min_quality_score: int,
    ) -> asyncio.Task[None] | None:
        """Start recording in the background and return the task."""
        if self.capability is None:
            return None
        event = build_event(request, result, min_quality_score)
        task = asyncio.create_task(self._record(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _record(self, event: dict[str, Any]) -> None:
        assert self.capability is not None
        try:
            await asyncio.wait_for(self.capability.record(**event), timeout=self.timeout_seconds)
        except Exception as e:
            self._logger.warning(
                "learning_record_failed",
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
                request_id=event["metadata"]["request_id"],
            )
            return
        self._logger.debug(
            "learning_recorded",
            pattern_type=event["pattern_type"],
            success=event["success"],
        )

    async def drain(self) -> None:
        """Wait for every pending record task to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def recall_hints(
        self,
        request: GenerationRequest,
        architecture_style: str | None = None,
    ) -> list[str]:
        """Return hints from recent successful runs similar to ``request``.

        A run is similar when it shares the request's domain or, when
        ``architecture_style`` is given, the same architecture style.
        Errors while reading history are logged and yield no hints.
        """
        if self.capability is None or self.hint_limit == 0:
            return []
        try:
            records = await self.store.list_history(
                limit=50, status=GenerationStatus.COMPLETED
            )
        except Exception as e:
            self._logger.warning("learning_recall_failed", error=str(e))
            return []

        domain = request.context.domain
        hints: list[str] = []
        for record in records:
            if not record.validated:
                continue
            same_style = (
                architecture_style is not None
                and record.architecture_style == architecture_style
            )
            if record.domain != domain and not same_style:
                continue
            hint = hint_from_record(record)
            if hint not in hints:
                hints.append(hint)
            if len(hints) >= self.hint_limit:
                break
        return hints
