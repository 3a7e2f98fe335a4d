"""Generation endpoints for cognigen.

Routes:
    POST /generations - Run the pipeline for a request
    GET /generations/history - List recent runs, newest first
    GET /generations/metrics - Aggregate pipeline metrics
    DELETE /generations/cache - Drop every cached result

A failed run is returned as a GenerationFailure body with a status code
derived from its error code.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi import status as http_status
from fastapi.responses import JSONResponse

from cognigen.logging import get_logger
from cognigen.pipeline.engine import EngineMetrics, GenerationEngine
from cognigen.pipeline.errors import ErrorCode
from cognigen.pipeline.models import (
    GenerationFailure,
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
    HistoryRecord,
)

logger = get_logger(__name__)

# 499 follows the nginx "client closed request" convention
STATUS_BY_ERROR_CODE: dict[str, int] = {
    ErrorCode.VALIDATION_ERROR.value: http_status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.CANCELLED.value: 499,
}


def status_for_failure(failure: GenerationFailure) -> int:
    return STATUS_BY_ERROR_CODE.get(
        failure.error_code, http_status.HTTP_500_INTERNAL_SERVER_ERROR
    )


def get_engine(request: Request) -> GenerationEngine:
    """Dependency that retrieves the generation engine from app state."""
    return request.app.state.engine  # type: ignore[no-any-return]


def create_generations_router() -> APIRouter:
    """Create the generation router."""
    router = APIRouter(prefix="/generations", tags=["generations"])

    @router.post(
        "",
        response_model=GenerationResult,
        responses={
            422: {"model": GenerationFailure},
            499: {"model": GenerationFailure},
            500: {"model": GenerationFailure},
        },
    )
    async def create_generation(
        body: GenerationRequest,
        engine: GenerationEngine = Depends(get_engine),  # noqa: B008
    ) -> Any:
        outcome = await engine.generate(body)
        if isinstance(outcome, GenerationFailure):
            status_code = status_for_failure(outcome)
            logger.info(
                "generation_request_failed",
                request_id=outcome.request_id,
                error_code=outcome.error_code,
                status_code=status_code,
            )
            return JSONResponse(
                status_code=status_code, content=outcome.model_dump(mode="json")
            )
        return outcome

    @router.get("/history", response_model=list[HistoryRecord])
    async def list_history(
        limit: int = Query(default=50, ge=1, le=1000),
        user_id: str | None = None,
        project_id: str | None = None,
        status: GenerationStatus | None = None,
        engine: GenerationEngine = Depends(get_engine),  # noqa: B008
    ) -> list[HistoryRecord]:
        return await engine.store.list_history(
            limit=limit, user_id=user_id, project_id=project_id, status=status
        )

    @router.get("/metrics", response_model=EngineMetrics)
    async def get_metrics(
        engine: GenerationEngine = Depends(get_engine),  # noqa: B008
    ) -> EngineMetrics:
        return await engine.get_metrics()

    @router.delete("/cache")
    async def clear_cache(
        engine: GenerationEngine = Depends(get_engine),  # noqa: B008
    ) -> dict[str, int]:
        removed = await engine.store.clear_cache()
        logger.info("generation_cache_cleared", removed=removed)
        return {"removed": removed}

    return router
