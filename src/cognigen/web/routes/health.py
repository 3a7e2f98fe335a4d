"""Health check endpoints for cognigen.

Routes:
    GET /health/ - Liveness check
    GET /health/ready - Readiness check; verifies the engine and its store
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel

from cognigen.logging import get_logger

logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Current health status ("ok")
    """

    status: str


class ReadinessResponse(BaseModel):
    """Readiness check response model.

    Attributes:
        status: Current readiness status ("ok", "unhealthy")
        store: Generation store status ("available", "unavailable")
    """

    status: str
    store: str


def create_health_router() -> APIRouter:
    """Create health check router with endpoints."""
    router = APIRouter(prefix="/health", tags=["health"])

    @router.get("/", response_model=HealthResponse)
    async def health() -> dict[str, Any]:
        return {"status": "ok"}

    @router.get("/ready", response_model=ReadinessResponse)
    async def readiness(request: Request) -> dict[str, Any]:
        """Report ready once the engine exists and its store answers a query."""
        engine = getattr(request.app.state, "engine", None)
        if engine is None:
            return {"status": "unhealthy", "store": "unavailable"}
        try:
            await engine.store.list_history(limit=1)
        except Exception as exc:
            logger.warning("readiness_check_failed", store="unavailable", error=str(exc))
            return {"status": "unhealthy", "store": "unavailable"}
        logger.debug("readiness_check_passed", store="available")
        return {"status": "ok", "store": "available"}

    return router
