"""FastAPI application factory for cognigen.

This module provides the application factory that creates a FastAPI
application with:
- CORS middleware for cross-origin requests
- Request logging middleware with correlation IDs
- Generation engine lifecycle management
- Health, generation, history and metrics endpoints

Example usage:
    >>> from cognigen.config import CognigenConfig
    >>> from cognigen.web.app import create_app
    >>>
    >>> app = create_app(CognigenConfig())
    >>> import uvicorn
    >>> uvicorn.run(app, host="0.0.0.0", port=8000)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cognigen import __version__
from cognigen.config import CognigenConfig
from cognigen.logging import get_logger
from cognigen.pipeline.factory import engine_from_config
from cognigen.web.middleware import RequestLoggingMiddleware
from cognigen.web.routes.generations import create_generations_router
from cognigen.web.routes.health import create_health_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the generation engine on startup and release it on shutdown.

    The engine is stored in ``app.state.engine`` for dependency injection.
    """
    config: CognigenConfig = app.state.config

    logger.info("app_startup_begin", host=config.web.host, port=config.web.port)
    async with engine_from_config(config) as engine:
        app.state.engine = engine
        yield
        logger.info("app_shutdown_begin")
    logger.info("engine_released")


def create_app(config: CognigenConfig | None = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Args:
        config: Optional CognigenConfig. If None, creates default config.

    Returns:
        Configured FastAPI application instance.
    """
    if config is None:
        config = CognigenConfig()

    app = FastAPI(
        title="cognigen",
        version=__version__,
        description="Multi-stage code generation pipeline",
        lifespan=lifespan,
    )
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(create_health_router())
    app.include_router(create_generations_router())

    logger.info("app_created", cors_origins=config.web.cors_origins, version=__version__)
    return app
