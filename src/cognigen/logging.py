"""Structured logging configuration for cognigen.

structlog handles event emission while Python's stdlib logging owns the
handlers (stdout or a rotating file). Request identity and an optional
correlation id travel through contextvars so every pipeline stage logs them
without passing loggers around.

Example usage:
    >>> from cognigen.config import LoggingConfig
    >>> from cognigen.logging import setup_logging, get_logger, bind_request_context
    >>>
    >>> setup_logging(LoggingConfig(level="INFO", format="console"))
    >>> logger = get_logger(__name__)
    >>> bind_request_context(request_id="req-1", user_id="u-1")
    >>> logger.info("generation_started", mode="from-prompt")
"""

from __future__ import annotations

import contextvars
import logging
import logging.handlers
import sys
from typing import Any, TextIO

import structlog

from cognigen.config import LoggingConfig

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add correlation_id to log event if set in context.

    Args:
        logger: Logger instance (unused, required by structlog protocol)
        method_name: Log method name (unused, required by structlog protocol)
        event_dict: Current event dictionary to augment

    Returns:
        Event dictionary with correlation_id added if available
    """
    correlation_id = _correlation_id.get()
    if correlation_id is not None:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def set_correlation_id(correlation_id: str | None) -> None:
    """Set correlation ID for current context."""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    """Get current correlation ID from context."""
    return _correlation_id.get()


def bind_request_context(request_id: str, user_id: str | None = None) -> None:
    """Bind generation request identity to all subsequent logs.

    The binding lives in structlog's contextvars, so it is scoped to the
    current asyncio task and anything it spawns.

    Args:
        request_id: Identifier of the generation request
        user_id: Identifier of the requesting user, if known
    """
    structlog.contextvars.bind_contextvars(request_id=request_id, user_id=user_id)


def clear_request_context() -> None:
    """Drop request identity bound by :func:`bind_request_context`."""
    structlog.contextvars.unbind_contextvars("request_id", "user_id")


def setup_logging(config: LoggingConfig, stream: TextIO | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        config: Logging configuration from CognigenConfig
        stream: Stream for console output when no log file is configured;
            defaults to stdout
    """
    log_level = getattr(logging, config.level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler: logging.Handler
    if config.file is not None:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            filename=config.file,
            maxBytes=config.rotation_size_mb * 1024 * 1024,
            backupCount=config.retention_count,
            encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler(stream or sys.stdout)

    handler.setLevel(log_level)
    root_logger.addHandler(handler)

    if config.format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.contextvars.merge_contextvars,
            add_correlation_id,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured structlog BoundLogger instance
    """
    return structlog.get_logger(name)
