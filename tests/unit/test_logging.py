"""Unit tests for logging configuration."""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from io import StringIO
from pathlib import Path
from typing import Any

import pytest
import structlog

from cognigen.config import LoggingConfig
from cognigen.logging import (
    add_correlation_id,
    bind_request_context,
    clear_request_context,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logging() -> None:
    """Reset logging configuration before each test."""
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    set_correlation_id(None)


@pytest.fixture
def capture_stream() -> StringIO:
    return StringIO()


@pytest.fixture
def json_config() -> LoggingConfig:
    return LoggingConfig(level="INFO", format="json", file=None)


def _last_entry(stream: StringIO) -> dict[str, Any]:
    return json.loads(stream.getvalue().strip().splitlines()[-1])


def test_json_output_format(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """JSON format produces one parseable object per event."""
    setup_logging(json_config, stream=capture_stream)

    get_logger("test.module").info("test_event", key1="value1", key2=42)

    entry = _last_entry(capture_stream)
    assert entry["event"] == "test_event"
    assert entry["key1"] == "value1"
    assert entry["key2"] == 42
    assert entry["level"] == "info"
    assert entry["logger"] == "test.module"
    assert "timestamp" in entry


def test_console_output_format(capture_stream: StringIO) -> None:
    """Console format is human-readable rather than JSON."""
    setup_logging(LoggingConfig(level="DEBUG", format="console"), stream=capture_stream)

    get_logger("test.module").debug("test_event", status="active")

    output = capture_stream.getvalue()
    assert "test_event" in output
    assert "active" in output
    with pytest.raises(json.JSONDecodeError):
        json.loads(output.strip())


def test_log_level_filtering(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    setup_logging(json_config, stream=capture_stream)
    logger = get_logger("test.module")

    logger.debug("debug_message")
    assert capture_stream.getvalue() == ""

    logger.info("info_message")
    assert "info_message" in capture_stream.getvalue()


def test_defaults_to_stdout(json_config: LoggingConfig) -> None:
    setup_logging(json_config)

    handler = logging.getLogger().handlers[0]
    assert isinstance(handler, logging.StreamHandler)
    assert handler.stream is sys.stdout


def test_correlation_id_binding(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    setup_logging(json_config, stream=capture_stream)
    logger = get_logger("test.module")

    set_correlation_id("corr-12345")
    assert get_correlation_id() == "corr-12345"
    logger.info("with_correlation")
    assert _last_entry(capture_stream)["correlation_id"] == "corr-12345"

    set_correlation_id(None)
    logger.info("without_correlation")
    assert "correlation_id" not in _last_entry(capture_stream)


def test_correlation_id_processor() -> None:
    event_dict: dict[str, Any] = {"event": "test"}

    assert "correlation_id" not in add_correlation_id(None, "", event_dict.copy())

    set_correlation_id("test-id")
    assert add_correlation_id(None, "", event_dict.copy())["correlation_id"] == "test-id"


def test_request_context_binding(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Request identity appears on every event until cleared."""
    setup_logging(json_config, stream=capture_stream)

    bind_request_context(request_id="req-1", user_id="user-9")
    get_logger("module1").info("event1")
    first = _last_entry(capture_stream)
    get_logger("module2").info("event2")
    second = _last_entry(capture_stream)

    assert first["request_id"] == "req-1"
    assert first["user_id"] == "user-9"
    assert second["request_id"] == "req-1"

    clear_request_context()
    get_logger("module1").info("event3")
    assert "request_id" not in _last_entry(capture_stream)


def test_file_rotation_handler_configuration(tmp_path: Path) -> None:
    log_file = tmp_path / "nested" / "cognigen.log"
    config = LoggingConfig(
        level="INFO",
        format="json",
        file=log_file,
        rotation_size_mb=10,
        retention_count=3,
    )

    setup_logging(config)

    root = logging.getLogger()
    assert len(root.handlers) == 1
    handler = root.handlers[0]
    assert isinstance(handler, logging.handlers.RotatingFileHandler)
    assert handler.maxBytes == 10 * 1024 * 1024
    assert handler.backupCount == 3

    get_logger("test.module").info("test_file_write", data="test")
    handler.flush()

    entry = json.loads(log_file.read_text().strip())
    assert entry["event"] == "test_file_write"
    assert entry["data"] == "test"


def test_exception_formatting(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    setup_logging(json_config, stream=capture_stream)
    logger = get_logger("test.module")

    try:
        raise ValueError("Test exception")
    except ValueError:
        logger.exception("error_occurred")

    output = capture_stream.getvalue()
    line = next(line for line in output.splitlines() if "error_occurred" in line)
    entry = json.loads(line)
    assert entry["level"] == "error"
    assert "ValueError" in output
    assert "Test exception" in output
