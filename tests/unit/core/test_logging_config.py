"""Unit tests for structured logger setup."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from core.logging_config import get_logger


def test_get_logger_emits_structured_events(monkeypatch: pytest.MonkeyPatch) -> None:
    """Loggers should accept snake_case events with keyword fields."""
    monkeypatch.delenv("H5CELL_LOG_LEVEL", raising=False)
    logger = get_logger("core.test_logging_config")

    with capture_logs() as captured:
        logger.info("resolution_graph_built", assays=2)

    assert captured == [{"event": "resolution_graph_built", "assays": 2, "log_level": "info"}]


def test_get_logger_drops_events_below_configured_level(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """H5CELL_LOG_LEVEL should filter lower-level events."""
    monkeypatch.setenv("H5CELL_LOG_LEVEL", "warning")
    logger = get_logger("core.test_logging_config")

    with capture_logs() as captured:
        logger.info("request_normalized")
        logger.warning("append_noop")

    monkeypatch.delenv("H5CELL_LOG_LEVEL")
    get_logger("core.test_logging_config")
    assert [entry["event"] for entry in captured] == ["append_noop"]
