"""Structured logging configuration.

This module initializes structlog loggers with a stable JSON format
shared by the catalog, normalizer, materializer and merge engine.
Events below H5CELL_LOG_LEVEL are dropped before rendering.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog

from core.config import log_level_from_env


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger bound to ``name``.

    Raises:
        H5CellConfigError: If H5CELL_LOG_LEVEL is invalid.
    """
    level = getattr(logging, log_level_from_env().upper())
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    return structlog.get_logger(name)
