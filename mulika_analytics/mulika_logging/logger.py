"""
structlog setup for the analytics engine.

Each record carries an ISO-8601 UTC timestamp, the level, the logger name and
an ``event_type`` key in JSON output (the default); LOG_FORMAT=console gives a
readable renderer for local runs. LOG_LEVEL sets the threshold (default INFO).

This module must not import other mulika_analytics modules.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

EVENT_KEY = "event_type"


def _level_from_env() -> int:
    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), None)
    return level if isinstance(level, int) else logging.INFO


def build_processors(log_format: str) -> list[Any]:
    """Processor chain shared by every engine logger; the renderer comes last."""
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        structlog.processors.format_exc_info,
    ]
    if log_format == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    else:
        processors.append(structlog.processors.EventRenamer(EVENT_KEY))
        processors.append(structlog.processors.JSONRenderer(default=str))
    return processors


def configure_logging(level: int | None = None, log_format: str | None = None) -> None:
    """Configure structlog; arguments override LOG_LEVEL and LOG_FORMAT."""
    fmt = (log_format or os.getenv("LOG_FORMAT", "json")).strip().lower()
    structlog.configure(
        processors=build_processors(fmt),
        wrapper_class=structlog.make_filtering_bound_logger(
            _level_from_env() if level is None else level
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_logging()


def get_logger(name: str) -> structlog.BoundLogger:
    """Logger bound to the module name, e.g. ``get_logger(__name__)``."""
    return structlog.get_logger(name).bind(logger=name)


def bind_batch(name: str, batch_size: int) -> structlog.BoundLogger:
    """Logger that tags every record of one engine call with the batch size."""
    return get_logger(name).bind(batch_size=batch_size)
