"""
Tests for the structlog setup: import, processor chain and batch binding.
"""

from __future__ import annotations

import json

from structlog.testing import capture_logs

from mulika_analytics.mulika_logging import bind_batch, get_logger
from mulika_analytics.mulika_logging.logger import build_processors


def test_logging_import():
    """get_logger returns a usable structured logger."""
    logger = get_logger("test")
    assert hasattr(logger, "info")
    assert hasattr(logger, "warning")
    # Smoke test: call info (should not raise)
    logger.info("test_message", key="value")


def test_json_chain_renames_event():
    event_dict = {"event": "clustering_complete", "k": 3}
    for processor in build_processors("json"):
        event_dict = processor(None, "info", event_dict)
    record = json.loads(event_dict)
    assert record["event_type"] == "clustering_complete"
    assert "event" not in record
    assert record["level"] == "info"
    assert record["k"] == 3
    assert record["timestamp"].endswith("Z")


def test_console_chain_keeps_event():
    processors = build_processors("console")
    assert type(processors[-1]).__name__ == "ConsoleRenderer"


def test_bind_batch_logger():
    """bind_batch tags records with batch_size and the logger name."""
    with capture_logs() as logs:
        bind_batch("test", 12).info("batch_message", k=3)
    assert logs == [
        {"event": "batch_message", "log_level": "info", "logger": "test", "batch_size": 12, "k": 3}
    ]
