"""
Structured logging for the Mulika analytics engine.

JSON logs with timestamp, event_type and batch context.
Use get_logger() in all engine modules for aggregation-friendly output.
"""

from mulika_analytics.mulika_logging.logger import bind_batch, get_logger

__all__ = ["bind_batch", "get_logger"]
