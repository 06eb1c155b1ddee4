"""
Core primitives shared across the engine: the exception taxonomy.
"""

from mulika_analytics.core.exceptions import (
    AnalyticsError,
    ComputeBackendError,
    ConfigurationError,
    InsufficientDataError,
)

__all__ = [
    "AnalyticsError",
    "ComputeBackendError",
    "ConfigurationError",
    "InsufficientDataError",
]
