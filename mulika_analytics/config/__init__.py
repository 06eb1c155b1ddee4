"""
Configuration management for the analytics engine.

Loads and validates settings from environment variables and an optional
.env file. Exposes a single source of truth for engine defaults.
"""

from mulika_analytics.config.settings import (  # noqa: F401
    AnalyticsSettings,
    get_settings,
    reset_settings_cache,
)

__all__ = ["AnalyticsSettings", "get_settings", "reset_settings_cache"]
