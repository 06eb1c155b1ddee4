"""
Application settings for the analytics engine.

Values come from environment variables (and .env) with defaults matching the
engine's fixed heuristics. Explicit function arguments always take
precedence; settings only fill in what the caller leaves out.
"""

from __future__ import annotations

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mulika_analytics.config.env import get_env_str
from mulika_analytics.core.exceptions import ConfigurationError

_ENV_FIELDS = {
    "default_cluster_count": "MULIKA_CLUSTER_COUNT",
    "max_iterations": "MULIKA_MAX_ITERATIONS",
    "random_seed": "MULIKA_RANDOM_SEED",
    "duplicate_threshold": "MULIKA_DUPLICATE_THRESHOLD",
    "local_timezone": "MULIKA_LOCAL_TIMEZONE",
}


class AnalyticsSettings(BaseModel):
    """Typed engine settings."""

    model_config = ConfigDict(frozen=True)

    default_cluster_count: int = Field(default=5, ge=1)
    max_iterations: int = Field(default=100, ge=1)
    random_seed: int | None = None
    duplicate_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    local_timezone: str = "Africa/Nairobi"

    @field_validator("local_timezone")
    @classmethod
    def check_known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {value}") from e
        return value

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.local_timezone)


def load_settings() -> AnalyticsSettings:
    """
    Build settings from the environment.

    Raises:
        ConfigurationError: if any MULIKA_* value fails validation.
    """
    raw = {}
    for field_name, env_name in _ENV_FIELDS.items():
        value = get_env_str(env_name)
        if value is not None:
            raw[field_name] = value
    try:
        return AnalyticsSettings(**raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid analytics settings: {e}") from e


@lru_cache(maxsize=1)
def get_settings() -> AnalyticsSettings:
    """Return the current application settings (cached after first load)."""
    return load_settings()


def reset_settings_cache() -> None:
    """Drop cached settings so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
