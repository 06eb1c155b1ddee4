"""
Application-level exceptions.

Every engine error derives from AnalyticsError and carries a stable code so
callers (UI, store, API layers) can branch on it without parsing messages.
Errors are never retried internally; the caller decides whether to retry
with adjusted parameters (e.g. a smaller k).
"""

from __future__ import annotations


class AnalyticsError(Exception):
    """Base class for all analytics engine errors."""

    code = "analytics_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class InsufficientDataError(AnalyticsError):
    """Raised when a batch is too small for the requested operation (e.g. k > reports)."""

    code = "insufficient_data"

    def __init__(self, required: int, available: int, message: str | None = None) -> None:
        self.required = required
        self.available = available
        super().__init__(
            message
            or f"Not enough reports: need at least {required}, got {available}"
        )


class ComputeBackendError(AnalyticsError):
    """Raised when the numeric backend fails (floating-point, shape or memory errors)."""

    code = "compute_backend_error"


class ConfigurationError(AnalyticsError):
    """Raised when settings loaded from the environment are invalid."""

    code = "configuration_error"
