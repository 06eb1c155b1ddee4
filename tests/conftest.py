"""
Pytest fixtures for analytics engine tests: report factory, fixed clock, isolated settings.
"""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta

import pytest

from mulika_analytics.config import reset_settings_cache
from mulika_analytics.reports.models import Agency, Category, Report

FIXED_NOW = datetime(2025, 6, 1, 12, 0, 0)

_ENV_VARS = (
    "MULIKA_CLUSTER_COUNT",
    "MULIKA_MAX_ITERATIONS",
    "MULIKA_RANDOM_SEED",
    "MULIKA_DUPLICATE_THRESHOLD",
    "MULIKA_LOCAL_TIMEZONE",
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Clear MULIKA_* env vars and the settings cache around every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def make_report():
    """
    Build a Report with sensible defaults.

    Submitted at noon (naive, local) on FIXED_NOW's day unless given;
    incident_date defaults to three days before submission.
    """
    counter = itertools.count(1)

    def _make(
        *,
        id: str | None = None,
        county: str = "Nairobi",
        agency: Agency | str = Agency.POLICE,
        categories: tuple = (Category.BRIBERY,),
        amount: float | None = None,
        description: str = "",
        submitted_at: datetime | None = None,
        incident_date: datetime | None = None,
        **extra,
    ) -> Report:
        submitted = submitted_at or FIXED_NOW
        return Report(
            id=id or f"r{next(counter)}",
            county=county,
            agency=agency,
            categories=categories,
            incident_date=incident_date or (submitted - timedelta(days=3)),
            estimated_amount=amount,
            description=description,
            submitted_at=submitted,
            **extra,
        )

    return _make
