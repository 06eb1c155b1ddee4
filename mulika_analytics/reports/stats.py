"""
Batch-level report statistics and filters for dashboards.

Counts by agency, county and status plus the total estimated amount,
computed with pandas group counts over a flat frame of the batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

import pandas as pd

from mulika_analytics.reports.models import Agency, Report, ReportStatus


@dataclass(frozen=True)
class ReportStats:
    total: int
    by_agency: dict[str, int] = field(default_factory=dict)
    by_county: dict[str, int] = field(default_factory=dict)
    by_status: dict[str, int] = field(default_factory=dict)
    total_amount: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "by_agency": dict(self.by_agency),
            "by_county": dict(self.by_county),
            "by_status": dict(self.by_status),
            "total_amount": self.total_amount,
        }


def reports_to_frame(reports: Iterable[Report]) -> pd.DataFrame:
    """Flatten reports into one row per report (enum columns as plain strings)."""
    rows = [
        {
            "id": r.id,
            "county": r.county,
            "agency": r.agency.value,
            "status": r.status.value,
            "estimated_amount": r.estimated_amount,
        }
        for r in reports
    ]
    return pd.DataFrame(
        rows, columns=["id", "county", "agency", "status", "estimated_amount"]
    )


def _counts(series: pd.Series) -> dict[str, int]:
    return {str(k): int(v) for k, v in series.value_counts(sort=False).items()}


def compute_report_stats(reports: list[Report]) -> ReportStats:
    """Totals and per-agency/county/status counts for a batch."""
    if not reports:
        return ReportStats(total=0)
    df = reports_to_frame(reports)
    total_amount = pd.to_numeric(df["estimated_amount"], errors="coerce").fillna(0.0).sum()
    return ReportStats(
        total=len(df),
        by_agency=_counts(df["agency"]),
        by_county=_counts(df["county"]),
        by_status=_counts(df["status"]),
        total_amount=float(total_amount),
    )


def filter_reports(
    reports: list[Report],
    *,
    county: str | None = None,
    agency: Agency | str | None = None,
    status: ReportStatus | str | None = None,
) -> list[Report]:
    """Return reports matching every given filter; order is preserved."""
    agency_value = Agency(agency) if agency is not None else None
    status_value = ReportStatus(status) if status is not None else None
    return [
        r
        for r in reports
        if (county is None or r.county == county)
        and (agency_value is None or r.agency == agency_value)
        and (status_value is None or r.status == status_value)
    ]
