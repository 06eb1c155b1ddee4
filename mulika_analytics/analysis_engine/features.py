"""
Report feature extraction for clustering.

Encodes one report into a fixed-length vector of five normalized floats:
county ordinal, agency ordinal, log-scaled amount, incident timestamp and
category count. No scoring logic; output feeds the K-means clusterer.

The county ordinal map is built from the current batch only, so ordinals are
consistent within a call but not stable across calls.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from mulika_analytics.reports.models import (
    AGENCY_COUNT,
    CATEGORY_COUNT,
    COUNTY_COUNT,
    Report,
)

FEATURE_NAMES = (
    "county",
    "agency",
    "amount",
    "incident_time",
    "category_count",
)
FEATURE_COUNT = len(FEATURE_NAMES)

# ln(amount + 1) / AMOUNT_LOG_SCALE keeps realistic KES amounts below ~1
AMOUNT_LOG_SCALE = 20.0
# Epoch milliseconds / TIMESTAMP_SCALE
TIMESTAMP_SCALE = 1e12


def to_epoch_ms(value: datetime) -> float:
    """Epoch milliseconds; naive datetimes are read as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp() * 1000.0


@dataclass(frozen=True)
class ReportFeatureVector:
    """Normalized features for one report, in FEATURE_NAMES order."""

    report_id: str
    county: float
    agency: float
    amount: float
    incident_time: float
    category_count: float

    def as_tuple(self) -> tuple[float, float, float, float, float]:
        return (
            self.county,
            self.agency,
            self.amount,
            self.incident_time,
            self.category_count,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"report_id": self.report_id}
        out.update(zip(FEATURE_NAMES, self.as_tuple()))
        return out


def build_county_index(reports: list[Report]) -> dict[str, int]:
    """Map each distinct county in the batch to a 0-based index, first-seen order."""
    index: dict[str, int] = {}
    for report in reports:
        if report.county not in index:
            index[report.county] = len(index)
    return index


def vectorize_report(report: Report, county_index: dict[str, int]) -> ReportFeatureVector:
    """
    Convert one report into its normalized feature vector.

    Missing amounts count as 0; a county absent from the map gets ordinal 0.
    """
    return ReportFeatureVector(
        report_id=report.id,
        county=county_index.get(report.county, 0) / COUNTY_COUNT,
        agency=report.agency.ordinal / AGENCY_COUNT,
        amount=math.log(report.amount + 1) / AMOUNT_LOG_SCALE,
        incident_time=to_epoch_ms(report.incident_date) / TIMESTAMP_SCALE,
        category_count=len(report.categories) / CATEGORY_COUNT,
    )


def vectorize_reports(reports: list[Report]) -> list[ReportFeatureVector]:
    """Vectorize a batch with a county map built from that same batch."""
    county_index = build_county_index(reports)
    return [vectorize_report(r, county_index) for r in reports]
