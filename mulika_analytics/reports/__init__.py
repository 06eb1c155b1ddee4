"""
Report input model, closed enumerations, and batch statistics.
"""

from mulika_analytics.reports.models import (
    AGENCY_COUNT,
    CATEGORY_COUNT,
    COUNTY_COUNT,
    Agency,
    Category,
    Report,
    ReportStatus,
)
from mulika_analytics.reports.stats import (
    ReportStats,
    compute_report_stats,
    filter_reports,
)

__all__ = [
    "AGENCY_COUNT",
    "CATEGORY_COUNT",
    "COUNTY_COUNT",
    "Agency",
    "Category",
    "Report",
    "ReportStatus",
    "ReportStats",
    "compute_report_stats",
    "filter_reports",
]
