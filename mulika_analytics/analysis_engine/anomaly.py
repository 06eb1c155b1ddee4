"""
Statistical anomaly detection over a batch of corruption reports.

Four independent detectors (unusual amount, frequency spike, geographic
outlier, timing anomaly) each return explainable anomalies: a type, a
severity, a human-readable reason, the numbers behind it, and a 0-100 score.
The aggregator keeps one anomaly per report (highest score wins) and
summarizes the batch. No ML; thresholds are fixed heuristics in AnomalyConfig.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from enum import Enum
from typing import Any, Callable

import numpy as np

from mulika_analytics.config import get_settings
from mulika_analytics.mulika_logging import bind_batch, get_logger
from mulika_analytics.reports.models import Report

logger = get_logger(__name__)

SECONDS_PER_YEAR = 365 * 24 * 60 * 60


class AnomalySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AnomalyType(str, Enum):
    UNUSUAL_AMOUNT = "unusual_amount"
    FREQUENCY_SPIKE = "frequency_spike"
    GEOGRAPHIC_OUTLIER = "geographic_outlier"
    TIMING_ANOMALY = "timing_anomaly"


@dataclass(frozen=True)
class Anomaly:
    """
    Single explainable anomaly for one report.

    Every anomaly carries the exact reason (threshold vs actual) so reviewers
    can interpret it.
    """

    report_id: str
    type: AnomalyType
    severity: AnomalySeverity
    reason: str
    """Human-readable explanation of why this was flagged."""
    score: float
    """0-100, higher = more anomalous."""
    details: dict[str, Any] = field(default_factory=dict)
    """Values and thresholds used; for auditing and explainability."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "report_id": self.report_id,
            "type": self.type.value,
            "severity": self.severity.value,
            "reason": self.reason,
            "score": self.score,
            "details": {
                k: v.isoformat() if isinstance(v, datetime) else v
                for k, v in self.details.items()
            },
        }


@dataclass(frozen=True)
class AnomalyStatistics:
    total_reports: int
    anomaly_count: int
    anomaly_rate: float
    """Percentage of reports flagged (0-100)."""
    avg_anomaly_score: float
    type_distribution: dict[AnomalyType, int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_reports": self.total_reports,
            "anomaly_count": self.anomaly_count,
            "anomaly_rate": self.anomaly_rate,
            "avg_anomaly_score": self.avg_anomaly_score,
            "type_distribution": {t.value: n for t, n in self.type_distribution.items()},
        }


@dataclass(frozen=True)
class AnomalyDetectionResult:
    """
    Result of anomaly detection for one batch.

    anomalies is sorted by score (descending) with at most one entry per
    report; normal_report_ids is the complement, in input order.
    """

    anomalies: tuple[Anomaly, ...]
    normal_report_ids: tuple[str, ...]
    statistics: AnomalyStatistics

    def to_dict(self) -> dict[str, Any]:
        return {
            "anomalies": [a.to_dict() for a in self.anomalies],
            "normal_report_ids": list(self.normal_report_ids),
            "statistics": self.statistics.to_dict(),
        }


@dataclass(frozen=True)
class AnomalyConfig:
    """
    Thresholds for the anomaly detectors.

    Defaults are the engine's fixed heuristics; amounts are in KES.
    """

    # Amount: z-score of an amount against the other positive amounts.
    amount_min_reports: int = 3
    amount_z_threshold: float = 2.0
    amount_z_medium: float = 2.5
    amount_z_high: float = 3.0
    amount_score_per_z: float = 20.0

    # Frequency: reports per (county, agency) inside a sliding window.
    frequency_min_group: int = 5
    frequency_window: timedelta = timedelta(hours=24)
    frequency_min_count: int = 5
    frequency_medium_count: int = 7
    frequency_high_count: int = 10
    frequency_score_per_report: float = 10.0

    # Geographic: rare county for an agency (both conditions must hold).
    geographic_min_agency_reports: int = 10
    geographic_max_percentage: float = 2.0
    geographic_max_count: int = 2
    geographic_min_score: float = 10.0

    # Timing: night-time submission hours [start, end) and stale incidents.
    unusual_hour_start: int = 2
    unusual_hour_end: int = 5
    unusual_hour_score: float = 30.0
    stale_incident_years: float = 2.0
    stale_incident_medium_years: float = 5.0
    stale_incident_score_per_year: float = 15.0
    stale_incident_max_score: float = 70.0


def _clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


def _finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def detect_amount_anomalies(reports: list[Report], config: AnomalyConfig) -> list[Anomaly]:
    """
    Flag amounts far from the rest of the batch.

    Each positive amount is scored against the mean and population standard
    deviation of the other positive amounts. Needs at least
    amount_min_reports reports with an amount. A batch whose amounts are all
    equal is not anomalous; an amount that differs from otherwise identical
    amounts is flagged high with the maximum score.
    """
    with_amounts = [r for r in reports if r.amount > 0]
    if len(with_amounts) < config.amount_min_reports:
        return []

    amounts = np.array([r.amount for r in with_amounts], dtype=np.float64)
    if amounts.min() == amounts.max():
        return []

    anomalies: list[Anomaly] = []
    for i, report in enumerate(with_amounts):
        amount = float(amounts[i])
        others = np.delete(amounts, i)
        mean = float(others.mean())
        std_dev = float(others.std())
        if not _finite(mean, std_dev):
            continue

        if others.min() == others.max():
            # The batch is not uniform, so this amount is the only one that differs
            anomalies.append(
                Anomaly(
                    report_id=report.id,
                    type=AnomalyType.UNUSUAL_AMOUNT,
                    severity=AnomalySeverity.HIGH,
                    reason=(
                        f"Amount (KES {amount:,.0f}) differs from every other report, "
                        f"which all report KES {mean:,.0f}"
                    ),
                    score=100.0,
                    details={
                        "amount": amount,
                        "mean": mean,
                        "std_dev": 0.0,
                        "z_score": None,
                        "threshold": config.amount_z_threshold,
                    },
                )
            )
            continue

        z_score = abs(amount - mean) / std_dev
        if not _finite(z_score) or z_score <= config.amount_z_threshold:
            continue

        if z_score > config.amount_z_high:
            severity = AnomalySeverity.HIGH
        elif z_score > config.amount_z_medium:
            severity = AnomalySeverity.MEDIUM
        else:
            severity = AnomalySeverity.LOW
        anomalies.append(
            Anomaly(
                report_id=report.id,
                type=AnomalyType.UNUSUAL_AMOUNT,
                severity=severity,
                reason=(
                    f"Amount (KES {amount:,.0f}) is {z_score:.1f} standard deviations "
                    f"from the mean of other reports"
                ),
                score=_clamp_score(z_score * config.amount_score_per_z),
                details={
                    "amount": amount,
                    "mean": mean,
                    "std_dev": std_dev,
                    "z_score": z_score,
                    "threshold": config.amount_z_threshold,
                },
            )
        )
    return anomalies


def detect_frequency_spikes(reports: list[Report], config: AnomalyConfig) -> list[Anomaly]:
    """
    Flag bursts of reports for the same county and agency.

    Within each (county, agency) group of at least frequency_min_group
    reports, sorted by submission time, a window opens at each report and
    spans frequency_window. A window holding frequency_min_count or more
    reports flags all of them, and the scan resumes after the window's last
    report, so an overlapping second burst starting mid-window is not scanned
    separately.
    """
    groups: dict[tuple[str, str], list[Report]] = defaultdict(list)
    for report in reports:
        groups[(report.county, report.agency.value)].append(report)

    anomalies: list[Anomaly] = []
    for (county, agency), group in groups.items():
        if len(group) < config.frequency_min_group:
            continue
        ordered = sorted(group, key=lambda r: r.submitted_at)
        group_key = f"{county}:{agency}"

        i = 0
        while i <= len(ordered) - config.frequency_min_count:
            window_end = ordered[i].submitted_at + config.frequency_window
            window = [ordered[i]]
            for later in ordered[i + 1:]:
                if later.submitted_at > window_end:
                    break
                window.append(later)

            count = len(window)
            if count < config.frequency_min_count:
                i += 1
                continue

            if count >= config.frequency_high_count:
                severity = AnomalySeverity.HIGH
            elif count >= config.frequency_medium_count:
                severity = AnomalySeverity.MEDIUM
            else:
                severity = AnomalySeverity.LOW
            hours = config.frequency_window.total_seconds() / 3600
            for report in window:
                anomalies.append(
                    Anomaly(
                        report_id=report.id,
                        type=AnomalyType.FREQUENCY_SPIKE,
                        severity=severity,
                        reason=(
                            f"Part of {count} reports submitted within {hours:g} hours "
                            f"for {group_key}"
                        ),
                        score=_clamp_score(count * config.frequency_score_per_report),
                        details={
                            "count": count,
                            "time_window": f"{hours:g}h",
                            "group_key": group_key,
                        },
                    )
                )
            i += count
    return anomalies


def detect_geographic_anomalies(reports: list[Report], config: AnomalyConfig) -> list[Anomaly]:
    """
    Flag counties that are rare for an agency.

    For agencies with at least geographic_min_agency_reports reports, a county
    is an outlier when it holds under geographic_max_percentage percent of the
    agency's reports and at most geographic_max_count reports in absolute terms.
    """
    agency_counties: dict[str, dict[str, list[Report]]] = defaultdict(lambda: defaultdict(list))
    for report in reports:
        agency_counties[report.agency.value][report.county].append(report)

    anomalies: list[Anomaly] = []
    for agency, counties in agency_counties.items():
        total = sum(len(members) for members in counties.values())
        if total < config.geographic_min_agency_reports:
            continue
        for county, members in counties.items():
            count = len(members)
            percentage = count / total * 100
            if not (
                percentage < config.geographic_max_percentage
                and count <= config.geographic_max_count
            ):
                continue
            score = _clamp_score(max(config.geographic_min_score, 100 - percentage * 10))
            for report in members:
                anomalies.append(
                    Anomaly(
                        report_id=report.id,
                        type=AnomalyType.GEOGRAPHIC_OUTLIER,
                        severity=AnomalySeverity.LOW,
                        reason=(
                            f"Unusual county for {agency} "
                            f"(only {percentage:.1f}% of reports)"
                        ),
                        score=score,
                        details={
                            "county": county,
                            "agency": agency,
                            "percentage": percentage,
                            "count": count,
                            "total_reports": total,
                        },
                    )
                )
    return anomalies


def _local_hour(value: datetime, local_tz: tzinfo) -> int:
    """Hour of day in local time; naive datetimes are already local."""
    if value.tzinfo is None:
        return value.hour
    return value.astimezone(local_tz).hour


def _years_between(start: datetime, end: datetime) -> float:
    if (start.tzinfo is None) != (end.tzinfo is None):
        start = start.replace(tzinfo=None)
        end = end.replace(tzinfo=None)
    return (end - start).total_seconds() / SECONDS_PER_YEAR


def detect_timing_anomalies(
    reports: list[Report],
    config: AnomalyConfig,
    local_tz: tzinfo | None = None,
) -> list[Anomaly]:
    """
    Flag submissions at unusual hours and incidents reported long after the fact.

    A report may be flagged by both rules; the aggregator keeps the higher score.
    """
    tz = local_tz or get_settings().tzinfo
    anomalies: list[Anomaly] = []

    for report in reports:
        hour = _local_hour(report.submitted_at, tz)
        if config.unusual_hour_start <= hour < config.unusual_hour_end:
            anomalies.append(
                Anomaly(
                    report_id=report.id,
                    type=AnomalyType.TIMING_ANOMALY,
                    severity=AnomalySeverity.LOW,
                    reason=f"Report submitted at unusual hour ({hour}:00)",
                    score=_clamp_score(config.unusual_hour_score),
                    details={"hour": hour, "submitted_at": report.submitted_at},
                )
            )

    for report in reports:
        years = _years_between(report.incident_date, report.submitted_at)
        if not _finite(years) or years <= config.stale_incident_years:
            continue
        anomalies.append(
            Anomaly(
                report_id=report.id,
                type=AnomalyType.TIMING_ANOMALY,
                severity=(
                    AnomalySeverity.MEDIUM
                    if years > config.stale_incident_medium_years
                    else AnomalySeverity.LOW
                ),
                reason=f"Incident occurred {years:.1f} years before it was reported",
                score=_clamp_score(
                    min(
                        config.stale_incident_max_score,
                        years * config.stale_incident_score_per_year,
                    )
                ),
                details={
                    "incident_date": report.incident_date,
                    "submitted_at": report.submitted_at,
                    "years_elapsed": years,
                },
            )
        )
    return anomalies


def deduplicate_anomalies(anomalies: list[Anomaly]) -> list[Anomaly]:
    """Keep the highest-scoring anomaly per report (first wins on ties); sort by score descending."""
    best: dict[str, Anomaly] = {}
    for anomaly in anomalies:
        existing = best.get(anomaly.report_id)
        if existing is None or anomaly.score > existing.score:
            best[anomaly.report_id] = anomaly
    return sorted(best.values(), key=lambda a: a.score, reverse=True)


def compute_statistics(total_reports: int, anomalies: list[Anomaly]) -> AnomalyStatistics:
    anomaly_count = len(anomalies)
    distribution = {t: 0 for t in AnomalyType}
    for anomaly in anomalies:
        distribution[anomaly.type] += 1
    return AnomalyStatistics(
        total_reports=total_reports,
        anomaly_count=anomaly_count,
        anomaly_rate=anomaly_count / total_reports * 100 if total_reports else 0.0,
        avg_anomaly_score=(
            sum(a.score for a in anomalies) / anomaly_count if anomaly_count else 0.0
        ),
        type_distribution=distribution,
    )


Detector = Callable[[list[Report], AnomalyConfig], list[Anomaly]]


def detect_anomalies(
    reports: list[Report],
    config: AnomalyConfig | None = None,
    *,
    local_tz: tzinfo | None = None,
) -> AnomalyDetectionResult:
    """
    Run all anomaly detectors over a batch and merge their findings.

    Each detector is independent: one that lacks data returns nothing, and
    one that fails unexpectedly is logged and skipped so the others still
    report.

    Args:
        reports: Read-only snapshot of reports.
        config: Detector thresholds; uses defaults if None.
        local_tz: Zone for submission-hour checks; settings.local_timezone if None.

    Returns:
        AnomalyDetectionResult with deduplicated anomalies, normal report ids
        and batch statistics.
    """
    cfg = config or AnomalyConfig()
    log = bind_batch(__name__, len(reports))

    detectors: list[tuple[str, Detector]] = [
        ("unusual_amount", detect_amount_anomalies),
        ("frequency_spike", detect_frequency_spikes),
        ("geographic_outlier", detect_geographic_anomalies),
        (
            "timing_anomaly",
            lambda batch, c: detect_timing_anomalies(batch, c, local_tz=local_tz),
        ),
    ]

    found: list[Anomaly] = []
    if reports:
        for name, detector in detectors:
            try:
                found.extend(detector(reports, cfg))
            except Exception as e:
                log.warning("anomaly_detector_failed", detector=name, error=str(e))

    unique = deduplicate_anomalies(found)
    flagged = {a.report_id for a in unique}
    result = AnomalyDetectionResult(
        anomalies=tuple(unique),
        normal_report_ids=tuple(r.id for r in reports if r.id not in flagged),
        statistics=compute_statistics(len(reports), unique),
    )
    log.info(
        "anomaly_detection_complete",
        raw_findings=len(found),
        anomaly_count=result.statistics.anomaly_count,
        anomaly_rate=round(result.statistics.anomaly_rate, 2),
    )
    return result


def is_report_anomalous(
    report: Report,
    reports: list[Report],
    config: AnomalyConfig | None = None,
    *,
    local_tz: tzinfo | None = None,
) -> Anomaly | None:
    """
    Check one report against a batch for context.

    The report is added to the batch unless a report with the same id is
    already present. Returns its anomaly, or None if it looks normal.
    """
    batch = list(reports)
    if not any(r.id == report.id for r in batch):
        batch.append(report)
    result = detect_anomalies(batch, config, local_tz=local_tz)
    for anomaly in result.anomalies:
        if anomaly.report_id == report.id:
            return anomaly
    return None


def severity_distribution(anomalies: list[Anomaly] | tuple[Anomaly, ...]) -> dict[AnomalySeverity, int]:
    """Count anomalies per severity (every severity present, possibly 0)."""
    distribution = {s: 0 for s in AnomalySeverity}
    for anomaly in anomalies:
        distribution[anomaly.severity] += 1
    return distribution
