"""
Pytest tests for anomaly detection: the four detectors, deduplication, statistics.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from mulika_analytics.analysis_engine import anomaly as anomaly_module
from mulika_analytics.analysis_engine.anomaly import (
    Anomaly,
    AnomalyConfig,
    AnomalySeverity,
    AnomalyType,
    deduplicate_anomalies,
    detect_amount_anomalies,
    detect_anomalies,
    detect_frequency_spikes,
    detect_geographic_anomalies,
    detect_timing_anomalies,
    is_report_anomalous,
    severity_distribution,
)
from mulika_analytics.reports.models import Agency

from conftest import FIXED_NOW

NAIROBI = ZoneInfo("Africa/Nairobi")
CFG = AnomalyConfig()


def _spread(make_report, count, *, county="Nairobi", agency=Agency.POLICE, step=timedelta(days=2), **kw):
    """Reports for one county/agency spaced far enough apart to avoid frequency spikes."""
    return [
        make_report(county=county, agency=agency, submitted_at=FIXED_NOW - step * i, **kw)
        for i in range(count)
    ]


# --- Amount ---


def test_amount_outlier_only_extreme_flagged(make_report):
    """[100, 105, 98, 102, 100000]: only the 100000 report is flagged, severity high."""
    reports = [make_report(amount=a) for a in (100, 105, 98, 102, 100000)]
    anomalies = detect_amount_anomalies(reports, CFG)
    assert len(anomalies) == 1
    assert anomalies[0].report_id == reports[-1].id
    assert anomalies[0].type == AnomalyType.UNUSUAL_AMOUNT
    assert anomalies[0].severity == AnomalySeverity.HIGH
    assert anomalies[0].score == 100.0
    assert anomalies[0].details["z_score"] > 3


def test_amount_needs_three_positive_amounts(make_report):
    """Fewer than 3 reports with amount > 0 -> no findings."""
    reports = [
        make_report(amount=100),
        make_report(amount=1_000_000),
        make_report(amount=None),
        make_report(amount=0),
    ]
    assert detect_amount_anomalies(reports, CFG) == []


def test_amount_zero_deviation_not_anomalous(make_report):
    """Identical amounts have zero deviation; nothing is flagged and no NaN leaks out."""
    reports = [make_report(amount=500) for _ in range(6)]
    assert detect_amount_anomalies(reports, CFG) == []


def test_amount_differs_from_identical_others(make_report):
    """Five reports of 100 and one of 100000: the odd one out is flagged high."""
    reports = [make_report(amount=100) for _ in range(5)] + [make_report(amount=100000)]
    anomalies = detect_amount_anomalies(reports, CFG)
    assert [a.report_id for a in anomalies] == [reports[-1].id]
    assert anomalies[0].severity == AnomalySeverity.HIGH
    assert anomalies[0].score == 100.0
    assert anomalies[0].details["std_dev"] == 0.0
    assert anomalies[0].to_dict()["details"]["z_score"] is None


def test_amount_two_clusters_of_equal_values_not_flagged(make_report):
    """Batch spread is non-zero and no single amount stands out."""
    reports = [make_report(amount=a) for a in (100, 100, 100, 200, 200, 200)]
    assert detect_amount_anomalies(reports, CFG) == []


# --- Frequency ---


def test_frequency_spike_within_one_hour(make_report):
    """Five reports, same county+agency, within one hour -> all five flagged."""
    start = datetime(2025, 5, 1, 10, 0)
    reports = [make_report(submitted_at=start + timedelta(minutes=10 * i)) for i in range(5)]
    anomalies = detect_frequency_spikes(reports, CFG)
    assert sorted(a.report_id for a in anomalies) == sorted(r.id for r in reports)
    assert all(a.type == AnomalyType.FREQUENCY_SPIKE for a in anomalies)
    assert all(a.severity == AnomalySeverity.LOW for a in anomalies)
    assert all(a.score == 50.0 for a in anomalies)
    assert anomalies[0].details["group_key"] == "Nairobi:police"


def test_frequency_same_reports_over_thirty_days(make_report):
    """The same five reports spread across 30 days -> none flagged."""
    start = datetime(2025, 4, 1, 10, 0)
    reports = [make_report(submitted_at=start + timedelta(days=7 * i)) for i in range(5)]
    assert detect_frequency_spikes(reports, CFG) == []


def test_frequency_severity_scales_with_count(make_report):
    """Ten reports in one window -> high severity, score capped at 100."""
    start = datetime(2025, 5, 1, 10, 0)
    reports = [make_report(submitted_at=start + timedelta(minutes=5 * i)) for i in range(10)]
    anomalies = detect_frequency_spikes(reports, CFG)
    assert len(anomalies) == 10
    assert {a.severity for a in anomalies} == {AnomalySeverity.HIGH}
    assert {a.score for a in anomalies} == {100.0}


def test_frequency_groups_by_county_and_agency(make_report):
    """Five reports split across agencies do not form a spike."""
    start = datetime(2025, 5, 1, 10, 0)
    reports = [
        make_report(submitted_at=start, agency=Agency.POLICE),
        make_report(submitted_at=start, agency=Agency.POLICE),
        make_report(submitted_at=start, agency=Agency.POLICE),
        make_report(submitted_at=start, agency=Agency.JUDICIARY),
        make_report(submitted_at=start, agency=Agency.JUDICIARY),
    ]
    assert detect_frequency_spikes(reports, CFG) == []


def test_frequency_scan_resumes_after_window(make_report):
    """After a flagged window the scan continues past it; a later burst is found separately."""
    first = datetime(2025, 5, 1, 10, 0)
    second = first + timedelta(days=3)
    reports = [make_report(submitted_at=first + timedelta(minutes=i)) for i in range(5)]
    reports += [make_report(submitted_at=second + timedelta(minutes=i)) for i in range(6)]
    anomalies = detect_frequency_spikes(reports, CFG)
    assert len(anomalies) == 11
    assert sorted({a.details["count"] for a in anomalies}) == [5, 6]


# --- Geographic ---


def test_geographic_rare_county_flagged(make_report):
    """1 of 61 police reports in Lamu (1.6%, 1 report) -> flagged low."""
    reports = _spread(make_report, 60)
    rare = make_report(county="Lamu", agency=Agency.POLICE)
    anomalies = detect_geographic_anomalies(reports + [rare], CFG)
    assert len(anomalies) == 1
    assert anomalies[0].report_id == rare.id
    assert anomalies[0].severity == AnomalySeverity.LOW
    percentage = 1 / 61 * 100
    assert anomalies[0].score == pytest.approx(100 - percentage * 10)


def test_geographic_requires_both_conditions(make_report):
    """3 reports in a county is above the absolute cap even when under 2%."""
    reports = _spread(make_report, 200)
    reports += [make_report(county="Lamu") for _ in range(3)]
    assert detect_geographic_anomalies(reports, CFG) == []


def test_geographic_small_agency_skipped(make_report):
    """Agencies with fewer than 10 reports are not analyzed."""
    reports = _spread(make_report, 8) + [make_report(county="Lamu")]
    assert detect_geographic_anomalies(reports, CFG) == []


# --- Timing ---


def test_timing_unusual_hour_naive(make_report):
    """Naive 03:00 submission is read as local time -> flagged, score 30."""
    report = make_report(submitted_at=datetime(2025, 5, 1, 3, 0))
    anomalies = detect_timing_anomalies([report], CFG, local_tz=NAIROBI)
    assert len(anomalies) == 1
    assert anomalies[0].score == 30.0
    assert anomalies[0].severity == AnomalySeverity.LOW
    assert anomalies[0].details["hour"] == 3


def test_timing_unusual_hour_converted_to_local(make_report):
    """00:30 UTC is 03:30 in Nairobi -> flagged; 05:00 local is not."""
    flagged = make_report(submitted_at=datetime(2025, 5, 1, 0, 30, tzinfo=timezone.utc))
    fine = make_report(submitted_at=datetime(2025, 5, 1, 2, 0, tzinfo=timezone.utc))
    anomalies = detect_timing_anomalies([flagged, fine], CFG, local_tz=NAIROBI)
    assert [a.report_id for a in anomalies] == [flagged.id]


def test_timing_stale_incident(make_report):
    """3 years old -> score 45 low; 6 years old -> score capped at 70, medium."""
    submitted = datetime(2025, 5, 1, 12, 0)
    three = make_report(submitted_at=submitted, incident_date=submitted - timedelta(days=3 * 365))
    six = make_report(submitted_at=submitted, incident_date=submitted - timedelta(days=6 * 365))
    recent = make_report(submitted_at=submitted, incident_date=submitted - timedelta(days=365))
    anomalies = {a.report_id: a for a in detect_timing_anomalies([three, six, recent], CFG, local_tz=NAIROBI)}
    assert set(anomalies) == {three.id, six.id}
    assert anomalies[three.id].score == pytest.approx(45.0)
    assert anomalies[three.id].severity == AnomalySeverity.LOW
    assert anomalies[six.id].score == 70.0
    assert anomalies[six.id].severity == AnomalySeverity.MEDIUM


# --- Aggregation ---


def test_deduplicate_keeps_highest_score():
    """Amount (40) and timing (70) for the same report -> one anomaly with score 70."""
    amount = Anomaly("r1", AnomalyType.UNUSUAL_AMOUNT, AnomalySeverity.LOW, "amount", 40.0)
    timing = Anomaly("r1", AnomalyType.TIMING_ANOMALY, AnomalySeverity.MEDIUM, "timing", 70.0)
    other = Anomaly("r2", AnomalyType.TIMING_ANOMALY, AnomalySeverity.LOW, "timing", 30.0)
    result = deduplicate_anomalies([amount, other, timing])
    assert [a.report_id for a in result] == ["r1", "r2"]
    assert result[0].score == 70.0
    assert result[0].type == AnomalyType.TIMING_ANOMALY


def test_detect_anomalies_merges_and_partitions(make_report):
    """One report flagged by two detectors appears once; normal ids are the complement."""
    submitted = datetime(2025, 5, 1, 12, 0)
    reports = [
        make_report(amount=a, submitted_at=submitted - timedelta(days=2 * i))
        for i, a in enumerate((100, 105, 98, 102))
    ]
    outlier = make_report(
        amount=100000,
        submitted_at=submitted,
        incident_date=submitted - timedelta(days=6 * 365),
    )
    batch = reports + [outlier]
    result = detect_anomalies(batch, local_tz=NAIROBI)

    assert [a.report_id for a in result.anomalies] == [outlier.id]
    assert result.anomalies[0].score == 100.0
    assert set(result.normal_report_ids) == {r.id for r in reports}
    stats = result.statistics
    assert stats.total_reports == 5
    assert stats.anomaly_count == 1
    assert stats.anomaly_rate == pytest.approx(20.0)
    assert stats.avg_anomaly_score == pytest.approx(100.0)
    assert stats.type_distribution[AnomalyType.UNUSUAL_AMOUNT] == 1
    assert stats.type_distribution[AnomalyType.GEOGRAPHIC_OUTLIER] == 0


def test_detect_anomalies_sorted_by_score(make_report):
    """Final anomalies are ordered by descending score."""
    start = datetime(2025, 5, 1, 10, 0)
    spike = [make_report(county="Kisumu", submitted_at=start + timedelta(minutes=i)) for i in range(5)]
    night = make_report(county="Mombasa", submitted_at=datetime(2025, 5, 2, 3, 0))
    result = detect_anomalies(spike + [night], local_tz=NAIROBI)
    scores = [a.score for a in result.anomalies]
    assert scores == sorted(scores, reverse=True)
    assert scores[0] == 50.0 and scores[-1] == 30.0


def test_detect_anomalies_empty_batch():
    result = detect_anomalies([])
    assert result.anomalies == ()
    assert result.normal_report_ids == ()
    assert result.statistics.total_reports == 0
    assert result.statistics.anomaly_rate == 0.0
    assert result.statistics.avg_anomaly_score == 0.0


def test_failing_detector_does_not_abort_others(make_report, monkeypatch):
    """An unexpected error in one detector is logged; the rest still run."""

    def boom(reports, config):
        raise RuntimeError("detector exploded")

    monkeypatch.setattr(anomaly_module, "detect_amount_anomalies", boom)
    night = make_report(submitted_at=datetime(2025, 5, 2, 3, 0))
    result = detect_anomalies([night], local_tz=NAIROBI)
    assert [a.type for a in result.anomalies] == [AnomalyType.TIMING_ANOMALY]


def test_is_report_anomalous(make_report):
    """Single-report check returns the report's anomaly or None."""
    batch = _spread(make_report, 4)
    night = make_report(county="Nakuru", submitted_at=datetime(2025, 5, 2, 3, 0))
    normal = make_report(county="Nakuru", submitted_at=datetime(2025, 5, 20, 12, 0))

    found = is_report_anomalous(night, batch, local_tz=NAIROBI)
    assert found is not None
    assert found.report_id == night.id
    assert found.type == AnomalyType.TIMING_ANOMALY
    assert is_report_anomalous(normal, batch, local_tz=NAIROBI) is None


def test_severity_distribution():
    anomalies = [
        Anomaly("a", AnomalyType.TIMING_ANOMALY, AnomalySeverity.LOW, "x", 30.0),
        Anomaly("b", AnomalyType.TIMING_ANOMALY, AnomalySeverity.LOW, "x", 30.0),
        Anomaly("c", AnomalyType.UNUSUAL_AMOUNT, AnomalySeverity.HIGH, "x", 90.0),
    ]
    assert severity_distribution(anomalies) == {
        AnomalySeverity.LOW: 2,
        AnomalySeverity.MEDIUM: 0,
        AnomalySeverity.HIGH: 1,
    }


def test_result_to_dict_is_plain(make_report):
    report = make_report(submitted_at=datetime(2025, 5, 2, 3, 0))
    out = detect_anomalies([report], local_tz=NAIROBI).to_dict()
    assert out["anomalies"][0]["type"] == "timing_anomaly"
    assert isinstance(out["anomalies"][0]["details"]["submitted_at"], str)
    assert out["statistics"]["type_distribution"]["timing_anomaly"] == 1
