"""
Analysis engine package: report clustering and anomaly detection.

Consumes a read-only batch of reports and produces behavioral clusters and
explainable anomaly flags. Nothing here persists or mutates reports.
"""

from mulika_analytics.analysis_engine.features import (
    FEATURE_NAMES,
    ReportFeatureVector,
    build_county_index,
    vectorize_report,
    vectorize_reports,
)
from mulika_analytics.analysis_engine.backend import NumpyBackend, Workspace
from mulika_analytics.analysis_engine.clustering import (
    Cluster,
    ClusterCharacteristics,
    KMeansResult,
    TimePattern,
    characterize_cluster,
    cluster_reports,
    find_similar_reports,
    kmeans,
)
from mulika_analytics.analysis_engine.anomaly import (
    Anomaly,
    AnomalyConfig,
    AnomalyDetectionResult,
    AnomalySeverity,
    AnomalyStatistics,
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

__all__ = [
    "FEATURE_NAMES",
    "ReportFeatureVector",
    "build_county_index",
    "vectorize_report",
    "vectorize_reports",
    "NumpyBackend",
    "Workspace",
    "Cluster",
    "ClusterCharacteristics",
    "KMeansResult",
    "TimePattern",
    "characterize_cluster",
    "cluster_reports",
    "find_similar_reports",
    "kmeans",
    "Anomaly",
    "AnomalyConfig",
    "AnomalyDetectionResult",
    "AnomalySeverity",
    "AnomalyStatistics",
    "AnomalyType",
    "deduplicate_anomalies",
    "detect_amount_anomalies",
    "detect_anomalies",
    "detect_frequency_spikes",
    "detect_geographic_anomalies",
    "detect_timing_anomalies",
    "is_report_anomalous",
    "severity_distribution",
]
