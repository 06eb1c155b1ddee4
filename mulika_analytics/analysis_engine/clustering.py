"""
Behavioral clustering of corruption reports (K-means).

Reports are vectorized, partitioned into k groups by iterative centroid
refinement, and each non-empty group is summarized: dominant agency, average
amount, most common counties and a recency tag. Initialization is random but
driven by an injected numpy Generator so tests can fix the seed.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import numpy as np

from mulika_analytics.analysis_engine.backend import NumpyBackend
from mulika_analytics.analysis_engine.features import (
    FEATURE_COUNT,
    to_epoch_ms,
    vectorize_reports,
)
from mulika_analytics.config import get_settings
from mulika_analytics.core.exceptions import AnalyticsError, InsufficientDataError
from mulika_analytics.mulika_logging import bind_batch, get_logger
from mulika_analytics.reports.models import Agency, Report

logger = get_logger(__name__)

RECENT_WINDOW = timedelta(days=6 * 30)
RECENT_SHARE_THRESHOLD = 70.0
HISTORICAL_SHARE_THRESHOLD = 30.0
COMMON_COUNTY_LIMIT = 3
SIMILAR_REPORTS_MAX_K = 10


class TimePattern(str, Enum):
    RECENT = "recent"
    HISTORICAL = "historical"
    MIXED = "mixed"


@dataclass(frozen=True)
class ClusterCharacteristics:
    dominant_agency: Agency
    average_amount: float
    report_count: int
    common_counties: tuple[str, ...]
    time_pattern: TimePattern

    def to_dict(self) -> dict[str, Any]:
        return {
            "dominant_agency": self.dominant_agency.value,
            "average_amount": self.average_amount,
            "report_count": self.report_count,
            "common_counties": list(self.common_counties),
            "time_pattern": self.time_pattern.value,
        }


@dataclass(frozen=True)
class Cluster:
    """
    One non-empty group of reports.

    id: centroid index in the K-means run (ids may skip when a group ended empty).
    centroid: mean feature vector of the members.
    report_ids: member report ids in input order.
    """

    id: int
    centroid: tuple[float, ...]
    report_ids: tuple[str, ...]
    characteristics: ClusterCharacteristics

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "centroid": list(self.centroid),
            "report_ids": list(self.report_ids),
            "characteristics": self.characteristics.to_dict(),
        }


@dataclass
class KMeansResult:
    centroids: list[list[float]]
    assignments: list[int]
    iterations: int
    converged: bool = False
    empty_reseeds: int = field(default=0)


def kmeans(
    vectors: list[tuple[float, ...]],
    k: int,
    *,
    rng: np.random.Generator,
    max_iterations: int = 100,
    backend: NumpyBackend | None = None,
) -> KMeansResult:
    """
    Partition vectors into k groups by iterative centroid refinement.

    Initial centroids are k distinct rows drawn by rng. Each iteration assigns
    every row to its nearest centroid, stops if nothing changed, otherwise
    recomputes centroids in index order 0..k-1 (an empty cluster gets a fresh
    random vector from rng).

    Raises:
        InsufficientDataError: if there are fewer vectors than k.
        ComputeBackendError: if the numeric backend fails.
    """
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    if len(vectors) < k:
        raise InsufficientDataError(required=k, available=len(vectors))

    be = backend or NumpyBackend()
    with be.workspace() as ws:
        data = ws.put("data", be.matrix(vectors))
        n_points, n_features = data.shape
        initial = rng.choice(n_points, size=k, replace=False)
        centroids = ws.put("centroids", be.gather(data, initial))

        previous: np.ndarray | None = None
        iterations = 0
        converged = False
        reseeds = 0
        for _ in range(max_iterations):
            iterations += 1
            assignments = ws.put("assignments", be.assign(data, centroids))
            if previous is not None and np.array_equal(previous, assignments):
                converged = True
                break
            previous = assignments

            members = be.partition(assignments, k)
            new_centroids = []
            for cluster_index in range(k):
                if members[cluster_index].size > 0:
                    new_centroids.append(be.mean(data, members[cluster_index]))
                else:
                    reseeds += 1
                    new_centroids.append(be.random_vector(rng, n_features))
            centroids = ws.put("centroids", be.stack(new_centroids))

        result = KMeansResult(
            centroids=be.to_list(centroids),
            assignments=[int(a) for a in be.to_list(assignments)],
            iterations=iterations,
            converged=converged,
            empty_reseeds=reseeds,
        )

    logger.debug(
        "kmeans_finished",
        k=k,
        points=len(vectors),
        iterations=result.iterations,
        converged=result.converged,
        empty_reseeds=result.empty_reseeds,
    )
    return result


def characterize_cluster(
    reports: list[Report],
    *,
    now: datetime | None = None,
) -> ClusterCharacteristics:
    """
    Summarize one non-empty cluster.

    Dominant agency is the mode (ties go to the agency seen first). Average
    amount covers only members with amount > 0. Time pattern is recent when
    more than 70% of incidents fall in the last six months, historical under
    30%, otherwise mixed.
    """
    if not reports:
        raise ValueError("cannot characterize an empty cluster")
    now = now or datetime.now(timezone.utc)

    agency_counts = Counter(r.agency for r in reports)
    dominant_agency = agency_counts.most_common(1)[0][0]

    amounts = [r.amount for r in reports if r.amount > 0]
    average_amount = sum(amounts) / len(amounts) if amounts else 0.0

    county_counts = Counter(r.county for r in reports)
    common_counties = tuple(c for c, _ in county_counts.most_common(COMMON_COUNTY_LIMIT))

    cutoff_ms = to_epoch_ms(now - RECENT_WINDOW)
    recent = sum(1 for r in reports if to_epoch_ms(r.incident_date) > cutoff_ms)
    recent_pct = recent / len(reports) * 100
    if recent_pct > RECENT_SHARE_THRESHOLD:
        pattern = TimePattern.RECENT
    elif recent_pct < HISTORICAL_SHARE_THRESHOLD:
        pattern = TimePattern.HISTORICAL
    else:
        pattern = TimePattern.MIXED

    return ClusterCharacteristics(
        dominant_agency=dominant_agency,
        average_amount=average_amount,
        report_count=len(reports),
        common_counties=common_counties,
        time_pattern=pattern,
    )


def _resolve_rng(rng: np.random.Generator | None, seed: int | None) -> np.random.Generator:
    if rng is not None:
        return rng
    if seed is None:
        seed = get_settings().random_seed
    return np.random.default_rng(seed)


def cluster_reports(
    reports: list[Report],
    k: int | None = None,
    *,
    rng: np.random.Generator | None = None,
    seed: int | None = None,
    max_iterations: int | None = None,
    backend: NumpyBackend | None = None,
    now: datetime | None = None,
) -> list[Cluster]:
    """
    Cluster a batch of reports into at most k non-empty groups.

    Every input report lands in exactly one returned cluster; clusters that
    ended with no members are dropped.

    Args:
        reports: Read-only snapshot of reports.
        k: Number of clusters; defaults to settings.default_cluster_count (5).
        rng: Random source for centroid initialization; built from seed if None.
        seed: Seed used when rng is None; defaults to settings.random_seed.
        max_iterations: Iteration cap; defaults to settings.max_iterations (100).
        backend: Numeric backend; NumpyBackend if None.
        now: Reference time for the recency tag; current UTC if None.

    Raises:
        InsufficientDataError: if len(reports) < k.
        ComputeBackendError: if the numeric backend fails.
    """
    settings = get_settings()
    k = settings.default_cluster_count if k is None else k
    max_iterations = settings.max_iterations if max_iterations is None else max_iterations
    log = bind_batch(__name__, len(reports))

    if len(reports) < k:
        log.warning("clustering_insufficient_data", k=k)
        raise InsufficientDataError(
            required=k,
            available=len(reports),
            message=f"Not enough reports for {k} clusters. Need at least {k} reports.",
        )

    vectors = [v.as_tuple() for v in vectorize_reports(reports)]
    result = kmeans(
        vectors,
        k,
        rng=_resolve_rng(rng, seed),
        max_iterations=max_iterations,
        backend=backend,
    )

    members: dict[int, list[Report]] = {i: [] for i in range(k)}
    for report, cluster_index in zip(reports, result.assignments):
        members[cluster_index].append(report)

    clusters: list[Cluster] = []
    for cluster_index in range(k):
        cluster_members = members[cluster_index]
        if not cluster_members:
            continue
        clusters.append(
            Cluster(
                id=cluster_index,
                centroid=tuple(result.centroids[cluster_index]),
                report_ids=tuple(r.id for r in cluster_members),
                characteristics=characterize_cluster(cluster_members, now=now),
            )
        )

    log.info(
        "clustering_complete",
        k=k,
        clusters=len(clusters),
        iterations=result.iterations,
        converged=result.converged,
    )
    return clusters


def find_similar_reports(
    target: Report,
    pool: list[Report],
    limit: int = 5,
    *,
    rng: np.random.Generator | None = None,
    seed: int | None = None,
    backend: NumpyBackend | None = None,
) -> list[Report]:
    """
    Return up to limit reports that share the target's cluster.

    k is min(10, len(pool)) (1 for an empty pool). The target joins the
    clustered reports when it is not already in the pool, without raising k.
    Returns [] if clustering cannot run.
    """
    candidates = list(pool)
    if not any(r.id == target.id for r in candidates):
        candidates.append(target)

    try:
        clusters = cluster_reports(
            candidates,
            min(SIMILAR_REPORTS_MAX_K, len(pool)) if pool else 1,
            rng=rng,
            seed=seed,
            backend=backend,
        )
    except AnalyticsError as e:
        logger.warning("similar_reports_unavailable", report_id=target.id, reason=e.code)
        return []

    by_id = {r.id: r for r in candidates}
    for cluster in clusters:
        if target.id in cluster.report_ids:
            others = [by_id[rid] for rid in cluster.report_ids if rid != target.id]
            return others[:limit]
    return []
