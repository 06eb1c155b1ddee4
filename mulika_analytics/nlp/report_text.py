"""
Text-based operations over report batches: duplicate grouping and summaries.
"""

from __future__ import annotations

from mulika_analytics.config import get_settings
from mulika_analytics.mulika_logging import bind_batch
from mulika_analytics.nlp.text_analyzer import DEFAULT_ANALYZER, TextAnalyzer
from mulika_analytics.reports.models import Report

SUMMARY_KEYWORD_LIMIT = 5


def find_duplicate_groups(
    reports: list[Report],
    threshold: float | None = None,
    *,
    analyzer: TextAnalyzer | None = None,
) -> list[list[Report]]:
    """
    Group reports whose descriptions are near-duplicates.

    Greedy: each report not yet grouped seeds a group and pulls in every later
    ungrouped report with similarity >= threshold to the seed. Only groups
    of two or more are returned.
    """
    threshold = get_settings().duplicate_threshold if threshold is None else threshold
    analyzer = analyzer or DEFAULT_ANALYZER
    processed: set[str] = set()
    groups: list[list[Report]] = []

    for seed in reports:
        if seed.id in processed:
            continue
        processed.add(seed.id)
        group = [seed]
        for other in reports:
            if other.id in processed:
                continue
            if analyzer.similarity(seed.description, other.description) >= threshold:
                group.append(other)
                processed.add(other.id)
        if len(group) > 1:
            groups.append(group)

    bind_batch(__name__, len(reports)).debug(
        "duplicate_groups_found", groups=len(groups), threshold=threshold
    )
    return groups


def summarize_reports(
    reports: list[Report],
    *,
    analyzer: TextAnalyzer | None = None,
) -> str:
    """One-sentence overview: counts, average amount, key themes and overall sentiment."""
    if not reports:
        return "No reports to summarize."
    analyzer = analyzer or DEFAULT_ANALYZER

    total = len(reports)
    average_amount = sum(r.amount for r in reports) / total
    counties = {r.county for r in reports}
    agencies = {r.agency for r in reports}
    analysis = analyzer.analyze(" ".join(r.description for r in reports))
    themes = ", ".join(k.word for k in analysis.keywords[:SUMMARY_KEYWORD_LIMIT])

    return (
        f"Summary of {total} reports from {len(counties)} counties involving "
        f"{len(agencies)} agencies. Average amount: KES {average_amount:.0f}. "
        f"Key themes: {themes}. Overall sentiment: {analysis.sentiment.label.value}."
    )
