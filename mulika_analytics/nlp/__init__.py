"""
Text analysis for report descriptions: sentiment, keywords, readability,
category suggestions, entities, similarity and duplicate grouping.
"""

from mulika_analytics.nlp.lexicon import DEFAULT_LEXICON, Lexicon
from mulika_analytics.nlp.text_analyzer import (
    Entities,
    Keyword,
    Sentiment,
    SentimentLabel,
    TextAnalysisResult,
    TextAnalyzer,
    TextStatistics,
    analyze_text,
    extract_entities,
    text_similarity,
)
from mulika_analytics.nlp.report_text import find_duplicate_groups, summarize_reports

__all__ = [
    "DEFAULT_LEXICON",
    "Lexicon",
    "Entities",
    "Keyword",
    "Sentiment",
    "SentimentLabel",
    "TextAnalysisResult",
    "TextAnalyzer",
    "TextStatistics",
    "analyze_text",
    "extract_entities",
    "text_similarity",
    "find_duplicate_groups",
    "summarize_reports",
]
