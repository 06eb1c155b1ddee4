"""
Heuristic text analysis for report descriptions.

Tokenizes free text and derives lexicon-based sentiment, frequency-weighted
keywords, a simplified Flesch readability score, basic text statistics,
suggested categories, regex entities (amounts, dates, places), and Jaccard
similarity. Empty or whitespace-only text never raises; it yields neutral,
zero-valued results.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any

from mulika_analytics.mulika_logging import get_logger
from mulika_analytics.nlp.lexicon import DEFAULT_LEXICON, Lexicon
from mulika_analytics.reports.models import Category

logger = get_logger(__name__)

KEYWORD_LIMIT = 10
CATEGORY_SUGGESTION_LIMIT = 3
LOCATION_LIMIT = 5
SENTIMENT_THRESHOLD = 0.2
# Matches needed for full sentiment confidence
SENTIMENT_FULL_CONFIDENCE_MATCHES = 10
MIN_KEYWORD_LENGTH = 3
DOMAIN_TERM_BOOST = 2
CATEGORY_HIT_WEIGHT = 2
MIN_STANDALONE_AMOUNT = 100.0

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_CURRENCY_AMOUNT = re.compile(
    r"(?:KES|Ksh|shillings?)\s*(\d{1,3}(?:,\d{3})*(?:\.\d{2})?)", re.IGNORECASE
)
_STANDALONE_AMOUNT = re.compile(r"\b(\d{1,3}(?:,\d{3})+(?:\.\d{2})?)\b")
_DATE = re.compile(r"\b(\d{1,2}[/-]\d{1,2}[/-]\d{2,4}|\d{4}[/-]\d{1,2}[/-]\d{1,2})\b")
_CAPITALIZED_RUN = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b")


class SentimentLabel(str, Enum):
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    POSITIVE = "positive"


@dataclass(frozen=True)
class Sentiment:
    score: float
    """-1 (negative) to 1 (positive)."""
    label: SentimentLabel
    confidence: float
    """0 to 1; grows with the number of lexicon matches."""

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "label": self.label.value, "confidence": self.confidence}


@dataclass(frozen=True)
class Keyword:
    word: str
    frequency: int
    relevance: float

    def to_dict(self) -> dict[str, Any]:
        return {"word": self.word, "frequency": self.frequency, "relevance": self.relevance}


@dataclass(frozen=True)
class TextStatistics:
    word_count: int = 0
    sentence_count: int = 0
    character_count: int = 0
    average_word_length: float = 0.0
    average_sentence_length: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "word_count": self.word_count,
            "sentence_count": self.sentence_count,
            "character_count": self.character_count,
            "average_word_length": self.average_word_length,
            "average_sentence_length": self.average_sentence_length,
        }


@dataclass(frozen=True)
class Entities:
    amounts: tuple[float, ...] = ()
    dates: tuple[str, ...] = ()
    locations: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "amounts": list(self.amounts),
            "dates": list(self.dates),
            "locations": list(self.locations),
        }


@dataclass(frozen=True)
class TextAnalysisResult:
    sentiment: Sentiment
    keywords: tuple[Keyword, ...]
    readability_score: float
    text_statistics: TextStatistics
    suggested_categories: tuple[Category, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "sentiment": self.sentiment.to_dict(),
            "keywords": [k.to_dict() for k in self.keywords],
            "readability_score": self.readability_score,
            "text_statistics": self.text_statistics.to_dict(),
            "suggested_categories": [c.value for c in self.suggested_categories],
        }


def _unique(values):
    return list(dict.fromkeys(values))


class TextAnalyzer:
    """
    Text analysis bound to one immutable Lexicon.

    Instances hold no mutable state; one analyzer can be shared across calls.
    """

    def __init__(self, lexicon: Lexicon = DEFAULT_LEXICON) -> None:
        self.lexicon = lexicon
        self._category_patterns = {
            category: tuple(
                (kw, re.compile(rf"\b{re.escape(kw)}\b", re.IGNORECASE)) for kw in keywords
            )
            for category, keywords in lexicon.category_keywords.items()
        }

    @staticmethod
    def clean(text: str) -> str:
        """Lowercase, replace non-word characters with spaces, collapse whitespace."""
        cleaned = _NON_WORD.sub(" ", (text or "").lower())
        return _WHITESPACE.sub(" ", cleaned).strip()

    def tokenize(self, text: str) -> list[str]:
        cleaned = self.clean(text)
        return [w for w in cleaned.split(" ") if w]

    def sentiment(self, tokens: list[str]) -> Sentiment:
        """
        Lexicon sentiment: each negative match counts -1, each positive +1,
        and the score is the sum over the number of matches.
        """
        total = 0
        matches = 0
        for word in tokens:
            if word in self.lexicon.negative_words:
                total -= 1
                matches += 1
            elif word in self.lexicon.positive_words:
                total += 1
                matches += 1

        score = total / matches if matches else 0.0
        if score < -SENTIMENT_THRESHOLD:
            label = SentimentLabel.NEGATIVE
        elif score > SENTIMENT_THRESHOLD:
            label = SentimentLabel.POSITIVE
        else:
            label = SentimentLabel.NEUTRAL
        return Sentiment(
            score=score,
            label=label,
            confidence=min(matches / SENTIMENT_FULL_CONFIDENCE_MATCHES, 1.0),
        )

    def keywords(self, tokens: list[str], limit: int = KEYWORD_LIMIT) -> list[Keyword]:
        """Most relevant non-stop-word tokens; corruption-domain terms count double."""
        counts = Counter(
            w
            for w in tokens
            if len(w) >= MIN_KEYWORD_LENGTH and w not in self.lexicon.stop_words
        )
        ranked = [
            Keyword(
                word=word,
                frequency=freq,
                relevance=freq * (DOMAIN_TERM_BOOST if self.lexicon.is_domain_term(word) else 1),
            )
            for word, freq in counts.items()
        ]
        ranked.sort(key=lambda k: k.relevance, reverse=True)
        return ranked[:limit]

    @staticmethod
    def statistics(text: str) -> TextStatistics:
        text = text or ""
        words = text.split()
        sentences = [s for s in _SENTENCE_SPLIT.split(text) if s.strip()]
        word_count = len(words)
        sentence_count = len(sentences)
        return TextStatistics(
            word_count=word_count,
            sentence_count=sentence_count,
            character_count=len(_WHITESPACE.sub("", text)),
            average_word_length=(
                sum(len(w) for w in words) / word_count if word_count else 0.0
            ),
            average_sentence_length=word_count / sentence_count if sentence_count else 0.0,
        )

    @staticmethod
    def readability(stats: TextStatistics) -> float:
        """Simplified Flesch Reading Ease (syllables ~ word length / 2), clamped to 0-100."""
        if stats.word_count == 0 or stats.sentence_count == 0:
            return 0.0
        syllables_per_word = stats.average_word_length / 2
        score = 206.835 - 1.015 * stats.average_sentence_length - 84.6 * syllables_per_word
        return max(0.0, min(100.0, score))

    def suggest_categories(
        self,
        text: str,
        keywords: list[Keyword],
        limit: int = CATEGORY_SUGGESTION_LIMIT,
    ) -> list[Category]:
        """
        Score each category by keyword hits in the text (x2) plus the relevance
        of the first extracted keyword containing each category keyword.
        """
        scores: list[tuple[Category, float]] = []
        for category, patterns in self._category_patterns.items():
            score = 0.0
            for keyword, pattern in patterns:
                score += len(pattern.findall(text or "")) * CATEGORY_HIT_WEIGHT
                match = next((k for k in keywords if keyword in k.word), None)
                if match is not None:
                    score += match.relevance
            if score > 0:
                scores.append((category, score))
        scores.sort(key=lambda item: item[1], reverse=True)
        return [category for category, _ in scores[:limit]]

    def analyze(self, text: str) -> TextAnalysisResult:
        tokens = self.tokenize(text)
        keywords = self.keywords(tokens)
        stats = self.statistics(text)
        sentiment = self.sentiment(tokens)
        logger.debug(
            "text_analyzed",
            word_count=stats.word_count,
            keyword_count=len(keywords),
            sentiment=sentiment.label.value,
        )
        return TextAnalysisResult(
            sentiment=sentiment,
            keywords=tuple(keywords),
            readability_score=self.readability(stats),
            text_statistics=stats,
            suggested_categories=tuple(self.suggest_categories(text, keywords)),
        )

    def extract_entities(self, text: str) -> Entities:
        """Amounts (KES-prefixed, or standalone thousands-separated >= 100), dates and place names."""
        text = text or ""
        amounts: list[float] = []
        for match in _CURRENCY_AMOUNT.finditer(text):
            amounts.append(float(match.group(1).replace(",", "")))
        for match in _STANDALONE_AMOUNT.finditer(text):
            value = float(match.group(1).replace(",", ""))
            if value >= MIN_STANDALONE_AMOUNT:
                amounts.append(value)

        dates = [m.group(0) for m in _DATE.finditer(text)]
        locations = [
            m.group(0)
            for m in _CAPITALIZED_RUN.finditer(text)
            if len(m.group(0)) > 3 and m.group(0).lower() not in self.lexicon.stop_words
        ]
        return Entities(
            amounts=tuple(_unique(amounts)),
            dates=tuple(_unique(dates)),
            locations=tuple(_unique(locations)[:LOCATION_LIMIT]),
        )

    def similarity(self, first: str, second: str) -> float:
        """Jaccard index of the two texts' token sets; 0 when both are empty."""
        a = set(self.tokenize(first))
        b = set(self.tokenize(second))
        union = a | b
        if not union:
            return 0.0
        return len(a & b) / len(union)


DEFAULT_ANALYZER = TextAnalyzer()


def analyze_text(text: str) -> TextAnalysisResult:
    """Analyze text with the default lexicon."""
    return DEFAULT_ANALYZER.analyze(text)


def extract_entities(text: str) -> Entities:
    return DEFAULT_ANALYZER.extract_entities(text)


def text_similarity(first: str, second: str) -> float:
    return DEFAULT_ANALYZER.similarity(first, second)
