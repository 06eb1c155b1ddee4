"""
Vocabulary configuration for text analysis.

A Lexicon bundles stop words, sentiment word lists and per-category keyword
phrases. It is immutable and passed to TextAnalyzer at construction, so
analyzers with different vocabularies (e.g. extra local languages) can run
side by side.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import cached_property
from types import MappingProxyType

from mulika_analytics.reports.models import Category

# Common English + Swahili words
DEFAULT_STOP_WORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "has", "he",
    "in", "is", "it", "its", "of", "on", "that", "the", "to", "was", "were",
    "will", "with", "i", "me", "my", "we", "our", "you", "your", "they", "them",
    "na", "ya", "wa", "ni", "kwa", "la", "za", "katika", "kuwa", "au", "lakini",
})

DEFAULT_NEGATIVE_WORDS = frozenset({
    "corrupt", "bribe", "illegal", "fraud", "theft", "embezzlement", "extortion",
    "demanded", "forced", "threatened", "refused", "denied", "stolen", "cheated",
    "bad", "terrible", "awful", "poor", "unfair", "unjust", "wrong",
    # Swahili
    "rushwa", "ufisadi", "wizi", "uongo", "haramu",
})

DEFAULT_POSITIVE_WORDS = frozenset({
    "helped", "resolved", "fair", "honest", "transparent", "justice", "good",
    "excellent", "professional", "efficient", "quick", "helpful",
})

DEFAULT_CATEGORY_KEYWORDS: Mapping[Category, tuple[str, ...]] = MappingProxyType({
    Category.BRIBERY: ("bribe", "pay", "money", "cash", "rushwa", "demanded", "asked for money"),
    Category.EXTORTION: ("extort", "threaten", "force", "demanded", "intimidate", "coerce"),
    Category.EMBEZZLEMENT: ("embezzle", "steal", "misappropriate", "funds", "missing money"),
    Category.NEPOTISM: ("nepotism", "favoritism", "relative", "family", "friend", "bias"),
    Category.PROCUREMENT_FRAUD: ("tender", "contract", "procurement", "bidding", "supplier"),
    Category.LAND_GRABBING: ("land", "grabbed", "property", "title deed", "plot", "eviction"),
    Category.OTHER: (),
})


def _freeze_categories(
    keywords: Mapping[Category, Iterable[str]],
) -> Mapping[Category, tuple[str, ...]]:
    frozen = {Category(c): tuple(k.lower() for k in kws) for c, kws in keywords.items()}
    for category in Category:
        frozen.setdefault(category, ())
    return MappingProxyType(frozen)


@dataclass(frozen=True, eq=False)
class Lexicon:
    stop_words: frozenset[str] = DEFAULT_STOP_WORDS
    negative_words: frozenset[str] = DEFAULT_NEGATIVE_WORDS
    positive_words: frozenset[str] = DEFAULT_POSITIVE_WORDS
    category_keywords: Mapping[Category, tuple[str, ...]] = field(
        default_factory=lambda: DEFAULT_CATEGORY_KEYWORDS
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "stop_words", frozenset(self.stop_words))
        object.__setattr__(self, "negative_words", frozenset(self.negative_words))
        object.__setattr__(self, "positive_words", frozenset(self.positive_words))
        object.__setattr__(self, "category_keywords", _freeze_categories(self.category_keywords))

    @cached_property
    def _all_category_keywords(self) -> tuple[str, ...]:
        return tuple(kw for kws in self.category_keywords.values() for kw in kws)

    def is_domain_term(self, word: str) -> bool:
        """True for negative-sentiment words and words contained in any category keyword."""
        if word in self.negative_words:
            return True
        return any(word in kw for kw in self._all_category_keywords)

    def extended(
        self,
        *,
        stop_words: Iterable[str] = (),
        negative_words: Iterable[str] = (),
        positive_words: Iterable[str] = (),
        category_keywords: Mapping[Category, Iterable[str]] | None = None,
    ) -> "Lexicon":
        """Return a new lexicon with extra terms merged in; self is unchanged."""
        merged = {c: list(kws) for c, kws in self.category_keywords.items()}
        for category, extra in (category_keywords or {}).items():
            merged.setdefault(Category(category), []).extend(extra)
        return dataclasses.replace(
            self,
            stop_words=self.stop_words | set(stop_words),
            negative_words=self.negative_words | set(negative_words),
            positive_words=self.positive_words | set(positive_words),
            category_keywords=merged,
        )


DEFAULT_LEXICON = Lexicon()
