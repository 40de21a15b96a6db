"""Rate catalog search and related-entry matching.

Matching is a name heuristic: from a chosen base item such as
"Assistance With Self-Care Activities - Standard - Weekday Daytime" the
category suffix is stripped and the remaining stem is looked up next to
evening, Saturday, Sunday and public holiday keywords. Ties and false
positives are possible; misses are simply left out.
"""

from __future__ import annotations

import abc
import logging
import re
from typing import Iterable, Mapping, Sequence

from .types import CatalogEntry, RateCategory, RateEntry

logger = logging.getLogger("hoursforecast.catalog")

CATEGORY_KEYWORDS: dict[RateCategory, tuple[str, ...]] = {
    RateCategory.WEEKDAY_EVENING: ("evening", "night"),
    RateCategory.SATURDAY: ("saturday",),
    RateCategory.SUNDAY: ("sunday",),
    RateCategory.PUBLIC_HOLIDAY: ("public holiday",),
}

SUFFIX_VOCABULARY = ("public holiday", "weekday", "saturday", "sunday", "evening", "night", "daytime", "day")

_SEPARATORS = r"[\s\-/,:()]"
_SUFFIX_RE = re.compile(
    rf"{_SEPARATORS}*(?:\b(?:{'|'.join(re.escape(w) for w in SUFFIX_VOCABULARY)})\b{_SEPARATORS}*)+$",
    re.IGNORECASE,
)


def normalize_name(text: str) -> str:
    text = str(text or "").lower().replace("-", " ").replace("/", " ")
    return " ".join(text.split())


def matches_query(entry: CatalogEntry, query: str) -> bool:
    raw = str(query or "").strip().lower()
    if not raw:
        return False
    name = normalize_name(entry.name)
    if all(token in name for token in normalize_name(raw).split()):
        return True
    return raw in str(entry.code).lower()


def search_catalog(catalog: Iterable[CatalogEntry], query: str, limit: int | None = None) -> list[CatalogEntry]:
    hits = [entry for entry in catalog if matches_query(entry, query)]
    return hits[:limit] if limit is not None else hits


def derive_base_name(name: str) -> str:
    """Strip a trailing category clause, e.g. ' - Weekday Daytime'."""
    stripped = _SUFFIX_RE.sub("", str(name or "")).strip()
    # A name made only of suffix words keeps its original text.
    return stripped or str(name or "").strip()


class RateCatalogMatcher(abc.ABC):
    """Derives rates for the other categories from a chosen base entry."""

    @abc.abstractmethod
    def match_related(
        self, catalog: Sequence[CatalogEntry], base: CatalogEntry
    ) -> dict[RateCategory, RateEntry]:
        raise NotImplementedError


class KeywordCatalogMatcher(RateCatalogMatcher):
    def __init__(self, keywords: Mapping[RateCategory, Sequence[str]] | None = None) -> None:
        self.keywords = dict(keywords or CATEGORY_KEYWORDS)

    def match_related(
        self, catalog: Sequence[CatalogEntry], base: CatalogEntry
    ) -> dict[RateCategory, RateEntry]:
        stem = normalize_name(derive_base_name(base.name))
        matched: dict[RateCategory, RateEntry] = {RateCategory.WEEKDAY_DAY: base.as_rate()}
        for category, words in self.keywords.items():
            for entry in catalog:
                if entry.code == base.code:
                    continue
                name = normalize_name(entry.name)
                if stem in name and any(w in name for w in words):
                    matched[category] = entry.as_rate()
                    break
            else:
                logger.debug("No %s match for %r", category.value, stem)
        return matched


class LookupCatalogMatcher(RateCatalogMatcher):
    """Exact lookup: base code -> {category: related code}."""

    def __init__(self, table: Mapping[str, Mapping[RateCategory, str]]) -> None:
        self.table = {code: dict(related) for code, related in table.items()}

    def match_related(
        self, catalog: Sequence[CatalogEntry], base: CatalogEntry
    ) -> dict[RateCategory, RateEntry]:
        by_code = {entry.code: entry for entry in catalog}
        matched: dict[RateCategory, RateEntry] = {RateCategory.WEEKDAY_DAY: base.as_rate()}
        for category, code in self.table.get(base.code, {}).items():
            entry = by_code.get(code)
            if entry is not None:
                matched[category] = entry.as_rate()
        return matched


def match_related(catalog: Sequence[CatalogEntry], base: CatalogEntry) -> dict[RateCategory, RateEntry]:
    return KeywordCatalogMatcher().match_related(catalog, base)


def find_entry(catalog: Iterable[CatalogEntry], code: str) -> CatalogEntry | None:
    return next((entry for entry in catalog if entry.code == code), None)
