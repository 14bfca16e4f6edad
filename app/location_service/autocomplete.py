"""Autocomplete matching over city names and regions."""

from enum import Enum
from typing import Protocol

from pydantic import BaseModel

from app.models.city import CatalogSnapshot, CityRecord

MIN_QUERY_LENGTH = 2
MAX_SUGGESTIONS = 10


class MatchTier(str, Enum):
    """Which rule accepted a record, strongest first."""

    exact = "exact"
    prefix = "prefix"
    multi_token = "multi_token"


class AutocompleteMatch(BaseModel):
    record: CityRecord
    tier: MatchTier


def normalize_query(query: str | None) -> str:
    """Trim and lower-case a raw search term."""
    return (query or "").strip().lower()


def is_searchable(normalized_query: str) -> bool:
    return len(normalized_query) >= MIN_QUERY_LENGTH


def match_tier(record: CityRecord, term: str, term_words: list[str]) -> MatchTier | None:
    """Classify how a record matches a normalized term.

    Args:
        record: Catalog entry to test.
        term: Normalized query.
        term_words: Whitespace tokens of the normalized query.

    Returns:
        The first tier the record satisfies, or None if it does not match.
    """
    name = record.name.lower()
    region = record.region.lower()

    if name == term or region == term:
        return MatchTier.exact
    if name.startswith(term) or region.startswith(term):
        return MatchTier.prefix
    if term_words and all(word in name or word in region for word in term_words):
        return MatchTier.multi_token
    return None


class SuggestionMatcher(Protocol):
    def match(self, snapshot: CatalogSnapshot, query: str) -> list[AutocompleteMatch]:
        ...


class AutocompleteMatcher:
    """Filter the snapshot in catalog order, stopping after `limit` matches.

    Entries sharing a (name, region) pair are collapsed to the first one
    accepted, whatever tier a later duplicate would have matched.
    """

    def __init__(self, limit: int = MAX_SUGGESTIONS):
        self.limit = limit

    def match(self, snapshot: CatalogSnapshot, query: str) -> list[AutocompleteMatch]:
        term = normalize_query(query)
        if not is_searchable(term):
            return []
        term_words = term.split()

        results: list[AutocompleteMatch] = []
        seen: set[tuple[str, str]] = set()
        for record in snapshot.records:
            if len(results) >= self.limit:
                break
            key = (record.name, record.region)
            if key in seen:
                continue
            tier = match_tier(record, term, term_words)
            if tier is None:
                continue
            seen.add(key)
            results.append(AutocompleteMatch(record=record, tier=tier))
        return results
