"""Trigram index over ``search_keywords`` for fuzzy cache lookups.

A keyword string contains the query only if it contains every trigram of
the query, so intersecting trigram postings gives a candidate superset that
is then confirmed with a plain containment check.
"""

from tripcraft.models import ResolvedPlace
from tripcraft.utils.text import normalize, trigrams


def keyword_text(place: ResolvedPlace) -> str:
    """Text indexed for a place; the display name stands in for empty keywords."""
    return place.search_keywords or place.display_name


def matches_exact(place: ResolvedPlace, name: str) -> bool:
    return normalize(place.display_name) == normalize(name)


def matches_fuzzy(place: ResolvedPlace, name: str) -> bool:
    needle = normalize(name)
    return bool(needle) and needle in normalize(keyword_text(place))


class TrigramIndex:
    """In-memory postings: trigram -> identifiers."""

    def __init__(self) -> None:
        self._postings: dict[str, set[str]] = {}
        self._by_id: dict[str, set[str]] = {}

    def add(self, identifier: str, text: str) -> None:
        self.remove(identifier)
        grams = trigrams(text)
        self._by_id[identifier] = grams
        for gram in grams:
            self._postings.setdefault(gram, set()).add(identifier)

    def remove(self, identifier: str) -> None:
        for gram in self._by_id.pop(identifier, set()):
            ids = self._postings.get(gram)
            if ids is None:
                continue
            ids.discard(identifier)
            if not ids:
                del self._postings[gram]

    def candidates(self, query: str) -> set[str] | None:
        """Identifiers that may contain ``query``; None if the query is too short to index."""
        grams = trigrams(query)
        if not grams:
            return None
        result: set[str] | None = None
        for gram in grams:
            ids = self._postings.get(gram, set())
            result = set(ids) if result is None else result & ids
            if not result:
                return set()
        return result or set()
