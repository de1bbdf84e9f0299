"""External place search adapter."""

from .service import (
    GooglePlacesSearchService,
    PlaceCandidate,
    PlaceSearchService,
    TEXT_SEARCH_FIELDS,
)

__all__ = [
    "GooglePlacesSearchService",
    "PlaceCandidate",
    "PlaceSearchService",
    "TEXT_SEARCH_FIELDS",
]
