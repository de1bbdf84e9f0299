"""TripCraft Services.

Service layer components:
- Place Search: Google Places Text Search (photos excluded from the field mask)
- Image Search: Naver image search plus the tiered Image Resolver
- Place Cache: Redis store with a trigram keyword index, in-memory store
- Routes: Google Directions with transit/driving/walking fallback
- Resolver: name -> ResolvedPlace through the cache chain
- Itinerary: draft post-processing (dedup, correction, enrichment, routes)
"""

from .image_search import (
    ImageCandidate,
    ImageResolver,
    ImageSearchService,
    NaverImageSearchService,
)
from .itinerary import ConcurrencyMode, ItineraryPostProcessor, parse_draft
from .place_cache import InMemoryPlaceCacheStore, PlaceCacheStore, RedisPlaceCacheStore
from .place_search import GooglePlacesSearchService, PlaceCandidate, PlaceSearchService
from .resolver import PlaceResolver
from .routes import (
    DirectionsResult,
    DirectionsService,
    GoogleDirectionsService,
    RouteAnnotator,
)

__all__ = [
    # Image search
    "ImageCandidate",
    "ImageResolver",
    "ImageSearchService",
    "NaverImageSearchService",
    # Itinerary
    "ConcurrencyMode",
    "ItineraryPostProcessor",
    "parse_draft",
    # Place cache
    "InMemoryPlaceCacheStore",
    "PlaceCacheStore",
    "RedisPlaceCacheStore",
    # Place search
    "GooglePlacesSearchService",
    "PlaceCandidate",
    "PlaceSearchService",
    # Resolver
    "PlaceResolver",
    # Routes
    "DirectionsResult",
    "DirectionsService",
    "GoogleDirectionsService",
    "RouteAnnotator",
]
