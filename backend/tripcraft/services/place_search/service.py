"""External place search adapter (Google Places API v1 Text Search).

Wraps the text-search capability and maps raw results onto
``PlaceCandidate``. No caching here: the resolver owns the cache chain.

The field mask deliberately leaves out ``places.photos``: photo fields move
the request into a pricier billing tier, and images are resolved through the
separate image-search path instead.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from tripcraft.models import Coordinates

logger = logging.getLogger(__name__)

TEXT_SEARCH_FIELDS = (
    "places.id",
    "places.displayName",
    "places.formattedAddress",
    "places.rating",
    "places.userRatingCount",
    "places.googleMapsUri",
    "places.websiteUri",
    "places.location",
    "places.types",
)


@dataclass
class PlaceCandidate:
    """One text-search hit."""
    identifier: str
    display_name: str
    rating: Optional[float] = None
    rating_count: int = 0
    map_link: Optional[str] = None
    website_link: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    category_tags: list[str] = field(default_factory=list)
    formatted_address: Optional[str] = None


class PlaceSearchService(ABC):
    """Abstract text place search."""

    @abstractmethod
    async def search_text(self, query: str, language: str = "ko") -> list[PlaceCandidate]:
        """Return candidates best-first; an empty list on miss or failure."""
        pass

    async def close(self) -> None:
        pass


class GooglePlacesSearchService(PlaceSearchService):
    """Google Places API (New) ``places:searchText`` client."""

    SEARCH_URL = "https://places.googleapis.com/v1/places:searchText"

    def __init__(
        self,
        api_key: str | None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    @property
    def field_mask(self) -> str:
        return ",".join(TEXT_SEARCH_FIELDS)

    async def search_text(self, query: str, language: str = "ko") -> list[PlaceCandidate]:
        if not query or not query.strip():
            raise ValueError("query cannot be empty")
        if not self._api_key:
            logger.warning("[PLACES] GOOGLE_MAPS_API_KEY is not set; skipping text search")
            return []

        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self._api_key,
            "X-Goog-FieldMask": self.field_mask,
        }
        payload = {"textQuery": query.strip(), "languageCode": language}

        try:
            response = await self._get_client().post(self.SEARCH_URL, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[PLACES] Text search HTTP {e.response.status_code} for '{query}'")
            return []
        except httpx.HTTPError as e:
            logger.error(f"[PLACES] Text search failed for '{query}': {type(e).__name__}: {e}")
            return []
        except ValueError as e:
            logger.error(f"[PLACES] Invalid JSON for '{query}': {e}")
            return []

        candidates = []
        for raw in data.get("places") or []:
            candidate = self._parse_place(raw)
            if candidate:
                candidates.append(candidate)
        logger.debug(f"[PLACES] '{query}': {len(candidates)} candidates")
        return candidates

    @staticmethod
    def _parse_place(raw: dict[str, Any]) -> PlaceCandidate | None:
        identifier = raw.get("id")
        if not identifier:
            return None

        display = raw.get("displayName") or {}
        name = display.get("text") if isinstance(display, dict) else str(display)

        coordinates = None
        location = raw.get("location") or {}
        try:
            if "latitude" in location and "longitude" in location:
                coordinates = Coordinates(
                    latitude=float(location["latitude"]),
                    longitude=float(location["longitude"]),
                )
        except (TypeError, ValueError):
            coordinates = None

        return PlaceCandidate(
            identifier=identifier,
            display_name=name or "",
            rating=raw.get("rating"),
            rating_count=raw.get("userRatingCount") or 0,
            map_link=raw.get("googleMapsUri"),
            website_link=raw.get("websiteUri"),
            coordinates=coordinates,
            category_tags=list(raw.get("types") or []),
            formatted_address=raw.get("formattedAddress"),
        )
