"""Directions adapter and route annotator.

The annotator asks for directions between two resolved places, trying
transit first, then driving, then walking, and keeps the first mode that
yields a route.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

import httpx

from tripcraft.models import TransportMode, TravelInfo

logger = logging.getLogger(__name__)

MODE_PRIORITY = (TransportMode.TRANSIT, TransportMode.DRIVING, TransportMode.WALKING)


@dataclass
class DirectionsResult:
    """Human-readable leg summary as returned by the provider."""
    duration: str
    distance: str


class DirectionsService(ABC):
    """Abstract directions capability keyed by external place ids."""

    @abstractmethod
    async def directions(
        self, origin_id: str, destination_id: str, mode: TransportMode
    ) -> Optional[DirectionsResult]:
        """Return the first route for ``mode`` or None when there is none."""
        pass

    async def close(self) -> None:
        pass


class GoogleDirectionsService(DirectionsService):
    """Google Directions API client addressing places by ``place_id``."""

    DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"

    def __init__(
        self,
        api_key: str | None,
        language: str = "ko",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._language = language
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def directions(
        self, origin_id: str, destination_id: str, mode: TransportMode
    ) -> Optional[DirectionsResult]:
        if not origin_id or not destination_id:
            raise ValueError("origin_id and destination_id cannot be empty")
        if not self._api_key:
            logger.warning("[ROUTE] GOOGLE_MAPS_API_KEY is not set; skipping directions")
            return None

        params = {
            "origin": f"place_id:{origin_id}",
            "destination": f"place_id:{destination_id}",
            "mode": mode.value,
            "language": self._language,
            "key": self._api_key,
        }
        try:
            response = await self._get_client().get(self.DIRECTIONS_URL, params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.info(f"[ROUTE] {mode.value} request failed: {type(e).__name__}: {e}")
            return None

        if data.get("status") != "OK" or not data.get("routes"):
            logger.debug(f"[ROUTE] No {mode.value} route ({data.get('status')})")
            return None

        try:
            leg = data["routes"][0]["legs"][0]
            return DirectionsResult(
                duration=leg["duration"]["text"],
                distance=leg["distance"]["text"],
            )
        except (KeyError, IndexError, TypeError):
            logger.info(f"[ROUTE] Malformed {mode.value} response")
            return None


class RouteAnnotator:
    """Multi-mode fallback over a ``DirectionsService``."""

    def __init__(
        self,
        directions: DirectionsService,
        modes: Sequence[TransportMode] = MODE_PRIORITY,
    ) -> None:
        self._directions = directions
        self._modes = tuple(modes)

    async def annotate(
        self, origin_id: Optional[str], destination_id: Optional[str]
    ) -> Optional[TravelInfo]:
        """Travel info for the hop, or None when no mode has a route.

        Hops where either side is unresolved are skipped without any call.
        """
        if not origin_id or not destination_id:
            return None

        for mode in self._modes:
            try:
                result = await self._directions.directions(origin_id, destination_id, mode)
            except Exception as e:
                logger.info(f"[ROUTE] {mode.value} lookup raised: {type(e).__name__}: {e}")
                continue
            if result:
                return TravelInfo(
                    duration=result.duration,
                    distance=result.distance,
                    mode=mode,
                    mode_label=mode.label,
                )
        logger.info(f"[ROUTE] No route between {origin_id} and {destination_id}")
        return None
