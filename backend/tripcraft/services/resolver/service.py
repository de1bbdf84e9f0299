"""Place resolver: turns a drafted place name into a ResolvedPlace.

Lookup chain, first success wins:
1. In-process resolution cache (shared in-flight futures, keyed by raw name)
2. Persistent place cache (exact name or keyword containment), healing a
   missing image on the way out
3. External text search, then tiered image search, then an upsert into the
   persistent cache

Every failure degrades to a best-effort place; ``resolve`` never raises.
"""

import asyncio
import logging
from typing import Coroutine, Optional

from tripcraft.models import PlaceQuery, ResolvedPlace
from tripcraft.rules import DEFAULT_RULES, MatchRules
from tripcraft.services.image_search import ImageResolver
from tripcraft.services.place_cache import PlaceCacheStore
from tripcraft.services.place_search import PlaceCandidate, PlaceSearchService
from tripcraft.utils.cache import ResolutionCache

logger = logging.getLogger(__name__)

LODGING_PLACEHOLDER_TAGS = frozenset({"lodging", "hotel"})


class PlaceResolver:
    """Orchestrates the cache chain, external search and image healing."""

    def __init__(
        self,
        place_search: PlaceSearchService,
        place_cache: PlaceCacheStore,
        image_resolver: ImageResolver,
        resolution_cache: Optional[ResolutionCache[ResolvedPlace]] = None,
        rules: MatchRules = DEFAULT_RULES,
        language: str = "ko",
    ) -> None:
        self._search = place_search
        self._store = place_cache
        self._images = image_resolver
        self._memory = resolution_cache if resolution_cache is not None else ResolutionCache()
        self._rules = rules
        self._language = language
        self._background: set[asyncio.Task] = set()

    @property
    def resolution_cache(self) -> ResolutionCache[ResolvedPlace]:
        return self._memory

    async def resolve(self, raw_name: str, city_context: str = "") -> ResolvedPlace:
        name = (raw_name or "").strip()
        if not name:
            return self._fallback("")

        if self._rules.is_lodging_marker(name):
            return self._lodging_placeholder(name)

        query = PlaceQuery(raw_name=name, city_context=(city_context or "").strip())
        return await self._memory.get_or_create(
            name,
            lambda: self._resolve_uncached(query),
            keep=lambda place: place.is_resolved,
        )

    async def resolve_image(self, query: str, tags: Optional[set[str]] = None) -> str:
        """Image for an arbitrary query, falling back to a stock image."""
        url = await self._images.resolve(query)
        return url or self._rules.fallback_image(tags)

    def fallback_image(self, tags: Optional[set[str]] = None) -> str:
        return self._rules.fallback_image(tags)

    async def drain(self) -> None:
        """Wait for detached cache writes (shutdown and tests)."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ── Chain ─────────────────────────────────────────────────────────

    async def _resolve_uncached(self, query: PlaceQuery) -> ResolvedPlace:
        try:
            cached = await self._lookup_persistent(query.raw_name)
            if cached is not None:
                return await self._heal_if_needed(query.raw_name, cached)
            return await self._resolve_external(query)
        except Exception as e:
            logger.exception(f"[RESOLVER] Unexpected error resolving '{query.raw_name}': {e}")
            return self._fallback(query.raw_name)

    async def _lookup_persistent(self, name: str) -> Optional[ResolvedPlace]:
        try:
            place = await self._store.find(name)
        except Exception as e:
            logger.warning(f"[CACHE] Persistent lookup failed for '{name}': {type(e).__name__}: {e}")
            return None
        if place is not None:
            logger.info(f"[RESOLVER] Cache HIT (store) for '{name}' -> {place.display_name}")
        return place

    async def _heal_if_needed(self, name: str, place: ResolvedPlace) -> ResolvedPlace:
        if place.image_url:
            return place

        logger.info(f"[RESOLVER] Healing missing image for cached place '{name}'")
        url = await self._images.resolve(name)
        if not url:
            place.image_url = self._rules.fallback_image(place.category_tags)
            return place

        place.image_url = url
        place.image_reference = name
        if place.identifier:
            self._detach(self._write_healed_image(place.identifier, url, name))
        return place

    async def _resolve_external(self, query: PlaceQuery) -> ResolvedPlace:
        search_text = query.to_search_text()
        try:
            candidates = await self._search.search_text(search_text, self._language)
        except Exception as e:
            logger.warning(f"[PLACES] Search raised for '{search_text}': {type(e).__name__}: {e}")
            candidates = []

        if not candidates:
            logger.info(f"[RESOLVER] No place found for '{search_text}', using fallback")
            return self._fallback(query.raw_name)

        candidate = candidates[0]
        display_name = candidate.display_name or query.raw_name
        logger.info(f"[RESOLVER] Search result for '{query.raw_name}': {display_name}")

        image_query = self._image_query(display_name, query.city_context, candidate.category_tags)
        image_url = await self._images.resolve(image_query)

        place = self._build_place(query.raw_name, display_name, candidate, image_url, image_query)
        await self._persist(place)

        if not place.image_url:
            place = place.model_copy(
                update={"image_url": self._rules.fallback_image(place.category_tags)}
            )
        return place

    # ── Helpers ───────────────────────────────────────────────────────

    def _image_query(self, display_name: str, city: str, tags: list[str]) -> str:
        suffix = self._rules.image_search_suffix(tags)
        return f"{city} {display_name}{suffix}".strip()

    @staticmethod
    def _build_place(
        raw_name: str,
        display_name: str,
        candidate: PlaceCandidate,
        image_url: Optional[str],
        image_query: str,
    ) -> ResolvedPlace:
        variants = [raw_name, display_name, candidate.formatted_address]
        keywords = "|".join(dict.fromkeys(v for v in variants if v))
        rating = candidate.rating
        if rating is not None and not 0 <= rating <= 5:
            rating = None
        return ResolvedPlace(
            identifier=candidate.identifier,
            display_name=display_name,
            rating=rating,
            rating_count=max(candidate.rating_count or 0, 0),
            map_link=candidate.map_link,
            website_link=candidate.website_link,
            coordinates=candidate.coordinates,
            category_tags=set(candidate.category_tags),
            image_url=image_url,
            image_reference=image_query if image_url else None,
            search_keywords=keywords,
        )

    async def _persist(self, place: ResolvedPlace) -> None:
        # Stored without a stock image so a later lookup can heal it.
        try:
            await self._store.upsert(place)
        except Exception as e:
            logger.error(f"[CACHE] Upsert failed for {place.identifier}: {type(e).__name__}: {e}")

    async def _write_healed_image(self, identifier: str, url: str, reference: str) -> None:
        try:
            updated = await self._store.update_image(identifier, url, reference)
        except Exception as e:
            logger.error(f"[CACHE] Healed image write failed for {identifier}: {type(e).__name__}: {e}")
            return
        if updated:
            logger.info(f"[CACHE] Updated cached image for {identifier}")

    def _detach(self, coro: Coroutine) -> None:
        """Run a write without blocking the response."""
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _fallback(self, name: str) -> ResolvedPlace:
        return ResolvedPlace(display_name=name, image_url=self._rules.fallback_image())

    def _lodging_placeholder(self, name: str) -> ResolvedPlace:
        return ResolvedPlace(
            display_name=name,
            category_tags=set(LODGING_PLACEHOLDER_TAGS),
            image_url=self._rules.fallback_image(LODGING_PLACEHOLDER_TAGS),
        )
