"""Wiring of the enrichment pipeline from Settings."""

import logging
from dataclasses import dataclass
from typing import Optional

from tripcraft.config import Settings
from tripcraft.jobs import ImageHealthScheduler, ImageHealthSweep, LinkChecker
from tripcraft.models import ResolvedPlace
from tripcraft.services.image_search import ImageResolver, NaverImageSearchService
from tripcraft.services.itinerary import ConcurrencyMode, ItineraryPostProcessor
from tripcraft.services.place_cache import PlaceCacheStore, RedisPlaceCacheStore
from tripcraft.services.place_search import GooglePlacesSearchService
from tripcraft.services.resolver import PlaceResolver
from tripcraft.services.routes import GoogleDirectionsService, RouteAnnotator
from tripcraft.utils.cache import ResolutionCache

logger = logging.getLogger(__name__)


@dataclass
class Pipeline:
    """Every long-lived component, built once per process."""
    settings: Settings
    place_search: GooglePlacesSearchService
    image_search: NaverImageSearchService
    directions: GoogleDirectionsService
    store: PlaceCacheStore
    image_resolver: ImageResolver
    resolver: PlaceResolver
    route_annotator: RouteAnnotator
    post_processor: ItineraryPostProcessor
    checker: LinkChecker
    scheduler: ImageHealthScheduler

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.resolver.drain()
        for component in (self.place_search, self.image_search, self.directions, self.checker, self.store):
            try:
                await component.close()
            except Exception as e:
                logger.warning(f"[PIPELINE] Error closing {type(component).__name__}: {e}")


def _concurrency_mode(value: str) -> ConcurrencyMode:
    try:
        return ConcurrencyMode(value.strip().lower())
    except ValueError:
        logger.warning(f"[CONFIG] Unknown ENRICHMENT_MODE={value!r}, using sequential")
        return ConcurrencyMode.SEQUENTIAL


def build_pipeline(settings: Settings, store: Optional[PlaceCacheStore] = None) -> Pipeline:
    """Create the full pipeline.

    Args:
        settings: Process configuration.
        store: Persistent place cache; a Redis store on ``settings.redis_url``
            when omitted.
    """
    timeout = settings.http_timeout_seconds
    place_search = GooglePlacesSearchService(settings.google_maps_api_key, timeout=timeout)
    image_search = NaverImageSearchService(
        settings.naver_client_id, settings.naver_client_secret, timeout=timeout
    )
    directions = GoogleDirectionsService(
        settings.google_maps_api_key, language=settings.place_language, timeout=timeout
    )
    if store is None:
        store = RedisPlaceCacheStore(settings.redis_url)

    image_resolver = ImageResolver(image_search)
    resolver = PlaceResolver(
        place_search,
        store,
        image_resolver,
        resolution_cache=ResolutionCache[ResolvedPlace](settings.resolution_cache_size),
        language=settings.place_language,
    )
    route_annotator = RouteAnnotator(directions)
    post_processor = ItineraryPostProcessor(
        resolver,
        route_annotator,
        concurrency_mode=_concurrency_mode(settings.enrichment_mode),
        delay_seconds=settings.enrichment_delay_seconds,
    )
    checker = LinkChecker()
    scheduler = ImageHealthScheduler(
        ImageHealthSweep(store, image_resolver, checker),
        weekday=settings.image_sweep_weekday,
        hour=settings.image_sweep_hour,
    )
    return Pipeline(
        settings=settings,
        place_search=place_search,
        image_search=image_search,
        directions=directions,
        store=store,
        image_resolver=image_resolver,
        resolver=resolver,
        route_annotator=route_annotator,
        post_processor=post_processor,
        checker=checker,
        scheduler=scheduler,
    )
