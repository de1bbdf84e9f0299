"""Seed the persistent place cache from already-saved itineraries."""

import logging
from dataclasses import dataclass
from typing import Iterable

from tripcraft.models import Activity, Itinerary, ResolvedPlace
from tripcraft.rules import DEFAULT_RULES, MatchRules
from tripcraft.services.place_cache import PlaceCacheStore

logger = logging.getLogger(__name__)

BATCH_SIZE = 50


@dataclass
class BackfillReport:
    total: int = 0
    skipped: int = 0
    cached: int = 0


def _to_place(activity: Activity) -> ResolvedPlace:
    place = activity.as_resolved_place()
    return place.model_copy(update={"search_keywords": activity.place_name})


async def backfill_from_itineraries(
    store: PlaceCacheStore,
    itineraries: Iterable[Itinerary],
    rules: MatchRules = DEFAULT_RULES,
    batch_size: int = BATCH_SIZE,
) -> BackfillReport:
    """Upsert every resolved venue found in ``itineraries``.

    Activities without a place id or name, and structural transit/lodging
    entries, are skipped. Venues are deduplicated by place id, first
    occurrence wins. A failed batch is logged and the rest continue.
    """
    report = BackfillReport()
    unique: dict[str, ResolvedPlace] = {}

    for itinerary in itineraries:
        for day in itinerary.itinerary:
            for activity in day.activities:
                report.total += 1
                if not activity.place_id or not activity.place_name:
                    report.skipped += 1
                    continue
                if rules.is_structural(activity.place_name):
                    report.skipped += 1
                    continue
                if activity.place_id not in unique:
                    unique[activity.place_id] = _to_place(activity)

    logger.info(
        f"[BACKFILL] {report.total} activities, {report.skipped} skipped, "
        f"{len(unique)} unique places"
    )

    places = list(unique.values())
    batches = (len(places) + batch_size - 1) // batch_size
    for number, start in enumerate(range(0, len(places), batch_size), start=1):
        batch = places[start:start + batch_size]
        try:
            for place in batch:
                await store.upsert(place)
        except Exception as e:
            logger.error(f"[BACKFILL] Batch {number}/{batches} failed: {type(e).__name__}: {e}")
            continue
        report.cached += len(batch)
        logger.info(f"[BACKFILL] Cached batch {number}/{batches} ({len(batch)} places)")

    return report
