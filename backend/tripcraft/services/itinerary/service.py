"""Itinerary post-processing.

Turns a drafted itinerary into an enriched one. Per day, in order:
1. Drop repeated venues (one "seen" set spans the whole trip; transit and
   lodging entries are exempt)
2. Recategorise beauty/wellness services drafted as meals
3. Resolve every venue through the PlaceResolver and merge the result
4. Derive booking URLs (never for parks and natural features)
5. Annotate travel info between consecutive resolved activities

A single bad activity never aborts the itinerary: it is skipped and logged.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Optional, Union

from pydantic import ValidationError

from tripcraft.models import Activity, ActivityCategory, DayPlan, Itinerary, ResolvedPlace
from tripcraft.rules import DEFAULT_RULES, MatchRules
from tripcraft.services.resolver import PlaceResolver
from tripcraft.services.routes import RouteAnnotator
from tripcraft.utils.text import parse_model_json

logger = logging.getLogger(__name__)

DraftInput = Union[Itinerary, dict, str]


class ConcurrencyMode(str, Enum):
    """How activities within a day are resolved.

    SEQUENTIAL inserts a fixed delay before every resolution, which keeps
    bursts under strict per-key provider limits. PARALLEL fans out with a
    bounded number of concurrent resolutions.
    """

    PARALLEL = "parallel"
    SEQUENTIAL = "sequential"


def parse_draft(draft: DraftInput) -> Itinerary:
    """Build an Itinerary from generator output.

    Accepts an Itinerary, its dict form, or raw model text (code fences are
    stripped). Malformed days and activities are skipped, not raised.
    """
    if isinstance(draft, Itinerary):
        return draft.model_copy(deep=True)

    data: Any = parse_model_json(draft) if isinstance(draft, str) else draft
    if not isinstance(data, dict):
        logger.error(f"[DRAFT] Unusable draft of type {type(data).__name__}")
        return Itinerary()

    raw_days = data.get("itinerary")
    if not isinstance(raw_days, list):
        if raw_days is not None:
            logger.warning(f"[DRAFT] Ignoring non-list itinerary of type {type(raw_days).__name__}")
        raw_days = []

    days: list[DayPlan] = []
    for index, raw_day in enumerate(raw_days, start=1):
        if not isinstance(raw_day, dict):
            logger.warning(f"[DRAFT] Skipping malformed day #{index}")
            continue
        raw_activities = raw_day.get("activities")
        if not isinstance(raw_activities, list):
            raw_activities = []
        activities = []
        for raw in raw_activities:
            if not isinstance(raw, dict):
                logger.warning(f"[DRAFT] Skipping malformed activity on day {index}: {raw!r}")
                continue
            activity = _build_activity(raw, index)
            if activity is not None:
                activities.append(activity)
        day_number = raw_day.get("day")
        if not isinstance(day_number, int) or isinstance(day_number, bool) or day_number < 1:
            day_number = index
        date = raw_day.get("date")
        days.append(DayPlan(
            day=day_number,
            date=str(date) if date else None,
            activities=activities,
        ))

    return Itinerary(
        trip_title=_text_or_none(data.get("trip_title")),
        itinerary=days,
        cover_image=_text_or_none(data.get("cover_image")),
    )


def _text_or_none(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _build_activity(raw: dict, day_index: int) -> Optional[Activity]:
    """Validate one drafted activity, dropping only the fields that fail."""
    try:
        return Activity.model_validate(raw)
    except ValidationError as e:
        bad_fields = {err["loc"][0] for err in e.errors() if err["loc"]}
    logger.warning(f"[DRAFT] Dropping invalid fields {sorted(map(str, bad_fields))} on day {day_index}")
    cleaned = {k: v for k, v in raw.items() if k not in bad_fields}
    try:
        return Activity.model_validate(cleaned)
    except ValidationError as e:
        logger.warning(f"[DRAFT] Skipping invalid activity on day {day_index}: {e.error_count()} errors")
        return None


class ItineraryPostProcessor:
    """Enriches drafted itineraries with resolved places and travel info."""

    def __init__(
        self,
        resolver: PlaceResolver,
        route_annotator: RouteAnnotator,
        rules: MatchRules = DEFAULT_RULES,
        concurrency_mode: ConcurrencyMode = ConcurrencyMode.SEQUENTIAL,
        delay_seconds: float = 0.2,
        max_parallel: int = 5,
    ) -> None:
        self._resolver = resolver
        self._routes = route_annotator
        self._rules = rules
        self._mode = ConcurrencyMode(concurrency_mode)
        self._delay = delay_seconds
        self._max_parallel = max(1, max_parallel)

    @property
    def concurrency_mode(self) -> ConcurrencyMode:
        return self._mode

    async def process(
        self,
        draft: DraftInput,
        destination: str,
        previous: Optional[Itinerary] = None,
    ) -> Itinerary:
        """Enrich ``draft`` for a trip to ``destination``.

        Args:
            draft: Generator output (Itinerary, dict or raw JSON text).
            destination: City/region context for place search and booking links.
            previous: The itinerary being modified, if any. Its already-enriched
                activities are reused by name instead of resolving again.

        Returns:
            A new, enriched Itinerary.
        """
        itinerary = parse_draft(draft)
        reusable = self._reusable_places(previous)
        seen_names: set[str] = set()
        seen_display: set[str] = set()

        for day in itinerary.itinerary:
            day.activities = self._deduplicate(day.activities, seen_names)
            for activity in day.activities:
                self._correct_category(activity)
            await self._enrich_day(day, destination, reusable)
            day.activities = self._deduplicate_resolved(day.activities, seen_names, seen_display)

        if self._mode is ConcurrencyMode.PARALLEL:
            await asyncio.gather(*(self._annotate_routes(day) for day in itinerary.itinerary))
        else:
            for day in itinerary.itinerary:
                await self._annotate_routes(day)

        total = sum(len(day.activities) for day in itinerary.itinerary)
        logger.info(f"[ITINERARY] Enriched {len(itinerary.itinerary)} days / {total} activities for {destination}")
        return itinerary

    # ── Dedup & correction ────────────────────────────────────────────

    def _deduplicate(self, activities: list[Activity], seen: set[str]) -> list[Activity]:
        unique = []
        for activity in activities:
            name = activity.place_name.strip()
            if not name or self._rules.is_structural(name):
                unique.append(activity)
                continue
            if name in seen:
                logger.info(f"[ITINERARY] Dropping repeated venue '{name}'")
                continue
            seen.add(name)
            unique.append(activity)
        return unique

    def _deduplicate_resolved(
        self, activities: list[Activity], seen_names: set[str], seen_display: set[str]
    ) -> list[Activity]:
        """Second pass on canonical names: two drafted spellings can resolve to one venue."""
        unique = []
        for activity in activities:
            name = activity.place_name.strip()
            if not name or self._rules.is_structural(name):
                unique.append(activity)
                continue
            if name in seen_display:
                logger.info(f"[ITINERARY] Dropping venue resolved twice: '{name}'")
                continue
            seen_display.add(name)
            seen_names.add(name)
            unique.append(activity)
        return unique

    def _correct_category(self, activity: Activity) -> None:
        if activity.category is not ActivityCategory.MEAL:
            return
        if not self._rules.is_beauty_service(activity.place_name, activity.description):
            return
        logger.info(f"[ITINERARY] Recategorising '{activity.place_name}' from meal to sightseeing")
        activity.category = ActivityCategory.SIGHTSEEING
        activity.description = self._rules.scrub_food_language(activity.description, activity.place_name)

    # ── Enrichment ────────────────────────────────────────────────────

    async def _enrich_day(
        self, day: DayPlan, destination: str, reusable: dict[str, ResolvedPlace]
    ) -> None:
        targets = [
            a for a in day.activities
            if a.place_name.strip() and not self._rules.skips_resolution(a.place_name)
        ]
        if self._mode is ConcurrencyMode.PARALLEL:
            semaphore = asyncio.Semaphore(self._max_parallel)

            async def enrich_with_limit(activity: Activity) -> None:
                async with semaphore:
                    await self._enrich_activity(activity, destination, reusable)

            await asyncio.gather(*(enrich_with_limit(a) for a in targets))
        else:
            for activity in targets:
                if self._delay > 0:
                    await asyncio.sleep(self._delay)
                await self._enrich_activity(activity, destination, reusable)

    async def _enrich_activity(
        self, activity: Activity, destination: str, reusable: dict[str, ResolvedPlace]
    ) -> None:
        drafted_name = activity.place_name.strip()
        place = reusable.get(drafted_name)
        if place is None:
            try:
                place = await self._resolver.resolve(drafted_name, destination)
            except Exception as e:
                logger.error(f"[ITINERARY] Resolution failed for '{drafted_name}': {type(e).__name__}: {e}")
                return
        activity.merge_place(place)
        activity.booking_url = self._booking_url(activity, destination, drafted_name)

    def _booking_url(self, activity: Activity, destination: str, drafted_name: str) -> Optional[str]:
        """Website, then map link, then a web search; never for parks."""
        if not activity.is_booking_required:
            return None
        if not self._rules.is_bookable(activity.category_tags):
            return None
        if activity.website_link:
            return activity.website_link
        if activity.map_link:
            return activity.map_link
        return self._rules.booking_search_url(destination, drafted_name)

    def _reusable_places(self, previous: Optional[Itinerary]) -> dict[str, ResolvedPlace]:
        if previous is None:
            return {}
        places = {}
        for day in previous.itinerary:
            for activity in day.activities:
                if activity.place_name and activity.image_url:
                    places[activity.place_name.strip()] = activity.as_resolved_place()
        return places

    # ── Routes ────────────────────────────────────────────────────────

    async def _annotate_routes(self, day: DayPlan) -> None:
        for prev, curr in zip(day.activities, day.activities[1:]):
            if not prev.place_id or not curr.place_id:
                continue
            info = await self._routes.annotate(prev.place_id, curr.place_id)
            if info:
                curr.travel_info = info
