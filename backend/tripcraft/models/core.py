"""Core data models for TripCraft.

This module contains the Pydantic models used throughout the enrichment
pipeline for representing resolved places, itinerary activities, day plans
and the travel hops between them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class TransportMode(str, Enum):
    """Transport modes tried by the route annotator, in priority order."""

    TRANSIT = "transit"
    DRIVING = "driving"
    WALKING = "walking"

    @property
    def label(self) -> str:
        """Localized label shown next to the travel time."""
        return _MODE_LABELS[self]


_MODE_LABELS = {
    TransportMode.TRANSIT: "대중교통",
    TransportMode.DRIVING: "택시/차량",
    TransportMode.WALKING: "도보",
}


class ActivityCategory(str, Enum):
    """Itinerary activity categories.

    Drafts come from the generator with Korean labels (관광/식사/숙소/이동);
    those are normalised onto these values when an Activity is built.
    """

    SIGHTSEEING = "sightseeing"
    MEAL = "meal"
    LODGING = "lodging"
    TRANSIT = "transit"


CATEGORY_ALIASES = {
    "관광": ActivityCategory.SIGHTSEEING,
    "식사": ActivityCategory.MEAL,
    "숙소": ActivityCategory.LODGING,
    "이동": ActivityCategory.TRANSIT,
}


@dataclass
class PlaceQuery:
    """Raw place name plus optional city/region context. Never persisted."""

    raw_name: str
    city_context: str = ""

    def to_search_text(self) -> str:
        """Context first: leading terms carry more weight in text search."""
        return f"{self.city_context} {self.raw_name}".strip()


class Coordinates(BaseModel):
    """Geographic coordinates with validation."""

    latitude: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in degrees")


class ResolvedPlace(BaseModel):
    """Canonical enrichment output for a place referenced by name.

    A place with an ``identifier`` is keyed by it in the persistent cache.
    A place without one is a lookup miss: returned as a best-effort fallback
    and never persisted.
    """

    identifier: Optional[str] = Field(None, description="Opaque external place id")
    display_name: str = Field(..., description="Canonical place name")
    rating: Optional[float] = Field(None, ge=0, le=5)
    rating_count: int = Field(default=0, ge=0)
    map_link: Optional[str] = None
    website_link: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    category_tags: set[str] = Field(default_factory=set)
    image_url: Optional[str] = None
    image_reference: Optional[str] = None
    search_keywords: str = Field(
        default="", description="Pipe-joined name variants used for fuzzy re-lookup"
    )

    @field_validator("rating_count", mode="before")
    @classmethod
    def _none_count_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("category_tags", mode="before")
    @classmethod
    def _tags_from_any_iterable(cls, value: Any) -> Any:
        if value is None:
            return set()
        return value

    @field_serializer("category_tags")
    def _serialize_tags(self, tags: set[str]) -> list[str]:
        return sorted(tags)

    @property
    def is_resolved(self) -> bool:
        return bool(self.identifier)

    def has_any_tag(self, tags: frozenset[str] | set[str]) -> bool:
        return not self.category_tags.isdisjoint(tags)

    def to_record(self) -> dict[str, Any]:
        """JSON-safe dict for the persistent store."""
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ResolvedPlace":
        return cls.model_validate(record)


class TravelInfo(BaseModel):
    """The hop from the previous activity to this one."""

    duration: str = Field(..., description="Human-readable duration, e.g. '25분'")
    distance: str = Field(..., description="Human-readable distance, e.g. '3.2 km'")
    mode: TransportMode
    mode_label: str


class Activity(BaseModel):
    """One itinerary entry.

    Built from the generator's draft shape (``place_name``, ``type``,
    ``activity_description`` ...), then mutated in place by the
    post-processor to merge in resolved place fields and travel info.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    time: Optional[str] = None
    place_name: str = ""
    category: ActivityCategory = Field(ActivityCategory.SIGHTSEEING, alias="type")
    description: str = Field("", alias="activity_description")
    is_booking_required: bool = False
    booking_url: Optional[str] = None
    travel_info: Optional[TravelInfo] = None

    # Merged from ResolvedPlace
    place_id: Optional[str] = None
    rating: Optional[float] = None
    rating_count: int = 0
    map_link: Optional[str] = None
    website_link: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    category_tags: set[str] = Field(default_factory=set)
    image_url: Optional[str] = None
    image_reference: Optional[str] = None

    @field_validator("place_name", "description", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("time", mode="before")
    @classmethod
    def _time_as_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Any) -> Any:
        if isinstance(value, ActivityCategory):
            return value
        if not value:
            return ActivityCategory.SIGHTSEEING
        text = str(value).strip()
        if text in CATEGORY_ALIASES:
            return CATEGORY_ALIASES[text]
        try:
            return ActivityCategory(text.lower())
        except ValueError:
            return ActivityCategory.SIGHTSEEING

    @field_validator("rating_count", mode="before")
    @classmethod
    def _none_count_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_serializer("category_tags")
    def _serialize_tags(self, tags: set[str]) -> list[str]:
        return sorted(tags)

    def merge_place(self, place: ResolvedPlace) -> None:
        """Copy resolved fields onto this activity.

        The resolver's canonical name replaces the drafted one when present,
        which corrects minor misspellings from generation.
        """
        self.place_id = place.identifier
        self.rating = place.rating
        self.rating_count = place.rating_count
        self.map_link = place.map_link
        self.website_link = place.website_link
        self.coordinates = place.coordinates
        self.category_tags = set(place.category_tags)
        self.image_url = place.image_url
        self.image_reference = place.image_reference
        if place.display_name:
            self.place_name = place.display_name

    def as_resolved_place(self) -> ResolvedPlace:
        """Rebuild the resolved view of an already-enriched activity."""
        return ResolvedPlace(
            identifier=self.place_id,
            display_name=self.place_name,
            rating=self.rating,
            rating_count=self.rating_count,
            map_link=self.map_link,
            website_link=self.website_link,
            coordinates=self.coordinates,
            category_tags=set(self.category_tags),
            image_url=self.image_url,
            image_reference=self.image_reference,
        )


class DayPlan(BaseModel):
    """Ordered activities for one calendar date.

    Order is chronological and geographic; route annotation runs between
    consecutive entries.
    """

    model_config = ConfigDict(extra="ignore")

    day: int = Field(..., ge=1, description="Day number (1, 2, 3...)")
    date: Optional[str] = Field(None, description="Calendar date, YYYY-MM-DD")
    activities: list[Activity] = Field(default_factory=list)


class Itinerary(BaseModel):
    """A complete trip: days of activities."""

    model_config = ConfigDict(extra="ignore")

    trip_title: Optional[str] = None
    itinerary: list[DayPlan] = Field(default_factory=list)
    cover_image: Optional[str] = None
