"""TripCraft data models."""

from .core import (
    Activity,
    ActivityCategory,
    Coordinates,
    DayPlan,
    Itinerary,
    PlaceQuery,
    ResolvedPlace,
    TransportMode,
    TravelInfo,
)
from .errors import AppError, ErrorCode

__all__ = [
    "Activity",
    "ActivityCategory",
    "AppError",
    "Coordinates",
    "DayPlan",
    "ErrorCode",
    "Itinerary",
    "PlaceQuery",
    "ResolvedPlace",
    "TransportMode",
    "TravelInfo",
]
