"""Directions adapter and route annotator."""

from .service import (
    DirectionsResult,
    DirectionsService,
    GoogleDirectionsService,
    MODE_PRIORITY,
    RouteAnnotator,
)

__all__ = [
    "DirectionsResult",
    "DirectionsService",
    "GoogleDirectionsService",
    "MODE_PRIORITY",
    "RouteAnnotator",
]
