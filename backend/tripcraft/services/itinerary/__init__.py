"""Itinerary post-processing service."""

from .service import ConcurrencyMode, ItineraryPostProcessor, parse_draft

__all__ = ["ConcurrencyMode", "ItineraryPostProcessor", "parse_draft"]
