"""API layer for TripCraft."""

from .routes import router

__all__ = ["router"]
