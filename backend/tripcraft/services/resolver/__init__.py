"""Place resolver."""

from .service import PlaceResolver

__all__ = ["PlaceResolver"]
