"""Persistent place cache."""

from .index import TrigramIndex
from .service import InMemoryPlaceCacheStore, PlaceCacheStore, RedisPlaceCacheStore

__all__ = [
    "InMemoryPlaceCacheStore",
    "PlaceCacheStore",
    "RedisPlaceCacheStore",
    "TrigramIndex",
]
