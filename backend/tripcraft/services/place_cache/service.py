"""Persistent place cache.

A keyed store of previously resolved places: one record per external place
identifier (upserts are idempotent on it), looked up by exact display name or
by fuzzy containment against the pipe-joined ``search_keywords``.

Two implementations share the interface:
- ``RedisPlaceCacheStore``: durable store on Redis with a trigram index
- ``InMemoryPlaceCacheStore``: process-local store for tests and local runs
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

import redis.asyncio as redis

from tripcraft.models import ResolvedPlace
from tripcraft.utils.text import normalize, trigrams

from .index import TrigramIndex, keyword_text, matches_exact, matches_fuzzy

logger = logging.getLogger(__name__)


def _pick_match(places: Iterable[ResolvedPlace], name: str) -> Optional[ResolvedPlace]:
    """Exact display-name hits win over keyword containment hits."""
    fuzzy: list[ResolvedPlace] = []
    for place in places:
        if matches_exact(place, name):
            return place
        if matches_fuzzy(place, name):
            fuzzy.append(place)
    if not fuzzy:
        return None
    return min(fuzzy, key=lambda p: p.identifier or "")


class PlaceCacheStore(ABC):
    """Abstract persistent place cache."""

    @abstractmethod
    async def find(self, name: str) -> Optional[ResolvedPlace]:
        """Look up by exact display name or keyword containment.

        Args:
            name: The raw place name as drafted.

        Returns:
            The cached place, or None on miss.
        """
        pass

    @abstractmethod
    async def get(self, identifier: str) -> Optional[ResolvedPlace]:
        pass

    @abstractmethod
    async def upsert(self, place: ResolvedPlace) -> None:
        """Insert or replace the record keyed by ``place.identifier``.

        Raises:
            ValueError: If the place has no identifier (misses are never persisted).
        """
        pass

    @abstractmethod
    async def update_image(
        self, identifier: str, image_url: str, image_reference: Optional[str] = None
    ) -> bool:
        """Replace the image of a cached place.

        Returns:
            True if the record existed and was updated.
        """
        pass

    @abstractmethod
    async def scan_all(self) -> list[ResolvedPlace]:
        pass

    async def scan_with_images(self) -> list[ResolvedPlace]:
        """All cached places that carry an image URL."""
        return [p for p in await self.scan_all() if p.image_url]

    async def close(self) -> None:
        pass

    @staticmethod
    def _require_identifier(place: ResolvedPlace) -> str:
        if not place.identifier:
            raise ValueError(f"Cannot persist unresolved place: {place.display_name}")
        return place.identifier

    @staticmethod
    def _with_keywords(place: ResolvedPlace) -> ResolvedPlace:
        if place.search_keywords:
            return place
        return place.model_copy(update={"search_keywords": place.display_name})


class InMemoryPlaceCacheStore(PlaceCacheStore):
    """Dictionary-backed store with the same lookup semantics as Redis."""

    def __init__(self, places: Optional[Iterable[ResolvedPlace]] = None) -> None:
        self._records: dict[str, dict] = {}
        self._index = TrigramIndex()
        for place in places or ():
            self._put(place)

    def __len__(self) -> int:
        return len(self._records)

    def _put(self, place: ResolvedPlace) -> None:
        identifier = self._require_identifier(place)
        place = self._with_keywords(place)
        self._records[identifier] = place.to_record()
        self._index.add(identifier, keyword_text(place))

    async def find(self, name: str) -> Optional[ResolvedPlace]:
        if not normalize(name):
            return None
        candidate_ids = self._index.candidates(name)
        if candidate_ids is None:
            candidate_ids = set(self._records)
        exact = [i for i, r in self._records.items() if normalize(r["display_name"]) == normalize(name)]
        ids = sorted(set(exact) | candidate_ids)
        return _pick_match((ResolvedPlace.from_record(self._records[i]) for i in ids), name)

    async def get(self, identifier: str) -> Optional[ResolvedPlace]:
        record = self._records.get(identifier)
        return ResolvedPlace.from_record(record) if record else None

    async def upsert(self, place: ResolvedPlace) -> None:
        self._put(place)

    async def update_image(
        self, identifier: str, image_url: str, image_reference: Optional[str] = None
    ) -> bool:
        record = self._records.get(identifier)
        if record is None:
            return False
        record["image_url"] = image_url
        record["image_reference"] = image_reference
        return True

    async def scan_all(self) -> list[ResolvedPlace]:
        return [ResolvedPlace.from_record(r) for r in self._records.values()]


class RedisPlaceCacheStore(PlaceCacheStore):
    """Redis-backed place cache.

    Key layout:
        ``place:{id}``        JSON record
        ``place_name:{name}`` id by normalised display name
        ``place_tri:{gram}``  set of ids whose keywords contain the trigram
        ``place_tris:{id}``   trigrams currently indexed for the id
        ``places:all``        set of every cached id
    """

    ALL_KEY = "places:all"

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        client: redis.Redis | None = None,
    ) -> None:
        self._redis_url = redis_url
        self._client: redis.Redis | None = client

    async def connect(self) -> None:
        """Establish connection to Redis."""
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _ensure_connected(self) -> redis.Redis:
        if self._client is None:
            await self.connect()
        return self._client  # type: ignore

    @staticmethod
    def build_place_key(identifier: str) -> str:
        """
        Example:
            >>> RedisPlaceCacheStore.build_place_key("ChIJ123")
            'place:ChIJ123'
        """
        return f"place:{identifier}"

    @staticmethod
    def build_name_key(name: str) -> str:
        return f"place_name:{normalize(name)}"

    @staticmethod
    def build_trigram_key(gram: str) -> str:
        return f"place_tri:{gram}"

    @staticmethod
    def build_trigram_members_key(identifier: str) -> str:
        return f"place_tris:{identifier}"

    async def _load(self, client: redis.Redis, identifiers: Iterable[str]) -> list[ResolvedPlace]:
        ids = list(identifiers)
        if not ids:
            return []
        raw_records = await client.mget([self.build_place_key(i) for i in ids])
        places = []
        for raw in raw_records:
            if raw is None:
                continue
            try:
                places.append(ResolvedPlace.from_record(json.loads(raw)))
            except ValueError as e:
                logger.warning(f"[CACHE] Skipping unreadable place record: {e}")
        return places

    async def find(self, name: str) -> Optional[ResolvedPlace]:
        if not normalize(name):
            return None
        client = await self._ensure_connected()

        exact_id = await client.get(self.build_name_key(name))
        if exact_id:
            place = await self.get(exact_id)
            if place is not None:
                return place

        grams = trigrams(name)
        if grams:
            ids = await client.sinter([self.build_trigram_key(g) for g in sorted(grams)])
        else:
            ids = await client.smembers(self.ALL_KEY)
        return _pick_match(await self._load(client, sorted(ids)), name)

    async def get(self, identifier: str) -> Optional[ResolvedPlace]:
        client = await self._ensure_connected()
        places = await self._load(client, [identifier])
        return places[0] if places else None

    async def upsert(self, place: ResolvedPlace) -> None:
        identifier = self._require_identifier(place)
        place = self._with_keywords(place)
        client = await self._ensure_connected()

        members_key = self.build_trigram_members_key(identifier)
        old_grams = await client.smembers(members_key)
        new_grams = trigrams(keyword_text(place))
        previous = await self.get(identifier)

        async with client.pipeline(transaction=False) as pipe:
            if previous is not None and normalize(previous.display_name) != normalize(place.display_name):
                pipe.delete(self.build_name_key(previous.display_name))
            for gram in old_grams - new_grams:
                pipe.srem(self.build_trigram_key(gram), identifier)
            for gram in new_grams:
                pipe.sadd(self.build_trigram_key(gram), identifier)
            pipe.delete(members_key)
            if new_grams:
                pipe.sadd(members_key, *new_grams)
            pipe.set(self.build_place_key(identifier), json.dumps(place.to_record(), ensure_ascii=False))
            pipe.set(self.build_name_key(place.display_name), identifier)
            pipe.sadd(self.ALL_KEY, identifier)
            await pipe.execute()

    async def update_image(
        self, identifier: str, image_url: str, image_reference: Optional[str] = None
    ) -> bool:
        place = await self.get(identifier)
        if place is None:
            return False
        client = await self._ensure_connected()
        place.image_url = image_url
        place.image_reference = image_reference
        await client.set(self.build_place_key(identifier), json.dumps(place.to_record(), ensure_ascii=False))
        return True

    async def scan_all(self) -> list[ResolvedPlace]:
        client = await self._ensure_connected()
        ids = sorted(await client.smembers(self.ALL_KEY))
        places: list[ResolvedPlace] = []
        for start in range(0, len(ids), 100):
            places.extend(await self._load(client, ids[start:start + 100]))
        return places
