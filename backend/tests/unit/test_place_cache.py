"""Unit tests for the persistent place cache (in-memory and Redis stores, trigram index)."""

import pytest

from tests.fakes import FakeRedis
from tripcraft.models import ResolvedPlace
from tripcraft.services.place_cache import (
    InMemoryPlaceCacheStore,
    RedisPlaceCacheStore,
    TrigramIndex,
)


def _place(identifier: str, name: str, keywords: str = "", image_url: str | None = None) -> ResolvedPlace:
    return ResolvedPlace(
        identifier=identifier,
        display_name=name,
        search_keywords=keywords,
        image_url=image_url,
    )


class TestTrigramIndex:
    """Tests for TrigramIndex."""

    def test_candidates_contain_matching_ids(self) -> None:
        index = TrigramIndex()
        index.add("a", "경복궁|Gyeongbokgung Palace")
        index.add("b", "창덕궁|Changdeokgung")
        assert index.candidates("gyeongbok") == {"a"}

    def test_short_query_is_not_indexed(self) -> None:
        index = TrigramIndex()
        index.add("a", "경복궁")
        assert index.candidates("궁") is None

    def test_readd_replaces_postings(self) -> None:
        index = TrigramIndex()
        index.add("a", "old name")
        index.add("a", "new name")
        assert index.candidates("old") == set()
        assert index.candidates("new") == {"a"}


class TestInMemoryPlaceCacheStore:
    """Tests for InMemoryPlaceCacheStore lookups and writes."""

    def setup_method(self) -> None:
        self.store = InMemoryPlaceCacheStore([
            _place("p1", "경복궁", "경복궁|Gyeongbokgung|서울 종로구 사직로 161"),
            _place("p2", "명동교자 본점", "명동 교자|명동교자 본점"),
        ])

    @pytest.mark.asyncio
    async def test_exact_match(self) -> None:
        place = await self.store.find("경복궁")
        assert place is not None
        assert place.identifier == "p1"

    @pytest.mark.asyncio
    async def test_exact_match_ignores_case_and_spacing(self) -> None:
        place = await self.store.find("  명동교자   본점 ")
        assert place is not None
        assert place.identifier == "p2"

    @pytest.mark.asyncio
    async def test_fuzzy_containment_on_keywords(self) -> None:
        place = await self.store.find("gyeongbokgung")
        assert place is not None
        assert place.identifier == "p1"

    @pytest.mark.asyncio
    async def test_miss(self) -> None:
        assert await self.store.find("남산타워") is None
        assert await self.store.find("") is None

    @pytest.mark.asyncio
    async def test_upsert_is_idempotent_on_identifier(self) -> None:
        place = _place("p3", "남산서울타워")
        await self.store.upsert(place)
        await self.store.upsert(place)
        assert len(self.store) == 3
        assert await self.store.get("p3") == place.model_copy(update={"search_keywords": "남산서울타워"})

    @pytest.mark.asyncio
    async def test_upsert_without_identifier_raises(self) -> None:
        with pytest.raises(ValueError):
            await self.store.upsert(ResolvedPlace(display_name="no id"))

    @pytest.mark.asyncio
    async def test_update_image(self) -> None:
        assert await self.store.update_image("p1", "https://example.com/new.jpg", "경복궁") is True
        place = await self.store.get("p1")
        assert place.image_url == "https://example.com/new.jpg"
        assert place.image_reference == "경복궁"

    @pytest.mark.asyncio
    async def test_update_image_unknown_identifier(self) -> None:
        assert await self.store.update_image("missing", "https://example.com/x.jpg") is False

    @pytest.mark.asyncio
    async def test_scan_with_images(self) -> None:
        await self.store.update_image("p2", "https://example.com/gyoza.jpg")
        places = await self.store.scan_with_images()
        assert [p.identifier for p in places] == ["p2"]


class TestRedisPlaceCacheStoreKeys:
    """Tests for Redis key layout."""

    def test_place_key(self) -> None:
        assert RedisPlaceCacheStore.build_place_key("ChIJ123") == "place:ChIJ123"

    def test_name_key_is_normalized(self) -> None:
        assert RedisPlaceCacheStore.build_name_key("  Namsan  Tower ") == "place_name:namsan tower"

    def test_trigram_keys(self) -> None:
        assert RedisPlaceCacheStore.build_trigram_key("abc") == "place_tri:abc"
        assert RedisPlaceCacheStore.build_trigram_members_key("p1") == "place_tris:p1"


class TestRedisPlaceCacheStore:
    """Tests for RedisPlaceCacheStore against an in-memory Redis client."""

    def setup_method(self) -> None:
        self.redis = FakeRedis()
        self.store = RedisPlaceCacheStore(client=self.redis)

    @pytest.mark.asyncio
    async def test_upsert_writes_record_and_indexes(self) -> None:
        await self.store.upsert(_place("p1", "경복궁", "경복궁|Gyeongbokgung"))
        assert "place:p1" in self.redis.strings
        assert self.redis.strings["place_name:경복궁"] == "p1"
        assert self.redis.sets["places:all"] == {"p1"}
        assert "p1" in self.redis.sets["place_tri:gye"]

    @pytest.mark.asyncio
    async def test_find_exact_name(self) -> None:
        await self.store.upsert(_place("p1", "경복궁"))
        place = await self.store.find(" 경복궁 ")
        assert place.identifier == "p1"

    @pytest.mark.asyncio
    async def test_find_by_keyword_containment(self) -> None:
        await self.store.upsert(_place("p1", "경복궁", "경복궁|Gyeongbokgung Palace"))
        await self.store.upsert(_place("p2", "창덕궁", "창덕궁|Changdeokgung Palace"))
        place = await self.store.find("gyeongbokgung")
        assert place.identifier == "p1"
        assert await self.store.find("deoksugung") is None

    @pytest.mark.asyncio
    async def test_find_short_query_scans_all(self) -> None:
        await self.store.upsert(_place("p1", "N서울타워", "N서울타워|남산"))
        place = await self.store.find("남산")
        assert place.identifier == "p1"

    @pytest.mark.asyncio
    async def test_reupsert_removes_stale_trigrams(self) -> None:
        await self.store.upsert(_place("p1", "경복궁", "경복궁|old palace"))
        await self.store.upsert(_place("p1", "경복궁", "경복궁|new palace"))
        assert "place_tri:old" not in self.redis.sets
        assert self.redis.sets["place_tri:new"] == {"p1"}
        assert await self.store.find("old palace") is None
        assert (await self.store.find("new palace")).identifier == "p1"

    @pytest.mark.asyncio
    async def test_rename_drops_old_name_key(self) -> None:
        await self.store.upsert(_place("p1", "경복꿍", "경복꿍"))
        await self.store.upsert(_place("p1", "경복궁", "경복궁"))
        assert "place_name:경복꿍" not in self.redis.strings
        assert self.redis.strings["place_name:경복궁"] == "p1"
        assert await self.store.find("경복꿍") is None

    @pytest.mark.asyncio
    async def test_update_image(self) -> None:
        await self.store.upsert(_place("p1", "경복궁"))
        assert await self.store.update_image("p1", "https://example.com/p.jpg", "경복궁") is True
        place = await self.store.get("p1")
        assert place.image_url == "https://example.com/p.jpg"
        assert place.image_reference == "경복궁"
        assert await self.store.update_image("missing", "https://example.com/x.jpg") is False

    @pytest.mark.asyncio
    async def test_scan_all_and_scan_with_images(self) -> None:
        for i in range(105):
            await self.store.upsert(_place(f"p{i:03d}", f"장소 {i:03d}"))
        await self.store.update_image("p007", "https://example.com/7.jpg")
        assert len(await self.store.scan_all()) == 105
        assert [p.identifier for p in await self.store.scan_with_images()] == ["p007"]

    @pytest.mark.asyncio
    async def test_unreadable_record_is_skipped(self) -> None:
        await self.store.upsert(_place("p1", "경복궁"))
        self.redis.strings["place:p1"] = "{not json"
        assert await self.store.get("p1") is None

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        await self.store.close()
        assert self.redis.closed is True
