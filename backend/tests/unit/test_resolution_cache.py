"""Unit tests for the in-process resolution cache."""

import asyncio

import pytest

from tripcraft.utils.cache import ResolutionCache


class TestResolutionCache:
    """Tests for ResolutionCache."""

    def test_invalid_size(self) -> None:
        with pytest.raises(ValueError):
            ResolutionCache(max_size=0)

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_call(self) -> None:
        cache: ResolutionCache[str] = ResolutionCache()
        calls = 0

        async def factory() -> str:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return "value"

        results = await asyncio.gather(*(cache.get_or_create("k", factory) for _ in range(10)))
        assert results == ["value"] * 10
        assert calls == 1
        assert "k" in cache

    @pytest.mark.asyncio
    async def test_rejected_results_are_evicted(self) -> None:
        cache: ResolutionCache[str] = ResolutionCache()

        async def factory() -> str:
            return "miss"

        result = await cache.get_or_create("k", factory, keep=lambda v: v != "miss")
        assert result == "miss"
        assert "k" not in cache

    @pytest.mark.asyncio
    async def test_failures_are_evicted_and_propagated(self) -> None:
        cache: ResolutionCache[str] = ResolutionCache()

        async def factory() -> str:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await cache.get_or_create("k", factory)
        assert "k" not in cache

    @pytest.mark.asyncio
    async def test_clears_everything_when_full(self) -> None:
        cache: ResolutionCache[int] = ResolutionCache(max_size=2)

        async def one() -> int:
            return 1

        await cache.get_or_create("a", one)
        await cache.get_or_create("b", one)
        assert len(cache) == 2
        await cache.get_or_create("c", one)
        assert len(cache) == 1
        assert "c" in cache

    @pytest.mark.asyncio
    async def test_discard_only_matching_future(self) -> None:
        cache: ResolutionCache[int] = ResolutionCache()
        loop = asyncio.get_running_loop()
        first = loop.create_future()
        second = loop.create_future()
        cache.set("k", second)
        cache.discard("k", first)
        assert cache.get("k") is second
        cache.discard("k")
        assert "k" not in cache
