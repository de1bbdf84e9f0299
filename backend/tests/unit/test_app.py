"""Unit tests for settings, pipeline wiring and the HTTP app."""

import httpx
import pytest

from tripcraft.config import Settings
from tripcraft.main import app
from tripcraft.pipeline import build_pipeline
from tripcraft.rules import FALLBACK_IMAGES
from tripcraft.services.itinerary import ConcurrencyMode
from tripcraft.services.place_cache import InMemoryPlaceCacheStore, RedisPlaceCacheStore


class TestSettings:
    """Tests for Settings.from_env."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("ENRICHMENT_MODE", "RESOLUTION_CACHE_SIZE", "IMAGE_SWEEP_WEEKDAY"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings.from_env()
        assert settings.enrichment_mode == "sequential"
        assert settings.resolution_cache_size == 1000
        assert settings.image_sweep_weekday == 6

    def test_overrides_and_bad_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENRICHMENT_MODE", "parallel")
        monkeypatch.setenv("RESOLUTION_CACHE_SIZE", "lots")
        monkeypatch.setenv("IMAGE_SWEEP_ENABLED", "false")
        settings = Settings.from_env()
        assert settings.enrichment_mode == "parallel"
        assert settings.resolution_cache_size == 1000
        assert settings.image_sweep_enabled is False


class TestBuildPipeline:
    """Tests for build_pipeline."""

    def test_defaults_to_redis_store(self) -> None:
        pipeline = build_pipeline(Settings())
        assert isinstance(pipeline.store, RedisPlaceCacheStore)
        assert pipeline.post_processor.concurrency_mode is ConcurrencyMode.SEQUENTIAL

    def test_unknown_mode_falls_back_to_sequential(self) -> None:
        pipeline = build_pipeline(Settings(enrichment_mode="turbo"), store=InMemoryPlaceCacheStore())
        assert pipeline.post_processor.concurrency_mode is ConcurrencyMode.SEQUENTIAL

    def test_parallel_mode_and_cache_size(self) -> None:
        pipeline = build_pipeline(
            Settings(enrichment_mode="Parallel", resolution_cache_size=10),
            store=InMemoryPlaceCacheStore(),
        )
        assert pipeline.post_processor.concurrency_mode is ConcurrencyMode.PARALLEL
        assert pipeline.resolver.resolution_cache.max_size == 10


class TestApp:
    """Tests for the HTTP endpoints."""

    def setup_method(self) -> None:
        app.state.pipeline = build_pipeline(Settings(), store=InMemoryPlaceCacheStore())

    @pytest.mark.asyncio
    async def test_health(self) -> None:
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_place_image_falls_back_without_credentials(self) -> None:
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/place-image", params={"query": "경복궁"})
        assert response.status_code == 302
        assert response.headers["location"] == FALLBACK_IMAGES["default"]
        assert "no-store" in response.headers["cache-control"]

    @pytest.mark.asyncio
    async def test_place_image_without_query(self) -> None:
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/place-image")
        assert response.status_code == 302
        assert response.headers["location"] == FALLBACK_IMAGES["default"]
