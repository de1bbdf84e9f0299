"""Weekly image health sweep.

Cached image URLs rot: blog hosts expire hotlinks and CDNs rotate paths.
The sweep checks every cached image with a HEAD request and, for each broken
one, re-runs the tiered image resolution on the place's display name. A
replacement is written only when it is itself reachable; entries are never
deleted.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import httpx

from tripcraft.services.image_search import ImageResolver
from tripcraft.services.place_cache import PlaceCacheStore

logger = logging.getLogger(__name__)


class LinkChecker:
    """Reachability check for image URLs (HEAD, redirects followed, 2xx only)."""

    def __init__(self, timeout: float = 5.0, client: httpx.AsyncClient | None = None) -> None:
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def is_reachable(self, url: str | None) -> bool:
        if not url:
            return False
        try:
            response = await self._get_client().head(url, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.debug(f"[SWEEP] HEAD {url[:60]} failed: {type(e).__name__}")
            return False
        return 200 <= response.status_code < 300


@dataclass
class SweepReport:
    """Outcome counts of one sweep."""
    checked: int = 0
    broken: int = 0
    fixed: int = 0
    failed: int = 0


class ImageHealthSweep:
    """Checks cached images and repairs broken ones, one place at a time."""

    def __init__(
        self,
        store: PlaceCacheStore,
        image_resolver: ImageResolver,
        checker: LinkChecker,
        delay_seconds: float = 0.1,
    ) -> None:
        self._store = store
        self._images = image_resolver
        self._checker = checker
        self._delay = delay_seconds

    async def run_once(self) -> SweepReport:
        report = SweepReport()
        logger.info("[SWEEP] Starting image health check")
        try:
            places = await self._store.scan_with_images()
        except Exception as e:
            logger.error(f"[SWEEP] Could not scan place cache: {type(e).__name__}: {e}")
            return report

        logger.info(f"[SWEEP] Checking {len(places)} images")
        for place in places:
            report.checked += 1
            if await self._checker.is_reachable(place.image_url):
                await self._pace()
                continue

            report.broken += 1
            logger.info(f"[SWEEP] Broken image for '{place.display_name}'")
            if await self._repair(place.identifier, place.display_name):
                report.fixed += 1
            else:
                report.failed += 1
            await self._pace()

        logger.info(
            f"[SWEEP] Done: checked={report.checked} broken={report.broken} "
            f"fixed={report.fixed} failed={report.failed}"
        )
        return report

    async def _repair(self, identifier: Optional[str], display_name: str) -> bool:
        if not identifier:
            return False
        try:
            replacement = await self._images.resolve(display_name)
        except Exception as e:
            logger.warning(f"[SWEEP] Image search raised for '{display_name}': {e}")
            return False

        if not replacement:
            logger.info(f"[SWEEP] No replacement found for '{display_name}'")
            return False
        if not await self._checker.is_reachable(replacement):
            logger.info(f"[SWEEP] Replacement for '{display_name}' is unreachable, keeping old URL")
            return False

        try:
            updated = await self._store.update_image(identifier, replacement, display_name)
        except Exception as e:
            logger.error(f"[SWEEP] Write failed for {identifier}: {type(e).__name__}: {e}")
            return False
        if updated:
            logger.info(f"[SWEEP] Fixed '{display_name}' -> {replacement[:60]}")
        return updated

    async def _pace(self) -> None:
        if self._delay > 0:
            await asyncio.sleep(self._delay)


def next_run_after(now: datetime, weekday: int, hour: int) -> datetime:
    """Next occurrence of ``weekday`` (Monday=0) at ``hour``:00 strictly after ``now``."""
    candidate = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    candidate += timedelta(days=(weekday - now.weekday()) % 7)
    if candidate <= now:
        candidate += timedelta(days=7)
    return candidate


class ImageHealthScheduler:
    """Runs the sweep weekly as a background asyncio task.

    Runs never overlap: a run still in progress when ``trigger`` is called
    makes the new call a no-op.
    """

    def __init__(
        self,
        sweep: ImageHealthSweep,
        weekday: int = 6,
        hour: int = 4,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if not 0 <= weekday <= 6:
            raise ValueError(f"weekday must be 0-6, got {weekday}")
        if not 0 <= hour <= 23:
            raise ValueError(f"hour must be 0-23, got {hour}")
        self._sweep = sweep
        self._weekday = weekday
        self._hour = hour
        self._clock = clock
        self._task: asyncio.Task | None = None
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_run(self) -> datetime:
        return next_run_after(self._clock(), self._weekday, self._hour)

    async def trigger(self) -> Optional[SweepReport]:
        """Run one sweep now unless one is already in progress."""
        if self._lock.locked():
            logger.info("[SWEEP] Previous sweep still running, skipping")
            return None
        async with self._lock:
            return await self._sweep.run_once()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(f"[SWEEP] Scheduler started, next run at {self.next_run():%Y-%m-%d %H:%M}")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[SWEEP] Scheduler stopped")

    async def _loop(self) -> None:
        while True:
            delay = (self.next_run() - self._clock()).total_seconds()
            await asyncio.sleep(max(delay, 0))
            try:
                await self.trigger()
            except Exception as e:
                logger.exception(f"[SWEEP] Sweep crashed: {e}")
