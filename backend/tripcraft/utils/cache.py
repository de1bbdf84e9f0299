"""In-process resolution cache.

Maps a raw place name to the *future* of its resolution, so concurrent
callers for the same name await one in-flight lookup instead of issuing
duplicate paid requests. Bounded: when full, the whole map is cleared
(the persistent cache is the durable backstop).
"""

import asyncio
import logging
from typing import Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResolutionCache(Generic[T]):
    """Process-lifetime map from key to a pending-or-done future."""

    def __init__(self, max_size: int = 1000) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._entries: dict[str, asyncio.Future[T]] = {}
        self._max_size = max_size

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    @property
    def max_size(self) -> int:
        return self._max_size

    def get(self, key: str) -> asyncio.Future[T] | None:
        return self._entries.get(key)

    def set(self, key: str, future: asyncio.Future[T]) -> None:
        if key not in self._entries and len(self._entries) >= self._max_size:
            self._entries.clear()
            logger.info(f"[CACHE] Resolution cache cleared (size limit {self._max_size} reached)")
        self._entries[key] = future

    def discard(self, key: str, future: asyncio.Future[T] | None = None) -> None:
        """Remove ``key``; when ``future`` is given, only if it is still the one cached."""
        current = self._entries.get(key)
        if current is None:
            return
        if future is None or current is future:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_create(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        keep: Callable[[T], bool] | None = None,
    ) -> T:
        """Await the cached future for ``key``, starting ``factory`` if absent.

        Results rejected by ``keep`` (and failures) are dropped once done, so
        the next caller retries while current waiters still share the result.
        The shared task is shielded so one cancelled waiter does not cancel
        the lookup for everybody else.
        """
        future = self._entries.get(key)
        if future is None:
            future = asyncio.ensure_future(factory())
            self.set(key, future)
            future.add_done_callback(self._evict_unwanted(key, keep))
        return await asyncio.shield(future)

    def _evict_unwanted(
        self, key: str, keep: Callable[[T], bool] | None
    ) -> Callable[[asyncio.Future[T]], None]:
        def callback(future: asyncio.Future[T]) -> None:
            if future.cancelled() or future.exception() is not None:
                self.discard(key, future)
            elif keep is not None and not keep(future.result()):
                self.discard(key, future)
        return callback
