"""Image search adapter (Naver image search API).

Architecture:
- Shared httpx client with connection pooling
- Semaphore-based rate limiting (max 3 concurrent requests)
- One retry with backoff on timeouts and HTTP 429
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class ImageCandidate:
    """One image-search hit."""
    url: str
    thumbnail_url: Optional[str] = None
    title: Optional[str] = None


class ImageSearchService(ABC):
    """Abstract image search."""

    @abstractmethod
    async def search(self, query: str, count: int = 5) -> list[ImageCandidate]:
        """Return candidates best-first; an empty list on miss or failure."""
        pass

    async def close(self) -> None:
        pass


class NaverImageSearchService(ImageSearchService):
    """Naver Open API image search client."""

    SEARCH_URL = "https://openapi.naver.com/v1/search/image"

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        timeout: float = 8.0,
        client: httpx.AsyncClient | None = None,
        max_concurrency: int = 3,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._semaphore = asyncio.Semaphore(max_concurrency)

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=8, max_keepalive_connections=4),
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request_with_retry(self, params: dict, max_retries: int = 1) -> dict | None:
        """GET with one retry on transient failures."""
        headers = {
            "X-Naver-Client-Id": self._client_id or "",
            "X-Naver-Client-Secret": self._client_secret or "",
        }
        client = self._get_client()
        for attempt in range(max_retries + 1):
            try:
                async with self._semaphore:
                    response = await client.get(self.SEARCH_URL, params=params, headers=headers)
                    response.raise_for_status()
                    return response.json()
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if attempt < max_retries:
                    logger.info(f"[IMAGE] Retry {attempt+1}/{max_retries} for '{params.get('query')}': {type(e).__name__}")
                    await asyncio.sleep(1.0)
                else:
                    logger.warning(f"[IMAGE] Search failed for '{params.get('query')}': {type(e).__name__}")
                    return None
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 429 and attempt < max_retries:
                    await asyncio.sleep(2.0)
                else:
                    logger.warning(f"[IMAGE] Search HTTP {e.response.status_code} for '{params.get('query')}'")
                    return None
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"[IMAGE] Search error for '{params.get('query')}': {e}")
                return None
        return None

    async def search(self, query: str, count: int = 5) -> list[ImageCandidate]:
        if not query or not query.strip():
            return []
        if not self._client_id or not self._client_secret:
            logger.warning("[IMAGE] NAVER_CLIENT_ID/NAVER_CLIENT_SECRET not set; skipping image search")
            return []

        params = {"query": query.strip(), "display": count, "sort": "sim", "filter": "medium"}
        data = await self._request_with_retry(params)
        if not data:
            return []

        candidates = []
        for item in data.get("items") or []:
            link = item.get("link")
            if link:
                candidates.append(ImageCandidate(
                    url=link,
                    thumbnail_url=item.get("thumbnail"),
                    title=item.get("title"),
                ))
        return candidates
