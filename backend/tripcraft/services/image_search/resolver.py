"""Image resolution with layered query relaxation.

Venue names drafted by a language model are often brand compounds or
slightly off, and a single image query misses often. Tiers, each tried only
when the previous found nothing:

1. The raw query, filtered against the URL denylist.
2. A "<name> by <brand>" query simplified to "<name>", then "<name> hotel".
3. The raw query plus each generic travel keyword in turn.

``None`` means every tier failed; callers substitute a category fallback image.
"""

import logging
from typing import Optional

from tripcraft.rules import BRAND_SIMPLIFIED_HINT, DEFAULT_RULES, MatchRules

from .service import ImageCandidate, ImageSearchService

logger = logging.getLogger(__name__)


class ImageResolver:
    """Runs the tiered image search for a text query."""

    def __init__(
        self,
        search: ImageSearchService,
        rules: MatchRules = DEFAULT_RULES,
        candidates_per_query: int = 5,
    ) -> None:
        self._search = search
        self._rules = rules
        self._count = candidates_per_query

    async def resolve(self, query: str) -> Optional[str]:
        query = (query or "").strip()
        if not query:
            return None

        attempted: set[str] = set()

        async def attempt(text: str) -> Optional[str]:
            if text in attempted:
                return None
            attempted.add(text)
            return await self._search_filtered(text)

        url = await attempt(query)
        if url:
            return url

        simplified = self._rules.simplify_brand_name(query)
        if simplified:
            logger.info(f"[IMAGE] Brand suffix detected, retrying '{query}' as '{simplified}'")
            url = await attempt(simplified) or await attempt(f"{simplified} {BRAND_SIMPLIFIED_HINT}")
            if url:
                return url

        for keyword in self._rules.generic_image_keywords:
            url = await attempt(f"{query} {keyword}")
            if url:
                logger.info(f"[IMAGE] '{query}' resolved with keyword '{keyword}'")
                return url

        logger.info(f"[IMAGE] No image found for '{query}' after {len(attempted)} queries")
        return None

    async def _search_filtered(self, query: str) -> Optional[str]:
        try:
            candidates = await self._search.search(query, self._count)
        except Exception as e:
            logger.warning(f"[IMAGE] Search raised for '{query}': {type(e).__name__}: {e}")
            return None
        return self.pick(candidates)

    def pick(self, candidates: list[ImageCandidate]) -> Optional[str]:
        """Choose the best URL among raw candidates.

        Denylisted URLs are dropped and embeddable hosts preferred. When
        everything is denylisted, a thumbnail is safer than a blocked original.
        """
        candidates = [c for c in candidates if c.url]
        if not candidates:
            return None

        allowed = [c for c in candidates if not self._rules.is_denylisted_image(c.url)]
        for candidate in allowed:
            if self._rules.is_embeddable_image(candidate.url):
                return candidate.url
        if allowed:
            return allowed[0].url

        for candidate in candidates:
            if candidate.thumbnail_url:
                return candidate.thumbnail_url
        return candidates[0].url
