"""Image search adapter and tiered image resolver."""

from .resolver import ImageResolver
from .service import ImageCandidate, ImageSearchService, NaverImageSearchService

__all__ = [
    "ImageCandidate",
    "ImageResolver",
    "ImageSearchService",
    "NaverImageSearchService",
]
