"""Lookup tables for the string-matching heuristics of the pipeline.

Everything that decides by keyword lives here: structural itinerary markers,
beauty-service detection, image URL filtering, category search suffixes and
the stock fallback images. The tables are bundled into ``MatchRules`` so a
caller can pass an extended copy to the resolver and post-processor.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional
from urllib.parse import quote_plus, urlparse

# ── Structural itinerary markers ──
LODGING_MARKERS = frozenset({
    "체크인", "숙소", "복귀",
    "check-in", "check in", "checkin", "return to hotel", "back to hotel",
})
TRANSIT_MARKERS = frozenset({
    "이동", "transfer", "travel to", "move to",
})

# ── Beauty/wellness services that generators tag as meals ──
BEAUTY_SERVICE_KEYWORDS = frozenset({
    "네일", "왁싱", "스파", "마사지", "살롱", "에스테틱",
    "nail", "waxing", "spa", "massage", "salon",
})
FOOD_TERMS = frozenset({
    "식사", "맛집", "음식", "메뉴", "요리", "점심", "저녁", "아침", "브런치", "먹",
    "meal", "lunch", "dinner", "breakfast", "brunch", "food", "restaurant",
    "cuisine", "dish", "eat",
})
BEAUTY_FALSE_POSITIVES = frozenset({"스파게티", "spaghetti"})
BEAUTY_DESCRIPTION_TEMPLATE = "{name}에서 뷰티 케어를 받으며 여유로운 시간을 보내세요."

# ── Image URL filtering ──
IMAGE_URL_DENYLIST = frozenset({
    "profile", "avatar", "/ads/", "adimg", "banner", "music", "album", "logo", "icon",
})
HOTLINK_PROTECTED_DOMAINS = frozenset({
    "blogfiles.naver.net",
    "postfiles.pstatic.net",
    "cafefiles.naver.net",
    "blogpfthumb-phinf.pstatic.net",
    "cdninstagram.com",
    "fbcdn.net",
})
EMBEDDABLE_DOMAINS = frozenset({
    "search.pstatic.net",
    "ldb-phinf.pstatic.net",
    "dthumb-phinf.pstatic.net",
    "upload.wikimedia.org",
    "images.unsplash.com",
    "tong.visitkorea.or.kr",
    "cdn.pixabay.com",
})
GENERIC_IMAGE_KEYWORDS = ("travel photo", "landmark", "scenery", "hotel")
BRAND_SUFFIX_PATTERN = re.compile(r"\s+by\s+.*$", re.IGNORECASE)
BRAND_SIMPLIFIED_HINT = "hotel"

# ── Category tag groups (Google place types) ──
FOOD_TAGS = frozenset({"restaurant", "food", "cafe", "bar", "bakery", "meal_takeaway"})
NATURE_TAGS = frozenset({"park", "campground", "natural_feature", "amusement_park"})
CULTURE_TAGS = frozenset({
    "museum", "art_gallery", "church", "place_of_worship", "library", "university",
})
LODGING_TAGS = frozenset({"lodging", "hotel", "guest_house"})
SIGHT_TAGS = frozenset({"tourist_attraction", "point_of_interest", "park", "landmark"})
SHOPPING_TAGS = frozenset({"shopping_mall", "store"})
NON_BOOKABLE_TAGS = frozenset({"park", "natural_feature"})

_UNSPLASH = "https://images.unsplash.com/photo-{}?q=80&w=800&auto=format&fit=crop"
FALLBACK_IMAGES = {
    "food": _UNSPLASH.format("1504674900247-0877df9cc836"),
    "nature": _UNSPLASH.format("1441974231531-c6227db76b6e"),
    "culture": _UNSPLASH.format("1566073771259-6a8506099945"),
    "hotel": _UNSPLASH.format("1566073771259-6a8506099945"),
    "city": _UNSPLASH.format("1449824913935-59a10b8d2000"),
    "default": _UNSPLASH.format("1476514525535-07fb3b4ae5f1"),
}

BOOKING_SEARCH_URL = "https://www.google.com/search?q={destination}+{name}+%EC%98%88%EC%95%BD"  # 예약


def contains_keyword(text: str, keywords: Iterable[str]) -> bool:
    """Case-insensitive keyword test.

    Latin keywords must match on word boundaries ("spa" is not in "Spain");
    Hangul keywords match as substrings since Korean attaches particles.
    """
    if not text:
        return False
    lowered = text.lower()
    for keyword in keywords:
        if keyword.isascii():
            if re.search(rf"\b{re.escape(keyword)}\b", lowered):
                return True
        elif keyword in lowered:
            return True
    return False


def _host(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def _host_matches(host: str, domains: Iterable[str]) -> bool:
    return any(host == d or host.endswith("." + d) for d in domains)


@dataclass(frozen=True)
class MatchRules:
    """Bundle of the keyword tables used by the pipeline."""

    lodging_markers: frozenset[str] = LODGING_MARKERS
    transit_markers: frozenset[str] = TRANSIT_MARKERS
    beauty_keywords: frozenset[str] = BEAUTY_SERVICE_KEYWORDS
    food_terms: frozenset[str] = FOOD_TERMS
    image_denylist: frozenset[str] = IMAGE_URL_DENYLIST
    hotlink_domains: frozenset[str] = HOTLINK_PROTECTED_DOMAINS
    embeddable_domains: frozenset[str] = EMBEDDABLE_DOMAINS
    generic_image_keywords: tuple[str, ...] = GENERIC_IMAGE_KEYWORDS
    non_bookable_tags: frozenset[str] = NON_BOOKABLE_TAGS
    fallback_images: dict[str, str] = field(default_factory=lambda: dict(FALLBACK_IMAGES))

    # ── Structural markers ──

    def is_lodging_marker(self, name: str) -> bool:
        return contains_keyword(name, self.lodging_markers)

    def is_transit_marker(self, name: str) -> bool:
        return contains_keyword(name, self.transit_markers)

    def is_structural(self, name: str) -> bool:
        """Transit or lodging placeholder rather than a real venue."""
        return self.is_transit_marker(name) or self.is_lodging_marker(name)

    def skips_resolution(self, name: str) -> bool:
        """Pure transit hops are never resolved; lodging entries still are
        (the resolver short-circuits them without I/O)."""
        return self.is_transit_marker(name) and not self.is_lodging_marker(name)

    # ── Beauty-service correction ──

    def is_beauty_service(self, *texts: str) -> bool:
        for text in texts:
            cleaned = (text or "").lower()
            for word in BEAUTY_FALSE_POSITIVES:
                cleaned = cleaned.replace(word, " ")
            if contains_keyword(cleaned, self.beauty_keywords):
                return True
        return False

    def scrub_food_language(self, description: str, name: str) -> str:
        """Drop every sentence that talks about food."""
        sentences = re.split(r"(?<=[.!?。])\s+", description.strip()) if description else []
        kept = [s for s in sentences if s and not contains_keyword(s, self.food_terms)]
        if kept:
            return " ".join(kept)
        return BEAUTY_DESCRIPTION_TEMPLATE.format(name=name)

    # ── Images ──

    def is_denylisted_image(self, url: str) -> bool:
        lowered = url.lower()
        if any(pattern in lowered for pattern in self.image_denylist):
            return True
        return _host_matches(_host(url), self.hotlink_domains)

    def is_embeddable_image(self, url: str) -> bool:
        return _host_matches(_host(url), self.embeddable_domains)

    def fallback_image(self, tags: Optional[Iterable[str]] = None) -> str:
        """Category-keyed stock image."""
        tag_set = set(tags or ())
        if not tag_set:
            return self.fallback_images["default"]
        if tag_set & FOOD_TAGS:
            return self.fallback_images["food"]
        if tag_set & NATURE_TAGS:
            return self.fallback_images["nature"]
        if tag_set & CULTURE_TAGS:
            return self.fallback_images["culture"]
        if tag_set & LODGING_TAGS:
            return self.fallback_images["hotel"]
        return self.fallback_images["city"]

    @staticmethod
    def image_search_suffix(tags: Optional[Iterable[str]] = None) -> str:
        """Korean search-term suffix that steers image search by category."""
        tag_set = set(tags or ())
        if tag_set & FOOD_TAGS:
            return " 음식"
        if tag_set & SIGHT_TAGS:
            return " 전경"
        if tag_set & LODGING_TAGS:
            return " 객실"
        if tag_set & SHOPPING_TAGS:
            return " 매장"
        return " 사진"

    @staticmethod
    def simplify_brand_name(query: str) -> Optional[str]:
        """'L7 MYEONGDONG by LOTTE' -> 'L7 MYEONGDONG'; None when no suffix."""
        simplified = BRAND_SUFFIX_PATTERN.sub("", query).strip()
        if simplified and simplified != query.strip():
            return simplified
        return None

    # ── Booking ──

    def is_bookable(self, tags: Iterable[str]) -> bool:
        return self.non_bookable_tags.isdisjoint(tags)

    @staticmethod
    def booking_search_url(destination: str, name: str) -> str:
        return BOOKING_SEARCH_URL.format(
            destination=quote_plus(destination or ""), name=quote_plus(name)
        )


DEFAULT_RULES = MatchRules()
