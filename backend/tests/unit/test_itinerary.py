"""Unit tests for the itinerary post-processor."""

import pytest

from tests.fakes import FakeDirections, FakeImageSearch, FakePlaceSearch, make_candidate
from tripcraft.models import (
    Activity,
    ActivityCategory,
    DayPlan,
    Itinerary,
    TransportMode,
)
from tripcraft.services.image_search import ImageResolver
from tripcraft.services.itinerary import ConcurrencyMode, ItineraryPostProcessor, parse_draft
from tripcraft.services.place_cache import InMemoryPlaceCacheStore
from tripcraft.services.resolver import PlaceResolver
from tripcraft.services.routes import DirectionsResult, RouteAnnotator


def _activity(name: str, category: str = "관광", **kwargs) -> dict:
    return {"time": "10:00", "place_name": name, "type": category, **kwargs}


def _draft(*days: list[dict]) -> dict:
    return {
        "trip_title": "서울 여행",
        "itinerary": [{"day": i, "date": f"2026-05-0{i}", "activities": acts} for i, acts in enumerate(days, start=1)],
    }


def _names(day: DayPlan) -> list[str]:
    return [a.place_name for a in day.activities]


class TestParseDraft:
    """Tests for draft parsing."""

    def test_fenced_model_output(self) -> None:
        text = '```json\n{"trip_title": "t", "itinerary": [{"day": 1, "activities": [{"place_name": "경복궁"}]}]}\n```'
        itinerary = parse_draft(text)
        assert itinerary.trip_title == "t"
        assert _names(itinerary.itinerary[0]) == ["경복궁"]

    def test_malformed_entries_are_skipped(self) -> None:
        itinerary = parse_draft({"itinerary": [
            {"activities": [
                {"place_name": "경복궁"},
                "not an activity",
            ]},
            "not a day",
        ]})
        assert len(itinerary.itinerary) == 1
        assert itinerary.itinerary[0].day == 1
        assert _names(itinerary.itinerary[0]) == ["경복궁"]

    def test_bad_field_is_dropped_but_activity_kept(self) -> None:
        itinerary = parse_draft({"itinerary": [{"activities": [
            {"place_name": "경복궁", "is_booking_required": "maybe", "travel_info": 5},
        ]}]})
        activity = itinerary.itinerary[0].activities[0]
        assert activity.place_name == "경복궁"
        assert activity.is_booking_required is False
        assert activity.travel_info is None

    def test_numeric_time_is_kept_as_text(self) -> None:
        itinerary = parse_draft({"itinerary": [{"activities": [{"time": 9, "place_name": "경복궁"}]}]})
        activity = itinerary.itinerary[0].activities[0]
        assert activity.time == "9"
        assert activity.place_name == "경복궁"

    def test_non_list_itinerary_and_activities(self) -> None:
        assert parse_draft({"itinerary": 3}).itinerary == []
        itinerary = parse_draft({"itinerary": [{"day": 1, "activities": "경복궁"}]})
        assert itinerary.itinerary[0].activities == []

    def test_non_text_title_and_cover(self) -> None:
        itinerary = parse_draft({
            "trip_title": 2024,
            "cover_image": {"url": "x"},
            "itinerary": [{"activities": [{"place_name": "경복궁"}]}],
        })
        assert itinerary.trip_title == "2024"
        assert itinerary.cover_image is None
        assert _names(itinerary.itinerary[0]) == ["경복궁"]

    def test_unparseable_text(self) -> None:
        assert parse_draft("not json").itinerary == []

    def test_itinerary_input_is_copied(self) -> None:
        original = Itinerary(itinerary=[DayPlan(day=1, activities=[Activity(place_name="a")])])
        copy = parse_draft(original)
        copy.itinerary[0].activities[0].place_name = "b"
        assert original.itinerary[0].activities[0].place_name == "a"


class TestItineraryPostProcessor:
    """Tests for ItineraryPostProcessor.process."""

    def setup_method(self) -> None:
        self.search = FakePlaceSearch({
            "경복궁": [make_candidate("p1", "경복궁")],
            "Gyeongbokgung": [make_candidate("p1", "경복궁")],
            "광장시장": [make_candidate("m1", "광장시장", ["food", "point_of_interest"])],
            "한강공원": [make_candidate("park1", "여의도한강공원", ["park"])],
            "정식당": [make_candidate("r1", "정식당", ["restaurant"], website_link="https://jungsik.kr")],
            "명동교자": [make_candidate("r2", "명동교자 본점", ["restaurant"])],
        })
        self.directions = FakeDirections({
            ("p1", "m1", TransportMode.TRANSIT): DirectionsResult("20분", "3.4 km"),
        })
        self.store = InMemoryPlaceCacheStore()
        self.resolver = PlaceResolver(self.search, self.store, ImageResolver(FakeImageSearch()))
        self.processor = ItineraryPostProcessor(
            self.resolver,
            RouteAnnotator(self.directions),
            delay_seconds=0,
        )

    @pytest.mark.asyncio
    async def test_trip_wide_dedup(self) -> None:
        result = await self.processor.process(
            _draft([_activity("경복궁")], [_activity("경복궁"), _activity("광장시장", "식사")]),
            "서울",
        )
        assert _names(result.itinerary[0]) == ["경복궁"]
        assert _names(result.itinerary[1]) == ["광장시장"]

    @pytest.mark.asyncio
    async def test_structural_entries_are_exempt_from_dedup(self) -> None:
        result = await self.processor.process(
            _draft(
                [_activity("호텔 체크인", "숙소"), _activity("공항으로 이동", "이동")],
                [_activity("호텔 체크인", "숙소"), _activity("공항으로 이동", "이동")],
            ),
            "서울",
        )
        assert _names(result.itinerary[0]) == ["호텔 체크인", "공항으로 이동"]
        assert _names(result.itinerary[1]) == ["호텔 체크인", "공항으로 이동"]
        assert self.search.calls == []

    @pytest.mark.asyncio
    async def test_canonical_name_duplicates_are_dropped(self) -> None:
        result = await self.processor.process(
            _draft([_activity("경복궁"), _activity("Gyeongbokgung Palace")]),
            "서울",
        )
        assert _names(result.itinerary[0]) == ["경복궁"]

    @pytest.mark.asyncio
    async def test_beauty_service_is_not_a_meal(self) -> None:
        result = await self.processor.process(
            _draft([_activity(
                "강남 왁싱샵", "식사",
                activity_description="꼼꼼한 왁싱 케어. 점심 메뉴도 맛있어요.",
            )]),
            "서울",
        )
        activity = result.itinerary[0].activities[0]
        assert activity.category is ActivityCategory.SIGHTSEEING
        assert activity.description == "꼼꼼한 왁싱 케어."

    @pytest.mark.asyncio
    async def test_spaghetti_stays_a_meal(self) -> None:
        result = await self.processor.process(
            _draft([_activity("스파게티 하우스", "식사", activity_description="스파게티 맛집")]),
            "서울",
        )
        assert result.itinerary[0].activities[0].category is ActivityCategory.MEAL

    @pytest.mark.asyncio
    async def test_parks_never_get_booking_url(self) -> None:
        result = await self.processor.process(
            _draft([_activity("한강공원", is_booking_required=True)]),
            "서울",
        )
        activity = result.itinerary[0].activities[0]
        assert activity.category_tags == {"park"}
        assert activity.booking_url is None

    @pytest.mark.asyncio
    async def test_booking_url_priority(self) -> None:
        result = await self.processor.process(
            _draft([
                _activity("정식당", "식사", is_booking_required=True),
                _activity("명동교자", "식사", is_booking_required=True),
                _activity("골목식당", "식사", is_booking_required=True),
                _activity("광장시장", "식사"),
            ]),
            "서울",
        )
        website, map_link, search, not_required = result.itinerary[0].activities
        assert website.booking_url == "https://jungsik.kr"
        assert map_link.booking_url == "https://maps.google.com/?cid=r2"
        assert search.booking_url.startswith("https://www.google.com/search?q=")
        assert not_required.booking_url is None

    @pytest.mark.asyncio
    async def test_route_between_resolved_neighbours(self) -> None:
        result = await self.processor.process(
            _draft([_activity("경복궁"), _activity("광장시장", "식사")]),
            "서울",
        )
        first, second = result.itinerary[0].activities
        assert first.travel_info is None
        assert second.travel_info.mode is TransportMode.TRANSIT
        assert second.travel_info.duration == "20분"

    @pytest.mark.asyncio
    async def test_route_gap_around_unresolved_activity(self) -> None:
        result = await self.processor.process(
            _draft([_activity("경복궁"), _activity("없는장소"), _activity("광장시장", "식사")]),
            "서울",
        )
        assert [a.travel_info for a in result.itinerary[0].activities] == [None, None, None]
        assert self.directions.calls == []

    @pytest.mark.asyncio
    async def test_parallel_mode_matches_sequential(self) -> None:
        processor = ItineraryPostProcessor(
            self.resolver,
            RouteAnnotator(self.directions),
            concurrency_mode=ConcurrencyMode.PARALLEL,
        )
        result = await processor.process(
            _draft([_activity("경복궁"), _activity("광장시장", "식사")], [_activity("경복궁")]),
            "서울",
        )
        assert _names(result.itinerary[0]) == ["경복궁", "광장시장"]
        assert result.itinerary[1].activities == []
        assert result.itinerary[0].activities[1].travel_info is not None

    @pytest.mark.asyncio
    async def test_previous_itinerary_is_reused(self) -> None:
        previous = Itinerary(itinerary=[DayPlan(day=1, activities=[
            Activity(place_name="경복궁", place_id="p1", image_url="https://example.com/p.jpg"),
        ])])
        result = await self.processor.process(_draft([_activity("경복궁")]), "서울", previous=previous)
        activity = result.itinerary[0].activities[0]
        assert activity.place_id == "p1"
        assert activity.image_url == "https://example.com/p.jpg"
        assert self.search.calls == []

    @pytest.mark.asyncio
    async def test_malformed_top_level_fields_do_not_raise(self) -> None:
        result = await self.processor.process({"itinerary": 3}, "서울")
        assert result.itinerary == []

        result = await self.processor.process(
            {"trip_title": 2024, "itinerary": [{"day": 1, "activities": [{"time": 9, "place_name": "경복궁"}]}]},
            "서울",
        )
        assert result.trip_title == "2024"
        assert result.itinerary[0].activities[0].place_id == "p1"

    @pytest.mark.asyncio
    async def test_empty_place_name_is_kept_unresolved(self) -> None:
        result = await self.processor.process(_draft([{"time": "09:00", "place_name": None}]), "서울")
        assert result.itinerary[0].activities[0].place_id is None
        assert self.search.calls == []
