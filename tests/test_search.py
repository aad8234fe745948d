import pytest

from stopover.core.geometry import RouteGeometry
from stopover.models.category import DEFAULT_PROFILES, CategoryProfile
from stopover.services.search import CandidateSearchService
from fakes import FakePlaces, point_at_mile, straight_route


class BrokenPlaces(FakePlaces):
    async def search_nearby(self, point, radius_meters, place_type=None, keyword=None):
        raise RuntimeError("unexpected payload")


@pytest.fixture
def geometry():
    return straight_route(300).geometry()


def test_sample_count_must_stay_small(places):
    with pytest.raises(ValueError):
        CandidateSearchService(places, sample_count=4)
    with pytest.raises(ValueError):
        CandidateSearchService(places, sample_count=9)


def test_samples_cover_middle_band_plus_endpoints(places, geometry):
    points = CandidateSearchService(places).sample_points(geometry)
    miles = [geometry.distance_along(p) for p in points]

    assert miles == pytest.approx([0, 75, 112.5, 150, 187.5, 225, 300], abs=0.05)


def test_samples_are_deduplicated_on_a_single_point_route(places):
    points = CandidateSearchService(places).sample_points(RouteGeometry([point_at_mile(0)]))

    assert len(points) == 1


@pytest.mark.asyncio
async def test_find_candidates_searches_each_type_and_dedupes(places, geometry):
    places.add("wok", "Golden Wok", point_at_mile(150, 0.3), types=["chinese_restaurant", "restaurant"])
    service = CandidateSearchService(places)

    candidates = await service.find_candidates(geometry, DEFAULT_PROFILES.get("chinese"))

    assert [c.place_id for c in candidates] == ["wok"]
    assert {call["type"] for call in places.search_calls} == {"chinese_restaurant", "restaurant"}
    assert len(places.search_calls) == 7 * 2
    assert all(call["keyword"] == "chinese" for call in places.search_calls)


@pytest.mark.asyncio
async def test_failed_search_point_is_skipped(places, geometry):
    places.add("wok", "Golden Wok", point_at_mile(150, 0.3), types=["chinese_restaurant"])
    places.failing_types.add("restaurant")

    candidates = await CandidateSearchService(places).find_candidates(geometry, DEFAULT_PROFILES.get("chinese"))

    assert [c.place_id for c in candidates] == ["wok"]


@pytest.mark.asyncio
async def test_unexpected_errors_propagate(geometry):
    with pytest.raises(RuntimeError):
        await CandidateSearchService(BrokenPlaces()).find_candidates(geometry, DEFAULT_PROFILES.get("coffee"))


@pytest.mark.asyncio
async def test_prefilter_keeps_matching_names(places, geometry):
    places.add("noodle", "Dragon Noodle House", point_at_mile(150, 0.2), types=["store"])
    places.add("hardware", "Bob's Hardware", point_at_mile(150, 0.4), types=["store"])

    candidates = await CandidateSearchService(places).find_candidates(geometry, CategoryProfile.generic("noodle"))

    assert [c.place_id for c in candidates] == ["noodle"]


@pytest.mark.asyncio
async def test_prefilter_falls_back_to_everything_found(places, geometry):
    places.add("hardware", "Bob's Hardware", point_at_mile(150, 0.4), types=["store"])

    candidates = await CandidateSearchService(places).find_candidates(geometry, CategoryProfile.generic("karaoke"))

    assert [c.place_id for c in candidates] == ["hardware"]


@pytest.mark.asyncio
async def test_custom_focus_band_without_endpoints(places, geometry):
    service = CandidateSearchService(places)

    await service.find_candidates(
        geometry, DEFAULT_PROFILES.get("gas"), focus_band=(0.7, 0.9), include_endpoints=False
    )

    searched = [geometry.distance_along(call["point"]) for call in places.search_calls]
    assert min(searched) == pytest.approx(210, abs=0.05)
    assert max(searched) == pytest.approx(270, abs=0.05)
