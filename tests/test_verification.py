import pytest

from stopover.models.category import DEFAULT_PROFILES, CategoryProfile
from stopover.models.place import PlaceDetails, PlaceReview
from stopover.services.scoring import StopConstraints
from stopover.services.verification import CandidateVerifier, RouteContext, category_matches
from fakes import FakeDirections, point_at_mile, straight_route


@pytest.fixture
def context():
    return RouteContext.for_route(straight_route(300))


@pytest.fixture
def restaurant():
    return DEFAULT_PROFILES.get("restaurant")


def _details(name, types=(), reviews=()):
    return PlaceDetails(
        place_id=name.lower().replace(" ", "-"),
        name=name,
        location=point_at_mile(100),
        types=list(types),
        reviews=[PlaceReview(text=text) for text in reviews],
    )


# ---------------------------------------------------------------------------
# Category confirmation
# ---------------------------------------------------------------------------


def test_review_keyword_confirms_category():
    chinese = DEFAULT_PROFILES.get("chinese")
    details = _details("Lucky House", types=["point_of_interest"], reviews=["Best dumpling spot in town"])

    assert category_matches(chinese, details, details)


def test_no_signal_means_no_match():
    chinese = DEFAULT_PROFILES.get("chinese")
    details = _details("Lucky House", types=["point_of_interest"])

    assert not category_matches(chinese, details, details)


def test_generic_profiles_skip_confirmation():
    details = _details("Lucky House", types=["point_of_interest"])

    assert category_matches(CategoryProfile.generic("karaoke"), details, details)


# ---------------------------------------------------------------------------
# Cheap pre-selection
# ---------------------------------------------------------------------------


def test_proxy_detour_is_out_and_back_at_thirty_mph(places, directions):
    verifier = CandidateVerifier(places, directions)

    assert verifier.proxy_detour_minutes(1.0) == pytest.approx(4.0)


def test_preselect_caps_shortlist_and_ranks_strict_quality_first(places, directions, context):
    candidates = [
        places.add("ok-1", "Diner One", point_at_mile(100, 0.1), rating=3.9),
        places.add("ok-2", "Diner Two", point_at_mile(110, 0.1), rating=3.9),
        places.add("top-1", "Grill One", point_at_mile(120, 0.5), rating=4.6),
        places.add("top-2", "Grill Two", point_at_mile(130, 0.5), rating=4.6),
        places.add("low", "Diner Low", point_at_mile(140, 0.1), rating=3.0),
    ]
    verifier = CandidateVerifier(places, directions, max_candidates=2)

    shortlist = verifier.preselect(candidates, context, StopConstraints(min_rating=4.3))

    assert {item.candidate.place_id for item in shortlist} == {"top-1", "top-2"}


def test_preselect_drops_candidates_far_beyond_both_budgets(places, directions, context):
    candidates = [
        places.add("near", "Near Grill", point_at_mile(150, 0.5)),
        places.add("remote", "Remote Grill", point_at_mile(150, 3.0)),
    ]

    shortlist = CandidateVerifier(places, directions).preselect(candidates, context, StopConstraints())

    assert [item.candidate.place_id for item in shortlist] == ["near"]


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_directions_only_called_within_budget(places, directions, context, restaurant):
    candidates = [
        places.add("near", "Near Grill", point_at_mile(150, 0.5)),
        places.add("mid", "Mid Grill", point_at_mile(150, 1.5)),
        places.add("far", "Far Grill", point_at_mile(150, 2.0)),
        places.add("remote", "Remote Grill", point_at_mile(150, 3.0)),
    ]
    verifier = CandidateVerifier(places, directions)

    scored = await verifier.evaluate(candidates, context, restaurant, StopConstraints())

    by_id = {c.place_id: c for c in scored}
    assert set(by_id) == {"near", "mid", "far"}
    assert len(directions.waypoint_calls) == 2
    assert by_id["near"].detour_estimated is False
    assert by_id["near"].detour_minutes == pytest.approx(2.0, abs=0.1)
    assert by_id["mid"].detour_minutes == pytest.approx(6.0, abs=0.1)
    assert by_id["far"].detour_estimated is True
    assert by_id["far"].detour_minutes == pytest.approx(8.0, abs=0.01)


@pytest.mark.asyncio
async def test_scores_are_sorted_best_first(places, directions, context, restaurant):
    candidates = [
        places.add("fine", "Fine Grill", point_at_mile(150, 0.3), rating=4.3),
        places.add("great", "Great Grill", point_at_mile(160, 0.3), rating=4.8),
    ]

    scored = await CandidateVerifier(places, directions).evaluate(
        candidates, context, restaurant, StopConstraints()
    )

    assert [c.place_id for c in scored] == ["great", "fine"]
    assert scored[0].route_progress == pytest.approx(160 / 300, abs=1e-3)
    assert scored[0].along_route_miles == pytest.approx(160, abs=0.05)


@pytest.mark.asyncio
async def test_detail_failures_exclude_only_that_candidate(places, directions, context, restaurant):
    candidates = [
        places.add("ok", "Good Grill", point_at_mile(150, 0.3)),
        places.add("broken", "Broken Grill", point_at_mile(150, 0.4)),
        places.add("gone", "Gone Grill", point_at_mile(150, 0.5)),
    ]
    places.failing_details.add("broken")
    places.missing_details.add("gone")

    scored = await CandidateVerifier(places, directions).evaluate(
        candidates, context, restaurant, StopConstraints()
    )

    assert [c.place_id for c in scored] == ["ok"]


@pytest.mark.asyncio
async def test_failed_detour_directions_fall_back_to_estimate(places, context, restaurant):
    candidate = places.add("ok", "Good Grill", point_at_mile(150, 0.5))
    directions = FakeDirections(fail_status="UNKNOWN_ERROR")

    scored = await CandidateVerifier(places, directions).evaluate(
        [candidate], context, restaurant, StopConstraints()
    )

    assert scored[0].detour_estimated is True
    assert scored[0].detour_minutes == pytest.approx(2.0, abs=0.01)


@pytest.mark.asyncio
async def test_category_mismatch_is_excluded(places, directions, context):
    candidate = places.add("shop", "Lucky House", point_at_mile(150, 0.3), types=["store"])

    scored = await CandidateVerifier(places, directions).evaluate(
        [candidate], context, DEFAULT_PROFILES.get("chinese"), StopConstraints()
    )

    assert scored == []
