import pytest

from stopover.models.category import DEFAULT_PROFILES
from stopover.models.place import PlaceDetails
from stopover.services.scoring import (
    RelaxationPolicy,
    ScoredCandidate,
    StopConstraints,
    composite_score,
    meets_constraints,
)
from fakes import point_at_mile


def _scored(place_id, rating=4.5, reviews=200, detour=2.0, off_route=0.3, score=None):
    details = PlaceDetails(
        place_id=place_id,
        name=place_id.title(),
        location=point_at_mile(100, off_route),
        types=["chinese_restaurant"],
        rating=rating,
        review_count=reviews,
    )
    return ScoredCandidate(
        details=details,
        profile=DEFAULT_PROFILES.get("chinese"),
        off_route_miles=off_route,
        along_route_miles=100.0,
        route_progress=0.5,
        detour_minutes=detour,
        score=score if score is not None else composite_score(rating, reviews, detour, off_route, 0.5, True),
    )


# ---------------------------------------------------------------------------
# Constraint checks
# ---------------------------------------------------------------------------


def test_short_detour_passes_even_when_far_off_route():
    assert meets_constraints(3, 2, max_detour_minutes=5, max_off_route_miles=1)


def test_close_to_route_passes_even_with_long_detour():
    assert meets_constraints(8, 0.5, max_detour_minutes=5, max_off_route_miles=1)


def test_failing_both_budgets_is_rejected():
    assert not meets_constraints(8, 2, max_detour_minutes=5, max_off_route_miles=1)


# ---------------------------------------------------------------------------
# Composite score
# ---------------------------------------------------------------------------


def test_composite_score_formula():
    # 4.5*20 + log10(100)*10 - 2*2 - 0.5*5 + 15 + 10
    assert composite_score(4.5, 99, 2.0, 0.5, 0.5, True) == pytest.approx(128.5)


def test_no_bonuses_outside_preferred_band_or_for_generic_profile():
    assert composite_score(4.5, 99, 2.0, 0.5, 0.9, False) == pytest.approx(103.5)


def test_preferred_band_is_inclusive():
    inside = composite_score(4.0, 0, 0, 0, 0.25, False)
    outside = composite_score(4.0, 0, 0, 0, 0.24, False)

    assert inside - outside == pytest.approx(10.0)


# ---------------------------------------------------------------------------
# Relaxation
# ---------------------------------------------------------------------------


def test_relax_scales_budgets_and_quality():
    relaxed = RelaxationPolicy().relax(StopConstraints(min_rating=4.5, min_reviews=60))

    assert relaxed.max_detour_minutes == pytest.approx(7.5)
    assert relaxed.max_off_route_miles == pytest.approx(1.5)
    assert relaxed.min_rating == pytest.approx(4.0)
    assert relaxed.min_reviews == pytest.approx(40)


def test_multiplier_below_one_is_rejected():
    with pytest.raises(ValueError):
        RelaxationPolicy(multiplier=0.9)


def test_select_prefers_strict_matches():
    good = _scored("good", rating=4.6)
    weak = _scored("weak", rating=4.0)

    selection = RelaxationPolicy().select([weak, good], StopConstraints(), limit=3)

    assert [c.place_id for c in selection.accepted] == ["good"]
    assert selection.relaxed is False


def test_select_relaxes_once_when_nothing_passes():
    candidates = [_scored("a", rating=4.1), _scored("b", rating=4.2)]

    selection = RelaxationPolicy().select(candidates, StopConstraints(min_rating=4.5), limit=3)

    assert {c.place_id for c in selection.accepted} == {"a", "b"}
    assert selection.relaxed is True


def test_select_relaxed_budget_admits_slightly_longer_detour():
    candidate = _scored("detour", detour=7.0, off_route=1.4)

    selection = RelaxationPolicy().select([candidate], StopConstraints(), limit=3)

    assert [c.place_id for c in selection.accepted] == ["detour"]
    assert selection.relaxed is True


def test_select_gives_up_after_one_step():
    candidate = _scored("far", detour=12.0, off_route=3.0)

    selection = RelaxationPolicy().select([candidate], StopConstraints(), limit=3)

    assert selection.accepted == []
    assert selection.relaxed is True


def test_select_without_candidates_does_not_relax():
    selection = RelaxationPolicy().select([], StopConstraints(), limit=3)

    assert selection.accepted == []
    assert selection.relaxed is False


def test_select_respects_limit_and_score_order():
    candidates = [_scored(f"p{i}", score=float(i)) for i in range(5)]

    selection = RelaxationPolicy().select(candidates, StopConstraints(), limit=2)

    assert [c.place_id for c in selection.accepted] == ["p4", "p3"]
