import pytest

from stopover.core.geometry import (
    RouteGeometry,
    distance_along_route,
    distance_to_path,
    haversine_miles,
    progress_along_route,
)
from stopover.models.location import GeoPoint
from fakes import point_at_mile


@pytest.fixture
def path():
    return [point_at_mile(m) for m in range(0, 101, 10)]


def test_haversine_one_degree_of_latitude():
    a = GeoPoint(lat=35.0, lng=-100.0)
    b = GeoPoint(lat=36.0, lng=-100.0)

    assert haversine_miles(a, b) == pytest.approx(69.0975, abs=1e-3)


def test_point_on_segment_is_zero_distance(path):
    on_route = point_at_mile(45)

    assert distance_to_path(on_route, path) == pytest.approx(0.0, abs=1e-3)


def test_off_route_distance_matches_lateral_offset(path):
    assert distance_to_path(point_at_mile(55, off_route_miles=0.8), path) == pytest.approx(0.8, abs=0.01)


def test_distance_never_exceeds_nearest_vertex(path):
    point = point_at_mile(33, off_route_miles=2.5)
    nearest_vertex = min(haversine_miles(point, p) for p in path)

    assert distance_to_path(point, path) <= nearest_vertex + 1e-9


def test_point_before_start_clamps_to_first_vertex(path):
    before = point_at_mile(-5)
    projection = RouteGeometry(path).project(before)

    assert projection.t == 0.0
    assert projection.along_miles == 0.0
    assert projection.distance_miles == pytest.approx(5.0, abs=0.01)


def test_single_point_path():
    only = GeoPoint(lat=35.0, lng=-100.0)
    geometry = RouteGeometry([only])

    assert geometry.length_miles == 0.0
    assert geometry.distance_to(point_at_mile(10)) == pytest.approx(10.0, abs=0.01)
    assert geometry.progress_of(point_at_mile(10)) == 0.0


def test_empty_path_is_rejected():
    with pytest.raises(ValueError):
        RouteGeometry([])


# ---------------------------------------------------------------------------
# Progress and distance along
# ---------------------------------------------------------------------------


def test_distance_along_route(path):
    assert distance_along_route(point_at_mile(62, off_route_miles=0.3), path) == pytest.approx(62.0, abs=0.05)


def test_progress_is_monotonic_and_bounded(path):
    progress = [progress_along_route(point_at_mile(m, 0.2), path) for m in range(-10, 120, 5)]

    assert all(0.0 <= p <= 1.0 for p in progress)
    assert progress == sorted(progress)
    assert progress[0] == 0.0
    assert progress[-1] == pytest.approx(1.0)


def test_progress_uses_given_total(path):
    assert progress_along_route(point_at_mile(50), path, total_route_miles=200) == pytest.approx(0.25, abs=1e-3)


def test_interpolate_and_sample(path):
    geometry = RouteGeometry(path)

    midpoint = geometry.interpolate(0.5)
    samples = geometry.sample(0.25, 0.75, 5)

    assert haversine_miles(midpoint, point_at_mile(50)) < 0.01
    assert len(samples) == 5
    assert [geometry.distance_along(p) for p in samples] == pytest.approx([25, 37.5, 50, 62.5, 75], abs=0.01)
