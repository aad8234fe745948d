import pytest

from stopover.core.geometry import haversine_miles
from stopover.services.fuel import needs_fuel_stop, plan_fuel_stops
from fakes import point_at_mile, straight_route


def test_full_tank_matching_route_length_stops_once_at_reserve():
    targets = plan_fuel_stops(straight_route(300), fuel_level=1.0, vehicle_range=300)

    assert len(targets) == 1
    assert targets[0].distance_miles == pytest.approx(240)
    assert haversine_miles(targets[0].location, point_at_mile(240)) < 0.1


def test_long_route_refuels_to_full_each_time():
    targets = plan_fuel_stops(straight_route(600), fuel_level=1.0, vehicle_range=300)

    assert [t.distance_miles for t in targets] == pytest.approx([240, 480])


def test_half_tank_stops_early():
    targets = plan_fuel_stops(straight_route(200), fuel_level=0.5, vehicle_range=300)

    assert [t.distance_miles for t in targets] == pytest.approx([90])


def test_route_within_range_needs_no_stop():
    route = straight_route(100)

    assert plan_fuel_stops(route, fuel_level=1.0, vehicle_range=300) == []
    assert not needs_fuel_stop(route, 1.0, 300)


def test_needs_fuel_stop_keeps_a_buffer():
    route = straight_route(300)

    assert needs_fuel_stop(route, 1.0, 300)
    assert not needs_fuel_stop(route, 1.0, 400)


@pytest.mark.parametrize(
    "fuel_level, vehicle_range, reserve",
    [(1.0, 0, 0.2), (1.5, 300, 0.2), (1.0, 300, 1.0)],
)
def test_invalid_inputs_are_rejected(fuel_level, vehicle_range, reserve):
    with pytest.raises(ValueError):
        plan_fuel_stops(straight_route(300), fuel_level, vehicle_range, reserve)
