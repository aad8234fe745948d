import logging
from typing import List, NamedTuple

from stopover.models.location import GeoPoint
from stopover.models.route import Route

logger = logging.getLogger(__name__)

# Extra margin when deciding whether the current tank covers the trip
RANGE_BUFFER_MILES = 50.0


class FuelStopTarget(NamedTuple):
    distance_miles: float
    location: GeoPoint


def needs_fuel_stop(route: Route, fuel_level: float, vehicle_range: float) -> bool:
    return route.total_distance_miles > fuel_level * vehicle_range - RANGE_BUFFER_MILES


def plan_fuel_stops(
    route: Route,
    fuel_level: float,
    vehicle_range: float,
    reserve_fraction: float = 0.2,
) -> List[FuelStopTarget]:
    """
    Mark every point where the tank would fall to the reserve.

    The vehicle is assumed to refuel to a full tank at each mark. Positions
    are in road miles from the origin, placed on the route path.
    """
    if vehicle_range <= 0:
        raise ValueError("vehicle_range must be positive")
    if not 0 <= reserve_fraction < 1:
        raise ValueError("reserve_fraction must be in [0, 1)")
    if not 0 <= fuel_level <= 1:
        raise ValueError("fuel_level must be in [0, 1]")

    reserve = reserve_fraction * vehicle_range
    current_fuel = fuel_level * vehicle_range
    covered = 0.0
    marks: List[float] = []

    for leg in route.legs:
        remaining = leg.distance_miles
        while remaining > 0:
            to_reserve = max(0.0, current_fuel - reserve)
            if remaining <= to_reserve:
                current_fuel -= remaining
                covered += remaining
                remaining = 0
            else:
                covered += to_reserve
                remaining -= to_reserve
                marks.append(covered)
                current_fuel = vehicle_range

    total = route.total_distance_miles
    geometry = route.geometry()
    targets = [
        FuelStopTarget(miles, geometry.interpolate(miles / total if total else 0.0))
        for miles in marks
    ]
    if targets:
        logger.info(
            f"Planned {len(targets)} fuel stop(s) at "
            f"{', '.join(f'{t.distance_miles:.0f} mi' for t in targets)} of {total:.0f} mi"
        )
    return targets
