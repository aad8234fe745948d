import logging
from typing import List, Sequence, Tuple

from stopover.models.route import Route
from stopover.models.stops import Stop, Waypoint

logger = logging.getLogger(__name__)


class WaypointSequencer:
    """
    Orders stops by where they fall along the baseline route.

    Always project onto the route without waypoints; projecting onto a route
    that already detours through earlier stops feeds back into the order.
    Ordering never drops anything. ``limit`` splits off the waypoints that do
    not fit in one directions request.
    """

    def __init__(self, max_waypoints: int = 8):
        self.max_waypoints = max_waypoints

    def limit(self, waypoints: Sequence[Waypoint]) -> Tuple[List[Waypoint], List[Waypoint]]:
        """Return (kept, dropped); the waypoints furthest along are dropped first."""
        kept = list(waypoints[: self.max_waypoints])
        dropped = list(waypoints[self.max_waypoints:])
        if dropped:
            logger.warning(
                f"{len(waypoints)} waypoints exceed the limit of {self.max_waypoints}; dropping "
                f"{', '.join(w.name for w in dropped)}"
            )
        return kept, dropped

    def overflow_warning(self, dropped: Sequence[Waypoint]) -> str:
        return (
            f"Too many waypoints for one route (maximum {self.max_waypoints}). "
            f"Not added to the route: {', '.join(w.name for w in dropped)}."
        )

    def order_waypoints(self, waypoints: Sequence[Waypoint], baseline_route: Route) -> List[Waypoint]:
        geometry = baseline_route.geometry()
        # sorted() is stable: equal positions keep input order
        return sorted(waypoints, key=lambda w: geometry.distance_along(w.location))

    def order(self, stops: Sequence[Stop], baseline_route: Route) -> List[Stop]:
        geometry = baseline_route.geometry()
        positioned = [
            stop.model_copy(update={"distance_along_route_miles": geometry.distance_along(stop.location)})
            for stop in stops
        ]
        ordered = sorted(positioned, key=lambda s: s.distance_along_route_miles)
        logger.info(
            "Stop order: " + " -> ".join(
                f"{s.name} ({s.distance_along_route_miles:.1f} mi)" for s in ordered
            )
        )
        return ordered
