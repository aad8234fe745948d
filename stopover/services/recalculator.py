import logging
from typing import NamedTuple, Optional, Sequence

from stopover.core.exceptions import DirectionsError, NoRouteFound, WaypointRecalculationFailure
from stopover.models.location import GeoPoint
from stopover.models.route import Route
from stopover.models.stops import Waypoint
from stopover.repositories.base import DirectionsProvider, RouteEndpoint

logger = logging.getLogger(__name__)


class RecalculationResult(NamedTuple):
    route: Route
    applied: bool
    warning: Optional[str] = None


class RouteRecalculator:
    """Rebuilds a route through waypoints in the order given."""

    def __init__(self, directions_provider: DirectionsProvider):
        self.directions_provider = directions_provider

    @staticmethod
    def endpoints(
        baseline_route: Optional[Route], origin: str = "", destination: str = ""
    ) -> tuple[RouteEndpoint, RouteEndpoint]:
        # Leg endpoint coordinates avoid geocoding the free-text addresses again
        if baseline_route is not None:
            return baseline_route.origin, baseline_route.destination
        if not origin or not destination:
            raise ValueError("Route recalculation needs a baseline route or origin and destination")
        return origin, destination

    async def recalculate(
        self,
        waypoints: Sequence[Waypoint],
        baseline_route: Optional[Route] = None,
        origin: str = "",
        destination: str = "",
        avoid_tolls: bool = False,
        prefer_fast: bool = False,
    ) -> Route:
        start, end = self.endpoints(baseline_route, origin, destination)
        points: list[GeoPoint] = [w.location for w in waypoints]
        logger.info(
            f"Recalculating route through {len(points)} waypoint(s): "
            f"{', '.join(w.name for w in waypoints) or 'none'}"
        )
        routes = await self.directions_provider.get_routes(
            start,
            end,
            waypoints=points or None,
            avoid_tolls=avoid_tolls,
            prefer_fast=prefer_fast,
            alternatives=False,
            optimize_waypoints=False,
        )
        if not routes:
            raise NoRouteFound("ZERO_RESULTS")
        route = routes[0]
        if points and len(route.legs) != len(points) + 1:
            raise WaypointRecalculationFailure(
                f"Expected {len(points) + 1} legs, provider returned {len(route.legs)}"
            )
        if not route.is_contiguous():
            raise WaypointRecalculationFailure("Provider returned legs that do not join end to start")
        return route

    async def recalculate_or_keep(
        self,
        previous_route: Route,
        waypoints: Sequence[Waypoint],
        baseline_route: Optional[Route] = None,
        avoid_tolls: bool = False,
        prefer_fast: bool = False,
    ) -> RecalculationResult:
        """Never loses the route: on failure the previous one comes back with a warning."""
        try:
            route = await self.recalculate(
                waypoints,
                baseline_route=baseline_route or previous_route,
                avoid_tolls=avoid_tolls,
                prefer_fast=prefer_fast,
            )
        except NoRouteFound as e:
            logger.warning(f"Route recalculation failed ({e.status}); keeping previous route")
            return RecalculationResult(previous_route, False, e.user_message)
        except DirectionsError as e:
            logger.error(f"Route recalculation failed: {e}; keeping previous route", exc_info=True)
            return RecalculationResult(
                previous_route, False, "Could not update the route with these stops; showing the previous route."
            )
        return RecalculationResult(route, True)
