import asyncio
import logging
from typing import Dict, Optional

from stopover.core.exceptions import TripNotFound, WaypointNotFound
from stopover.models.search import (
    CategoryFilter,
    FindStopsRequest,
    FindStopsResponse,
    FuelContext,
    RouteUpdateResponse,
    TimeContext,
)
from stopover.models.stops import Waypoint
from stopover.models.trip import TripPreferences, TripRequest
from stopover.repositories.base import DirectionsProvider, TripRepository
from stopover.services.preferences import merge_preferences
from stopover.services.recalculator import RouteRecalculator
from stopover.services.resolvers import LocationResolutionService
from stopover.services.sequencer import WaypointSequencer
from stopover.services.stop_finder import RouteStopFinder

logger = logging.getLogger(__name__)


class TripService:
    """
    Session-level trip operations.

    Every read-modify-write of a trip runs under that trip's lock, so two
    concurrent requests for the same trip cannot lose each other's updates.
    """

    def __init__(
        self,
        trip_repository: TripRepository,
        directions_provider: DirectionsProvider,
        location_resolver: LocationResolutionService,
        stop_finder: RouteStopFinder,
        sequencer: WaypointSequencer,
        recalculator: RouteRecalculator,
    ):
        self.trip_repository = trip_repository
        self.directions_provider = directions_provider
        self.location_resolver = location_resolver
        self.stop_finder = stop_finder
        self.sequencer = sequencer
        self.recalculator = recalculator
        self._locks: Dict[str, asyncio.Lock] = {}

    async def lock_for(self, trip_id: str) -> asyncio.Lock:
        """The trip's lock, created on first use; unknown ids raise TripNotFound and get none."""
        lock = self._locks.get(trip_id)
        if lock is None:
            await self._load(trip_id)
            lock = self._locks.setdefault(trip_id, asyncio.Lock())
        return lock

    async def _load(self, trip_id: str) -> TripRequest:
        trip = await self.trip_repository.get(trip_id)
        if trip is None:
            raise TripNotFound(trip_id)
        return trip

    async def create_trip(
        self,
        origin: str,
        destination: str,
        fuel_level: Optional[float] = None,
        vehicle_range: Optional[float] = None,
        preferences: Optional[TripPreferences] = None,
    ) -> TripRequest:
        trip = TripRequest(
            origin=origin,
            destination=destination,
            fuel_level=fuel_level,
            vehicle_range=vehicle_range,
            preferences=merge_preferences(TripPreferences(), preferences or TripPreferences()),
        )
        return await self.trip_repository.add(trip)

    async def get_trip(self, trip_id: str) -> TripRequest:
        return await self._load(trip_id)

    async def update_preferences(
        self,
        trip_id: str,
        update: TripPreferences,
        fuel_level: Optional[float] = None,
        vehicle_range: Optional[float] = None,
    ) -> TripRequest:
        async with await self.lock_for(trip_id):
            trip = await self._load(trip_id)
            trip.preferences = merge_preferences(trip.preferences, update)
            if fuel_level is not None:
                trip.fuel_level = fuel_level
            if vehicle_range is not None:
                trip.vehicle_range = vehicle_range
            logger.info(
                f"Trip '{trip_id}' preferences now request: "
                f"{', '.join(k for k, v in trip.preferences.requested_stops.items() if v) or 'nothing'}"
            )
            return await self.trip_repository.save(trip)

    async def _plan_route(self, trip: TripRequest) -> TripRequest:
        origin, destination = await self.location_resolver.resolve_endpoints(trip.origin, trip.destination)
        prefs = trip.preferences
        routes = await self.directions_provider.get_routes(
            origin.point,
            destination.point,
            avoid_tolls=bool(prefs.avoid_tolls),
            prefer_fast=bool(prefs.fast),
            alternatives=bool(prefs.scenic),
        )
        # Scenic trips prefer the first alternative over the fastest route
        route = routes[1] if prefs.scenic and len(routes) > 1 else routes[0]
        trip.route = route
        trip.baseline_route = route
        trip.waypoints = []
        trip.stops = []
        logger.info(
            f"Planned trip '{trip.id}': {route.total_distance_miles:.0f} mi, {route.total_duration_minutes:.0f} min"
        )
        return trip

    async def plan_route(self, trip_id: str) -> TripRequest:
        async with await self.lock_for(trip_id):
            trip = await self._plan_route(await self._load(trip_id))
            return await self.trip_repository.save(trip)

    async def find_stops(
        self,
        trip_id: str,
        per_category_filters: Optional[Dict[str, CategoryFilter]] = None,
        time_context: Optional[TimeContext] = None,
    ) -> FindStopsResponse:
        async with await self.lock_for(trip_id):
            trip = await self._load(trip_id)
            if trip.baseline_route is None:
                trip = await self._plan_route(trip)

            prefs = trip.preferences
            categories = dict(prefs.requested_stops)
            if prefs.scenic and "scenic" not in categories:
                categories["scenic"] = True
            fuel = None
            if trip.fuel_level is not None and trip.vehicle_range is not None:
                fuel = FuelContext(fuel_level=trip.fuel_level, vehicle_range=trip.vehicle_range)

            request = FindStopsRequest(
                route=trip.baseline_route,
                requested_categories=categories,
                per_category_filters=per_category_filters or {},
                custom_stops=prefs.custom_stops,
                fuel=fuel,
                avoid_tolls=bool(prefs.avoid_tolls),
                prefer_fast=bool(prefs.fast),
                time_context=time_context,
            )
            response = await self.stop_finder.find_stops(request, prefs.restaurant_preferences)

            trip.stops = response.stops
            if response.waypoints:
                trip.route = response.updated_route
                trip.waypoints = response.waypoints
            await self.trip_repository.save(trip)
            return response

    async def add_waypoint(self, trip_id: str, waypoint: Waypoint) -> RouteUpdateResponse:
        async with await self.lock_for(trip_id):
            trip = await self._load(trip_id)
            if trip.baseline_route is None:
                trip = await self._plan_route(trip)

            others = [w for w in trip.waypoints if w.name != waypoint.name]
            ordered, dropped = self.sequencer.limit(
                self.sequencer.order_waypoints(others + [waypoint], trip.baseline_route)
            )
            result = await self.recalculator.recalculate_or_keep(
                trip.route or trip.baseline_route,
                ordered,
                baseline_route=trip.baseline_route,
                avoid_tolls=bool(trip.preferences.avoid_tolls),
                prefer_fast=bool(trip.preferences.fast),
            )
            if result.applied:
                trip.route = result.route
                trip.waypoints = ordered
            await self.trip_repository.save(trip)
            warnings = [result.warning] if result.warning else []
            if dropped:
                warnings.append(self.sequencer.overflow_warning(dropped))
            return RouteUpdateResponse(
                updated_route=trip.route, waypoints=trip.waypoints, warning=" ".join(warnings) or None
            )

    async def remove_waypoint(self, trip_id: str, waypoint_name: str) -> RouteUpdateResponse:
        async with await self.lock_for(trip_id):
            trip = await self._load(trip_id)
            remaining = [w for w in trip.waypoints if w.name != waypoint_name]
            if len(remaining) == len(trip.waypoints):
                raise WaypointNotFound(waypoint_name)

            warning = None
            if not remaining:
                trip.route = trip.baseline_route
                trip.waypoints = []
            else:
                result = await self.recalculator.recalculate_or_keep(
                    trip.route,
                    remaining,
                    baseline_route=trip.baseline_route,
                    avoid_tolls=bool(trip.preferences.avoid_tolls),
                    prefer_fast=bool(trip.preferences.fast),
                )
                warning = result.warning
                if result.applied:
                    trip.route = result.route
                    trip.waypoints = remaining
            await self.trip_repository.save(trip)
            return RouteUpdateResponse(updated_route=trip.route, waypoints=trip.waypoints, warning=warning)
