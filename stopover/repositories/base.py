from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from stopover.core.exceptions import NoRouteFound
from stopover.models.location import GeoPoint, ResolvedLocation
from stopover.models.place import Candidate, PlaceDetails
from stopover.models.route import Route
from stopover.models.trip import TripRequest

# origin/destination may be coordinates or free text the provider resolves itself
RouteEndpoint = GeoPoint | str


class DirectionsProvider(ABC):
    """Driving directions. Waypoints are visited in the given order unless
    ``optimize_waypoints`` is set."""

    @abstractmethod
    async def get_routes(
        self,
        origin: RouteEndpoint,
        destination: RouteEndpoint,
        waypoints: Optional[Sequence[GeoPoint]] = None,
        avoid_tolls: bool = False,
        prefer_fast: bool = False,
        alternatives: bool = False,
        optimize_waypoints: bool = False,
    ) -> List[Route]:
        """Return candidate routes; raise NoRouteFound on a non-success status."""
        pass

    async def get_route(
        self,
        origin: RouteEndpoint,
        destination: RouteEndpoint,
        waypoints: Optional[Sequence[GeoPoint]] = None,
        avoid_tolls: bool = False,
        prefer_fast: bool = False,
    ) -> Route:
        routes = await self.get_routes(
            origin,
            destination,
            waypoints=waypoints,
            avoid_tolls=avoid_tolls,
            prefer_fast=prefer_fast,
        )
        if not routes:
            raise NoRouteFound("ZERO_RESULTS")
        return routes[0]


class PlacesProvider(ABC):

    @abstractmethod
    async def search_nearby(
        self,
        point: GeoPoint,
        radius_meters: int,
        place_type: Optional[str] = None,
        keyword: Optional[str] = None,
    ) -> List[Candidate]:
        pass

    @abstractmethod
    async def get_details(self, place_id: str) -> Optional[PlaceDetails]:
        """Return None when the provider has no record of the place."""
        pass

    @abstractmethod
    async def text_search(self, query: str) -> List[Candidate]:
        pass


class Geocoder(ABC):

    @abstractmethod
    async def geocode(self, address: str) -> Optional[ResolvedLocation]:
        pass

    @abstractmethod
    async def reverse_geocode(self, point: GeoPoint) -> Optional[str]:
        pass


class TripRepository(ABC):
    """Storage for trip session state."""

    @abstractmethod
    async def get(self, trip_id: str) -> Optional[TripRequest]:
        pass

    @abstractmethod
    async def add(self, trip: TripRequest) -> TripRequest:
        pass

    @abstractmethod
    async def save(self, trip: TripRequest) -> TripRequest:
        pass
