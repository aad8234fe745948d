"""In-memory provider fakes and route builders shared by the test suite.

Routes are straight north-south lines along longitude -100 starting at
latitude 35, so "mile N" on a route is easy to reason about.
"""

import math
from typing import Dict, List, Optional, Sequence

from stopover.core import polyline
from stopover.core.exceptions import NoRouteFound, PlaceDetailsError, PlacesSearchError
from stopover.core.geometry import METERS_PER_MILE, haversine_miles
from stopover.models.location import GeoPoint, ResolvedLocation
from stopover.models.place import Candidate, OpeningHours, PlaceDetails, PlaceReview
from stopover.models.route import Route, RouteLeg
from stopover.repositories.base import DirectionsProvider, Geocoder, PlacesProvider
from stopover.repositories.trips import InMemoryTripRepository
from stopover.services.recalculator import RouteRecalculator
from stopover.services.resolvers import (
    CoordinateLiteralResolver,
    GeocoderResolver,
    LocationResolutionService,
    TextSearchResolver,
)
from stopover.services.search import CandidateSearchService
from stopover.services.sequencer import WaypointSequencer
from stopover.services.stop_finder import RouteStopFinder
from stopover.services.trip import TripService
from stopover.services.verification import CandidateVerifier

MILES_PER_DEGREE = 3959.0 * math.pi / 180
START_LAT = 35.0
ROUTE_LNG = -100.0
SECONDS_PER_MILE = 60.0  # 60 mph


# ---------------------------------------------------------------------------
# Route builders
# ---------------------------------------------------------------------------


def point_at_mile(mile: float, off_route_miles: float = 0.0) -> GeoPoint:
    """Point `mile` miles north of the start, shifted east by `off_route_miles`."""
    lat = START_LAT + mile / MILES_PER_DEGREE
    lng = ROUTE_LNG + off_route_miles / (MILES_PER_DEGREE * math.cos(math.radians(lat)))
    return GeoPoint(lat=lat, lng=lng)


def _off_route(point: GeoPoint) -> float:
    return haversine_miles(point, GeoPoint(lat=point.lat, lng=ROUTE_LNG))


def _line(a: GeoPoint, b: GeoPoint, step_miles: float = 5.0) -> List[GeoPoint]:
    steps = max(1, int(haversine_miles(a, b) // step_miles))
    return [
        GeoPoint(lat=a.lat + (b.lat - a.lat) * k / steps, lng=a.lng + (b.lng - a.lng) * k / steps)
        for k in range(steps + 1)
    ]


def route_through(points: Sequence[GeoPoint]) -> Route:
    """Multi-leg route visiting `points` in order with straight legs."""
    legs = []
    path: List[GeoPoint] = []
    for index, (a, b) in enumerate(zip(points, points[1:])):
        miles = haversine_miles(a, b)
        # each waypoint costs an out-and-back at 30 mph on arrival
        extra = _off_route(b) * 2 / 30 * 3600 if index < len(points) - 2 else 0.0
        legs.append(
            RouteLeg(
                start_location=a,
                end_location=b,
                start_address=f"{a.lat:.4f},{a.lng:.4f}",
                end_address=f"{b.lat:.4f},{b.lng:.4f}",
                distance_meters=miles * METERS_PER_MILE,
                duration_seconds=miles * SECONDS_PER_MILE + extra,
            )
        )
        segment = _line(a, b)
        path.extend(segment if not path else segment[1:])
    return Route(legs=legs, overview_polyline=polyline.encode(path), summary="Straight road")


def straight_route(miles: float = 300.0) -> Route:
    return route_through([point_at_mile(0), point_at_mile(miles)])


# ---------------------------------------------------------------------------
# Provider fakes
# ---------------------------------------------------------------------------


class FakeDirections(DirectionsProvider):
    """Builds straight-leg routes; records every call."""

    def __init__(self, endpoints: Optional[Dict[str, GeoPoint]] = None, fail_status: Optional[str] = None):
        self.endpoints = endpoints or {}
        self.fail_status = fail_status
        self.calls: List[dict] = []

    def _point(self, endpoint) -> GeoPoint:
        if isinstance(endpoint, GeoPoint):
            return endpoint
        return self.endpoints[endpoint]

    async def get_routes(
        self,
        origin,
        destination,
        waypoints=None,
        avoid_tolls=False,
        prefer_fast=False,
        alternatives=False,
        optimize_waypoints=False,
    ) -> List[Route]:
        self.calls.append(
            {
                "origin": origin,
                "destination": destination,
                "waypoints": list(waypoints or []),
                "avoid_tolls": avoid_tolls,
                "prefer_fast": prefer_fast,
                "optimize_waypoints": optimize_waypoints,
                "alternatives": alternatives,
            }
        )
        if self.fail_status:
            raise NoRouteFound(self.fail_status)
        points = [self._point(origin)] + list(waypoints or []) + [self._point(destination)]
        route = route_through(points)
        if alternatives:
            return [route, route.model_copy(update={"summary": "Scenic byway"})]
        return [route]

    @property
    def waypoint_calls(self) -> List[dict]:
        return [c for c in self.calls if c["waypoints"]]


class FakePlaces(PlacesProvider):
    def __init__(self):
        self.candidates: List[Candidate] = []
        self.details: Dict[str, PlaceDetails] = {}
        self.text_results: Dict[str, List[Candidate]] = {}
        self.failing_types: set = set()
        self.failing_details: set = set()
        self.missing_details: set = set()
        self.search_calls: List[dict] = []
        self.detail_calls: List[str] = []

    def add(
        self,
        place_id: str,
        name: str,
        location: GeoPoint,
        types: Sequence[str] = ("restaurant",),
        rating: Optional[float] = 4.5,
        review_count: int = 200,
        reviews: Sequence[str] = (),
        opening_hours: Optional[OpeningHours] = None,
        price_level: Optional[int] = None,
    ) -> Candidate:
        candidate = Candidate(
            place_id=place_id,
            name=name,
            location=location,
            types=list(types),
            rating=rating,
            review_count=review_count,
            price_level=price_level,
            vicinity=f"{name} address",
        )
        self.candidates.append(candidate)
        self.details[place_id] = PlaceDetails(
            **candidate.model_dump(),
            formatted_address=f"1 Main St, {name}",
            opening_hours=opening_hours,
            reviews=[PlaceReview(author_name="guest", rating=5, text=text) for text in reviews],
            phone="555-0100",
        )
        return candidate

    async def search_nearby(self, point, radius_meters, place_type=None, keyword=None) -> List[Candidate]:
        self.search_calls.append(
            {"point": point, "radius": radius_meters, "type": place_type, "keyword": keyword}
        )
        if place_type in self.failing_types:
            raise PlacesSearchError(f"search failed for {place_type}")
        radius_miles = radius_meters / METERS_PER_MILE
        return [
            c for c in self.candidates
            if haversine_miles(point, c.location) <= radius_miles
            and (place_type is None or place_type in c.types)
        ]

    async def get_details(self, place_id: str) -> Optional[PlaceDetails]:
        self.detail_calls.append(place_id)
        if place_id in self.failing_details:
            raise PlaceDetailsError(f"details failed for {place_id}")
        if place_id in self.missing_details:
            return None
        return self.details.get(place_id)

    async def text_search(self, query: str) -> List[Candidate]:
        return self.text_results.get(query, [])


class FakeGeocoder(Geocoder):
    def __init__(self, known: Optional[Dict[str, GeoPoint]] = None):
        self.known = known or {}
        self.queries: List[str] = []

    async def geocode(self, address: str) -> Optional[ResolvedLocation]:
        self.queries.append(address)
        point = self.known.get(address)
        if point is None:
            return None
        return ResolvedLocation(query=address, point=point, address=address.title(), source="fake")

    async def reverse_geocode(self, point: GeoPoint) -> Optional[str]:
        return f"Near {point.lat:.2f},{point.lng:.2f}"


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def build_stop_finder(places: FakePlaces, directions: FakeDirections, geocoder=None) -> RouteStopFinder:
    return RouteStopFinder(
        search_service=CandidateSearchService(places),
        verifier=CandidateVerifier(places, directions),
        sequencer=WaypointSequencer(),
        recalculator=RouteRecalculator(directions),
        geocoder=geocoder,
    )


def build_trip_service(
    places: FakePlaces,
    directions: FakeDirections,
    geocoder: Optional[FakeGeocoder] = None,
    repository=None,
) -> TripService:
    geocoder = geocoder or FakeGeocoder()
    resolver = LocationResolutionService(
        [CoordinateLiteralResolver(), GeocoderResolver(geocoder), TextSearchResolver(places)]
    )
    return TripService(
        trip_repository=repository or InMemoryTripRepository(),
        directions_provider=directions,
        location_resolver=resolver,
        stop_finder=build_stop_finder(places, directions, geocoder),
        sequencer=WaypointSequencer(),
        recalculator=RouteRecalculator(directions),
    )
