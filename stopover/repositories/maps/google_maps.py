import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import googlemaps
import googlemaps.exceptions

from stopover.core.exceptions import (
    ConfigurationError,
    DirectionsError,
    GeocodingFailure,
    NoRouteFound,
    PlaceDetailsError,
    PlacesSearchError,
)
from stopover.models.location import GeoPoint, ResolvedLocation
from stopover.models.place import Candidate, OpeningHours, PlaceDetails, PlaceReview
from stopover.models.route import Route, RouteLeg, RouteStep
from stopover.repositories.base import DirectionsProvider, Geocoder, PlacesProvider, RouteEndpoint

logger = logging.getLogger(__name__)

# Place Details statuses that mean "no such place" rather than a provider failure
_MISSING_PLACE_STATUSES = {"NOT_FOUND", "INVALID_REQUEST", "ZERO_RESULTS"}


def _format_endpoint(endpoint: RouteEndpoint) -> str:
    if isinstance(endpoint, GeoPoint):
        return endpoint.to_latlng_string()
    return endpoint


def parse_route(data: Dict[str, Any]) -> Route:
    legs = []
    for leg in data.get("legs", []):
        legs.append(
            RouteLeg(
                start_location=GeoPoint.from_dict(leg["start_location"]),
                end_location=GeoPoint.from_dict(leg["end_location"]),
                start_address=leg.get("start_address", ""),
                end_address=leg.get("end_address", ""),
                distance_meters=float(leg.get("distance", {}).get("value", 0)),
                duration_seconds=float(
                    leg.get("duration_in_traffic", leg.get("duration", {})).get("value", 0)
                ),
                steps=[
                    RouteStep(
                        instructions=step.get("html_instructions", ""),
                        distance_meters=float(step.get("distance", {}).get("value", 0)),
                        duration_seconds=float(step.get("duration", {}).get("value", 0)),
                        polyline=step.get("polyline", {}).get("points", ""),
                    )
                    for step in leg.get("steps", [])
                ],
            )
        )
    return Route(
        legs=legs,
        overview_polyline=data.get("overview_polyline", {}).get("points", ""),
        summary=data.get("summary", ""),
        bounds=data.get("bounds"),
        waypoint_order=data.get("waypoint_order", []),
        warnings=data.get("warnings", []),
    )


def parse_candidate(data: Dict[str, Any]) -> Candidate:
    return Candidate(
        place_id=data["place_id"],
        name=data.get("name", ""),
        location=GeoPoint.from_dict(data["geometry"]["location"]),
        types=data.get("types", []),
        rating=data.get("rating"),
        review_count=data.get("user_ratings_total") or 0,
        price_level=data.get("price_level"),
        open_now=data.get("opening_hours", {}).get("open_now"),
        vicinity=data.get("vicinity") or data.get("formatted_address", ""),
    )


def parse_details(data: Dict[str, Any]) -> PlaceDetails:
    hours = data.get("opening_hours")
    return PlaceDetails(
        **parse_candidate(data).model_dump(),
        formatted_address=data.get("formatted_address", ""),
        opening_hours=OpeningHours(**hours) if hours else None,
        reviews=[
            PlaceReview(
                author_name=review.get("author_name", ""),
                rating=review.get("rating"),
                text=review.get("text") or "",
                time=review.get("time"),
            )
            for review in data.get("reviews", [])
        ],
        phone=data.get("formatted_phone_number"),
        website=data.get("website"),
        url=data.get("url"),
    )


class GoogleMapsRepository(DirectionsProvider, PlacesProvider, Geocoder):
    """
    Google Maps Platform client (Directions, Places, Geocoding).

    The googlemaps client is synchronous; every call runs in a worker thread
    and the number of in-flight calls is bounded by a semaphore.
    """

    def __init__(self, api_key: str, timeout: float = 8.0, max_concurrency: int = 5):
        if not api_key:
            raise ConfigurationError("GOOGLE_MAPS_API_KEY is not set")
        logger.info("Initializing Google Maps client")
        try:
            self.client = googlemaps.Client(key=api_key, timeout=timeout)
        except ValueError as e:
            raise ConfigurationError(f"Invalid Google Maps API key: {e}") from e
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def _call(self, method, *args, **kwargs):
        async with self._semaphore:
            return await asyncio.to_thread(method, *args, **kwargs)

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
        waypoints_formatted = [w.to_latlng_string() for w in waypoints] if waypoints else None
        logger.info(
            f"Requesting directions from '{_format_endpoint(origin)}' to '{_format_endpoint(destination)}'"
            f"{(' via ' + str(len(waypoints_formatted)) + ' waypoints') if waypoints_formatted else ''}"
        )
        try:
            directions_result = await self._call(
                self.client.directions,
                origin=_format_endpoint(origin),
                destination=_format_endpoint(destination),
                mode="driving",
                waypoints=waypoints_formatted,
                alternatives=alternatives,
                avoid="tolls" if avoid_tolls else None,
                optimize_waypoints=optimize_waypoints,
                departure_time=datetime.now() if prefer_fast else None,
            )
        except googlemaps.exceptions.ApiError as e:
            logger.warning(f"Directions API returned status {e.status}: {e.message}")
            raise NoRouteFound(e.status, e.message) from e
        except Exception as e:
            logger.error(f"Unexpected error while getting directions: {e}", exc_info=True)
            raise DirectionsError(f"Unexpected error while getting directions: {e}") from e

        if not directions_result:
            logger.warning("Directions API returned no routes")
            raise NoRouteFound("ZERO_RESULTS")

        routes = [parse_route(r) for r in directions_result]
        logger.info(
            f"Found {len(routes)} route(s); first is {routes[0].total_distance_miles:.1f} mi, "
            f"{routes[0].total_duration_minutes:.0f} min over {len(routes[0].legs)} leg(s)"
        )
        return routes

    async def search_nearby(
        self,
        point: GeoPoint,
        radius_meters: int,
        place_type: Optional[str] = None,
        keyword: Optional[str] = None,
    ) -> List[Candidate]:
        logger.debug(
            f"Nearby search at {point.to_latlng_string()} radius={radius_meters}m "
            f"type={place_type} keyword={keyword}"
        )
        try:
            response = await self._call(
                self.client.places_nearby,
                location=point.as_tuple(),
                radius=radius_meters,
                keyword=keyword,
                type=place_type,
            )
        except googlemaps.exceptions.ApiError as e:
            logger.error(f"Google Maps API error during nearby search: {e}", exc_info=True)
            raise PlacesSearchError(f"API error during nearby search: {e}") from e
        except Exception as e:
            logger.error(f"Unexpected error during nearby search: {e}", exc_info=True)
            raise PlacesSearchError(f"Unexpected error during nearby search: {e}") from e

        return [parse_candidate(r) for r in response.get("results", []) if r.get("place_id")]

    async def text_search(self, query: str) -> List[Candidate]:
        logger.info(f"Text search for '{query}'")
        try:
            response = await self._call(self.client.places, query=query)
        except googlemaps.exceptions.ApiError as e:
            logger.error(f"Google Maps API error during text search for '{query}': {e}", exc_info=True)
            raise PlacesSearchError(f"API error during text search: {e}") from e
        except Exception as e:
            logger.error(f"Unexpected error during text search for '{query}': {e}", exc_info=True)
            raise PlacesSearchError(f"Unexpected error during text search: {e}") from e

        return [parse_candidate(r) for r in response.get("results", []) if r.get("place_id")]

    async def get_details(self, place_id: str) -> Optional[PlaceDetails]:
        logger.debug(f"Fetching details for place_id '{place_id}'")
        try:
            response = await self._call(self.client.place, place_id=place_id)
        except googlemaps.exceptions.ApiError as e:
            if e.status in _MISSING_PLACE_STATUSES:
                logger.warning(f"No details found for place_id '{place_id}' ({e.status})")
                return None
            logger.error(f"Google Maps API error while getting details for '{place_id}': {e}", exc_info=True)
            raise PlaceDetailsError(f"API error retrieving details for '{place_id}': {e}") from e
        except Exception as e:
            logger.error(f"Unexpected error while getting details for '{place_id}': {e}", exc_info=True)
            raise PlaceDetailsError(f"Unexpected error retrieving details for '{place_id}': {e}") from e

        result = response.get("result") if response else None
        if not result:
            logger.warning(f"No details found for place_id '{place_id}'")
            return None
        return parse_details(result)

    async def geocode(self, address: str) -> Optional[ResolvedLocation]:
        logger.info(f"Geocoding '{address}'")
        try:
            results = await self._call(self.client.geocode, address)
        except googlemaps.exceptions.ApiError as e:
            logger.error(f"Google Maps API error while geocoding '{address}': {e}", exc_info=True)
            raise GeocodingFailure("location", address) from e
        except Exception as e:
            logger.error(f"Unexpected error while geocoding '{address}': {e}", exc_info=True)
            raise GeocodingFailure("location", address) from e

        if not results:
            logger.warning(f"No geocoding results for '{address}'")
            return None
        first = results[0]
        return ResolvedLocation(
            query=address,
            point=GeoPoint.from_dict(first["geometry"]["location"]),
            address=first.get("formatted_address", ""),
            place_id=first.get("place_id", ""),
            source="google_geocode",
        )

    async def reverse_geocode(self, point: GeoPoint) -> Optional[str]:
        try:
            results = await self._call(self.client.reverse_geocode, point.as_tuple())
        except googlemaps.exceptions.ApiError as e:
            logger.warning(f"Reverse geocoding failed for {point.to_latlng_string()}: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error during reverse geocoding for {point.to_latlng_string()}: {e}", exc_info=True)
            return None

        if not results:
            return None
        return results[0].get("formatted_address")
