from functools import lru_cache

from stopover.core.settings import get_settings
from stopover.repositories.maps.google_maps import GoogleMapsRepository
from stopover.repositories.maps.nominatim import NominatimGeocoder
from stopover.repositories.trips import InMemoryTripRepository
from stopover.services.recalculator import RouteRecalculator
from stopover.services.resolvers import (
    CoordinateLiteralResolver,
    GeocoderResolver,
    LocationResolutionService,
    TextSearchResolver,
)
from stopover.services.scoring import RelaxationPolicy
from stopover.services.search import CandidateSearchService
from stopover.services.sequencer import WaypointSequencer
from stopover.services.stop_finder import RouteStopFinder
from stopover.services.trip import TripService
from stopover.services.verification import CandidateVerifier


@lru_cache()
def get_maps_repository() -> GoogleMapsRepository:
    """Get GoogleMapsRepository instance. Raises ConfigurationError without an API key."""
    settings = get_settings()
    return GoogleMapsRepository(
        api_key=settings.GOOGLE_MAPS_API_KEY,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        max_concurrency=settings.MAX_CONCURRENT_PROVIDER_CALLS,
    )


@lru_cache()
def get_trip_repository() -> InMemoryTripRepository:
    return InMemoryTripRepository()


@lru_cache()
def get_location_resolver() -> LocationResolutionService:
    settings = get_settings()
    maps_repository = get_maps_repository()
    resolvers = [
        CoordinateLiteralResolver(),
        GeocoderResolver(maps_repository, name="google_geocode"),
        TextSearchResolver(maps_repository),
    ]
    if settings.NOMINATIM_ENABLED:
        resolvers.append(
            GeocoderResolver(
                NominatimGeocoder(
                    base_url=settings.NOMINATIM_URL,
                    user_agent=settings.NOMINATIM_USER_AGENT,
                    timeout=settings.PROVIDER_TIMEOUT_SECONDS,
                ),
                name="nominatim",
            )
        )
    return LocationResolutionService(resolvers)


@lru_cache()
def get_stop_finder() -> RouteStopFinder:
    """Get RouteStopFinder wired to Google Maps and the configured limits."""
    settings = get_settings()
    maps_repository = get_maps_repository()
    policy = RelaxationPolicy(multiplier=settings.RELAXATION_MULTIPLIER)
    return RouteStopFinder(
        search_service=CandidateSearchService(
            maps_repository, max_concurrency=settings.MAX_CONCURRENT_PROVIDER_CALLS
        ),
        verifier=CandidateVerifier(
            maps_repository,
            maps_repository,
            relaxation_policy=policy,
            max_candidates=settings.MAX_CANDIDATES_PER_CATEGORY,
            average_speed_mph=settings.AVERAGE_DETOUR_SPEED_MPH,
            max_concurrency=settings.MAX_CONCURRENT_PROVIDER_CALLS,
        ),
        sequencer=WaypointSequencer(settings.MAX_WAYPOINTS),
        recalculator=RouteRecalculator(maps_repository),
        geocoder=maps_repository,
        relaxation_policy=policy,
        default_max_detour_minutes=settings.DEFAULT_MAX_DETOUR_MINUTES,
        default_max_off_route_miles=settings.DEFAULT_MAX_OFF_ROUTE_MILES,
        fuel_reserve_fraction=settings.FUEL_RESERVE_FRACTION,
        fuel_window_miles=settings.FUEL_STOP_WINDOW_MILES,
    )


@lru_cache()
def get_trip_service() -> TripService:
    """Single TripService per process; it owns the per-trip locks."""
    settings = get_settings()
    maps_repository = get_maps_repository()
    return TripService(
        trip_repository=get_trip_repository(),
        directions_provider=maps_repository,
        location_resolver=get_location_resolver(),
        stop_finder=get_stop_finder(),
        sequencer=WaypointSequencer(settings.MAX_WAYPOINTS),
        recalculator=RouteRecalculator(maps_repository),
    )
