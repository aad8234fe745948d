import logging
from typing import Optional
from fastapi import APIRouter, Depends

from stopover.api.dependencies import get_trip_service
from stopover.api.v1.errors import to_http_exception
from stopover.api.v1.models import (
    AddWaypointRequest,
    CreateTripRequest,
    TripStopsRequest,
    UpdatePreferencesRequest,
)
from stopover.models.search import FindStopsResponse, RouteUpdateResponse
from stopover.models.trip import TripRequest
from stopover.services.trip import TripService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=TripRequest, status_code=201)
async def create_trip(
    request: CreateTripRequest,
    trip_service: TripService = Depends(get_trip_service),
):
    """Create a trip and, unless told otherwise, plan its route."""
    try:
        logger.info(f"Creating trip from '{request.origin}' to '{request.destination}'")
        trip = await trip_service.create_trip(
            origin=request.origin,
            destination=request.destination,
            fuel_level=request.fuel_level,
            vehicle_range=request.vehicle_range,
            preferences=request.preferences,
        )
        if request.plan_route:
            trip = await trip_service.plan_route(trip.id)
        return trip
    except Exception as e:
        raise to_http_exception(e, "create trip") from e


@router.get("/{trip_id}", response_model=TripRequest)
async def get_trip(trip_id: str, trip_service: TripService = Depends(get_trip_service)):
    try:
        return await trip_service.get_trip(trip_id)
    except Exception as e:
        raise to_http_exception(e, "get trip") from e


@router.patch("/{trip_id}/preferences", response_model=TripRequest)
async def update_preferences(
    trip_id: str,
    request: UpdatePreferencesRequest,
    trip_service: TripService = Depends(get_trip_service),
):
    """Merge new preferences into the trip; earlier requests are kept."""
    try:
        return await trip_service.update_preferences(
            trip_id,
            request.preferences,
            fuel_level=request.fuel_level,
            vehicle_range=request.vehicle_range,
        )
    except Exception as e:
        raise to_http_exception(e, "update preferences") from e


@router.post("/{trip_id}/route", response_model=TripRequest)
async def plan_route(trip_id: str, trip_service: TripService = Depends(get_trip_service)):
    """(Re)plan the baseline route. Clears waypoints and stops."""
    try:
        return await trip_service.plan_route(trip_id)
    except Exception as e:
        raise to_http_exception(e, "plan route") from e


@router.post("/{trip_id}/stops", response_model=FindStopsResponse)
async def find_trip_stops(
    trip_id: str,
    request: Optional[TripStopsRequest] = None,
    trip_service: TripService = Depends(get_trip_service),
):
    """Find stops for the trip's requested categories and route through them."""
    try:
        request = request or TripStopsRequest()
        response = await trip_service.find_stops(
            trip_id,
            per_category_filters=request.per_category_filters,
            time_context=request.time_context,
        )
        logger.info(f"Trip '{trip_id}': {len(response.stops)} stop(s) found")
        return response
    except Exception as e:
        raise to_http_exception(e, "find stops") from e


@router.post("/{trip_id}/waypoints", response_model=RouteUpdateResponse)
async def add_waypoint(
    trip_id: str,
    request: AddWaypointRequest,
    trip_service: TripService = Depends(get_trip_service),
):
    try:
        return await trip_service.add_waypoint(trip_id, request.waypoint)
    except Exception as e:
        raise to_http_exception(e, "add waypoint") from e


@router.delete("/{trip_id}/waypoints/{waypoint_name}", response_model=RouteUpdateResponse)
async def remove_waypoint(
    trip_id: str,
    waypoint_name: str,
    trip_service: TripService = Depends(get_trip_service),
):
    try:
        return await trip_service.remove_waypoint(trip_id, waypoint_name)
    except Exception as e:
        raise to_http_exception(e, "remove waypoint") from e
