from typing import Optional


class StopoverError(Exception):
    """Base class for all stopover errors."""
    pass


class ConfigurationError(StopoverError):
    """A required provider credential or setting is missing."""
    pass


class PolylineDecodeError(StopoverError, ValueError):
    """Encoded polyline is malformed or truncated."""
    pass


class TripNotFound(StopoverError):
    def __init__(self, trip_id: str):
        self.trip_id = trip_id
        super().__init__(f"Trip '{trip_id}' not found")


# Provider errors

class MapsServiceError(StopoverError):
    """Base class for maps provider errors."""
    pass


class GeocodingFailure(MapsServiceError):
    """Origin and/or destination could not be resolved to coordinates."""

    def __init__(self, side: str, query: str = ""):
        self.side = side
        self.query = query
        if side == "both":
            message = "Could not find either location. Please check the origin and destination."
        else:
            message = f"Could not find the {side} location"
            if query:
                message += f" '{query}'"
            message += ". Please check the spelling or try a more specific address."
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return str(self)


class DirectionsError(MapsServiceError):
    """Error retrieving directions."""
    pass


class NoRouteFound(DirectionsError):
    """Directions provider returned no route or a non-success status."""

    STATUS_MESSAGES = {
        "ZERO_RESULTS": "No driving route exists between these locations. They may be too far apart or have no road connection.",
        "NOT_FOUND": "One of the locations or waypoints could not be found. Please check that every stop is a valid place.",
        "INVALID_REQUEST": "One of the waypoints is invalid. Please check the stops on this route.",
        "MAX_WAYPOINTS_EXCEEDED": "Too many waypoints. Please remove some stops and try again (maximum 25).",
        "MAX_ROUTE_LENGTH_EXCEEDED": "This route is too long to calculate. Try splitting it into shorter trips.",
    }

    def __init__(self, status: str, detail: Optional[str] = None):
        self.status = status
        self.detail = detail
        message = f"No route found (status: {status})"
        if detail:
            message += f": {detail}"
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return self.STATUS_MESSAGES.get(
            self.status, f"Could not calculate the route ({self.status}). Please try again."
        )


class WaypointRecalculationFailure(DirectionsError):
    """Route could not be rebuilt through the requested waypoints."""
    pass


class CandidateFetchFailure(MapsServiceError):
    """A single places search or detail call failed."""
    pass


class PlacesSearchError(CandidateFetchFailure):
    """Error searching for places."""
    pass


class PlaceDetailsError(CandidateFetchFailure):
    """Error retrieving place details."""
    pass


class WaypointNotFound(StopoverError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Waypoint '{name}' is not on this trip")
