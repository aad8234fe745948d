import logging

from fastapi import HTTPException

from stopover.core.exceptions import (
    ConfigurationError,
    GeocodingFailure,
    MapsServiceError,
    NoRouteFound,
    TripNotFound,
    WaypointNotFound,
)

logger = logging.getLogger(__name__)


def to_http_exception(e: Exception, action: str) -> HTTPException:
    """Map a service error to the HTTP status the client should see."""
    if isinstance(e, (TripNotFound, WaypointNotFound)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (GeocodingFailure, NoRouteFound)):
        logger.warning(f"{action} failed: {e}")
        return HTTPException(status_code=404, detail=e.user_message)
    if isinstance(e, ConfigurationError):
        logger.error(f"{action} failed, service misconfigured: {e}")
        return HTTPException(status_code=503, detail="Maps provider is not configured.")
    if isinstance(e, MapsServiceError):
        logger.error(f"Map service error while trying to {action}: {e}", exc_info=True)
        return HTTPException(status_code=503, detail=f"Map service error: {e}")
    if isinstance(e, ValueError):
        logger.warning(f"Validation error while trying to {action}: {e}")
        return HTTPException(status_code=400, detail=str(e))
    logger.error(f"Unexpected error while trying to {action}: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Internal server error while trying to {action}.")
