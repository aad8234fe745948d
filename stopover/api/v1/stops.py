import logging
from fastapi import APIRouter, Depends

from stopover.api.dependencies import get_stop_finder
from stopover.api.v1.errors import to_http_exception
from stopover.models.search import FindStopsRequest, FindStopsResponse
from stopover.services.stop_finder import RouteStopFinder

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/search", response_model=FindStopsResponse)
async def search_stops(
    request: FindStopsRequest,
    stop_finder: RouteStopFinder = Depends(get_stop_finder),
):
    """Find and rank stops along a given route without storing anything."""
    try:
        requested = [name for name, wanted in request.requested_categories.items() if wanted]
        logger.info(f"Received stop search for {requested} on a {len(request.route.legs)}-leg route")
        return await stop_finder.find_stops(request)
    except Exception as e:
        raise to_http_exception(e, "search stops") from e
