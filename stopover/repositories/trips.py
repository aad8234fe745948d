import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from stopover.models.trip import TripRequest
from stopover.repositories.base import TripRepository

logger = logging.getLogger(__name__)


class InMemoryTripRepository(TripRepository):
    """Process-local trip store. Returns copies so callers cannot mutate stored state."""

    def __init__(self):
        self._trips: Dict[str, TripRequest] = {}

    async def get(self, trip_id: str) -> Optional[TripRequest]:
        trip = self._trips.get(trip_id)
        return trip.model_copy(deep=True) if trip else None

    async def add(self, trip: TripRequest) -> TripRequest:
        if trip.id in self._trips:
            raise ValueError(f"Trip '{trip.id}' already exists")
        self._trips[trip.id] = trip.model_copy(deep=True)
        logger.info(f"Created trip '{trip.id}' from '{trip.origin}' to '{trip.destination}'")
        return trip

    async def save(self, trip: TripRequest) -> TripRequest:
        trip.updated_at = datetime.now(timezone.utc)
        self._trips[trip.id] = trip.model_copy(deep=True)
        return trip
