import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

from stopover.core.exceptions import GeocodingFailure, MapsServiceError
from stopover.models.location import GeoPoint, ResolvedLocation
from stopover.repositories.base import Geocoder, PlacesProvider

logger = logging.getLogger(__name__)

_LATLNG = re.compile(r"^\s*(-?\d{1,2}(?:\.\d+)?)\s*,\s*(-?\d{1,3}(?:\.\d+)?)\s*$")


class Resolver(ABC):
    """One strategy for turning free text into coordinates."""

    name = "resolver"

    @abstractmethod
    async def resolve(self, query: str) -> Optional[ResolvedLocation]:
        """Return None when this strategy cannot resolve the query."""
        pass


class CoordinateLiteralResolver(Resolver):
    name = "coordinates"

    async def resolve(self, query: str) -> Optional[ResolvedLocation]:
        match = _LATLNG.match(query)
        if not match:
            return None
        lat, lng = float(match.group(1)), float(match.group(2))
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            return None
        return ResolvedLocation(query=query, point=GeoPoint(lat=lat, lng=lng), address=query, source=self.name)


class GeocoderResolver(Resolver):

    def __init__(self, geocoder: Geocoder, name: str = "geocode"):
        self.geocoder = geocoder
        self.name = name

    async def resolve(self, query: str) -> Optional[ResolvedLocation]:
        return await self.geocoder.geocode(query)


class TextSearchResolver(Resolver):
    """Resolves landmarks and business names the geocoder misses."""

    name = "text_search"

    def __init__(self, places_provider: PlacesProvider):
        self.places_provider = places_provider

    async def resolve(self, query: str) -> Optional[ResolvedLocation]:
        results = await self.places_provider.text_search(query)
        if not results:
            return None
        best = results[0]
        return ResolvedLocation(
            query=query,
            point=best.location,
            address=best.vicinity or best.name,
            place_id=best.place_id,
            source=self.name,
        )


class LocationResolutionService:
    """Tries each resolver in order; the first non-empty result wins."""

    def __init__(self, resolvers: Sequence[Resolver]):
        self.resolvers = list(resolvers)

    async def resolve(self, query: str) -> Optional[ResolvedLocation]:
        for resolver in self.resolvers:
            try:
                result = await resolver.resolve(query)
            except MapsServiceError as e:
                logger.warning(f"Resolver '{resolver.name}' failed for '{query}': {e}")
                continue
            if result is not None:
                logger.info(
                    f"Resolved '{query}' via {resolver.name} to {result.point.to_latlng_string()}"
                )
                return result
        logger.warning(f"No resolver could locate '{query}'")
        return None

    async def resolve_endpoints(
        self, origin: str, destination: str
    ) -> Tuple[ResolvedLocation, ResolvedLocation]:
        start, end = await asyncio.gather(self.resolve(origin), self.resolve(destination))
        if start is None and end is None:
            raise GeocodingFailure("both")
        if start is None:
            raise GeocodingFailure("origin", origin)
        if end is None:
            raise GeocodingFailure("destination", destination)
        return start, end
