import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from stopover.core.exceptions import CandidateFetchFailure
from stopover.core.geometry import RouteGeometry
from stopover.models.category import CategoryProfile
from stopover.models.location import GeoPoint
from stopover.models.place import Candidate
from stopover.repositories.base import PlacesProvider

logger = logging.getLogger(__name__)

DEFAULT_FOCUS_BAND = (0.25, 0.75)


class CandidateSearchService:
    """
    Finds places of one category along a route.

    Searches a handful of sample points in the middle band of the route
    (plus its endpoints) instead of the whole route or every path point.
    """

    def __init__(
        self,
        places_provider: PlacesProvider,
        sample_count: int = 5,
        focus_band: Tuple[float, float] = DEFAULT_FOCUS_BAND,
        max_concurrency: int = 5,
    ):
        if not 5 <= sample_count <= 8:
            raise ValueError("sample_count must be between 5 and 8")
        self.places_provider = places_provider
        self.sample_count = sample_count
        self.focus_band = focus_band
        self._semaphore = asyncio.Semaphore(max_concurrency)

    def sample_points(
        self,
        geometry: RouteGeometry,
        focus_band: Optional[Tuple[float, float]] = None,
        include_endpoints: bool = True,
    ) -> List[GeoPoint]:
        start, end = focus_band or self.focus_band
        points = geometry.sample(start, end, self.sample_count)
        if include_endpoints:
            points = [geometry.start] + points + [geometry.end]
        unique: Dict[Tuple[float, float], GeoPoint] = {}
        for point in points:
            unique.setdefault(point.as_tuple(), point)
        return list(unique.values())

    async def _search(
        self, point: GeoPoint, radius: int, place_type: Optional[str], keyword: Optional[str]
    ) -> List[Candidate]:
        async with self._semaphore:
            return await self.places_provider.search_nearby(point, radius, place_type, keyword)

    async def find_candidates(
        self,
        geometry: RouteGeometry,
        profile: CategoryProfile,
        keyword: Optional[str] = None,
        focus_band: Optional[Tuple[float, float]] = None,
        include_endpoints: bool = True,
    ) -> List[Candidate]:
        points = self.sample_points(geometry, focus_band, include_endpoints)
        search_keyword = keyword or profile.search_keyword
        calls = [
            (point, place_type)
            for point in points
            for place_type in profile.search_types
        ]
        logger.info(
            f"Searching '{profile.key}' at {len(points)} sample points "
            f"({len(calls)} calls, radius={profile.search_radius_meters}m, keyword={search_keyword})"
        )

        results = await asyncio.gather(
            *[
                self._search(point, profile.search_radius_meters, place_type, search_keyword)
                for point, place_type in calls
            ],
            return_exceptions=True,
        )

        unique: Dict[str, Candidate] = {}
        for (point, place_type), result in zip(calls, results):
            if isinstance(result, CandidateFetchFailure):
                logger.warning(
                    f"Nearby search failed at {point.to_latlng_string()} for type={place_type}: {result}"
                )
                continue
            if isinstance(result, BaseException):
                raise result
            for candidate in result:
                unique.setdefault(candidate.place_id, candidate)

        candidates = list(unique.values())
        filtered = [c for c in candidates if self.prefilter_match(profile, c)]
        logger.info(
            f"'{profile.key}': {len(candidates)} unique candidates, {len(filtered)} after pre-filter"
        )
        # Over-include here; verification is the strict step
        return filtered if filtered else candidates

    @staticmethod
    def prefilter_match(profile: CategoryProfile, candidate: Candidate) -> bool:
        types = candidate.lower_types
        if any(t in types for t in profile.primary_types):
            return True
        if any(t in types for t in profile.fallback_types):
            return True
        name = candidate.name.lower()
        return any(keyword in name for keyword in profile.keywords)
