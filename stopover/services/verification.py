import asyncio
import logging
import math
from typing import List, NamedTuple, Optional

from stopover.core.exceptions import CandidateFetchFailure, DirectionsError
from stopover.core.geometry import RouteGeometry
from stopover.models.category import CategoryProfile
from stopover.models.place import Candidate, PlaceDetails
from stopover.models.route import Route
from stopover.repositories.base import DirectionsProvider, PlacesProvider
from stopover.services.scoring import (
    RelaxationPolicy,
    ScoredCandidate,
    ScoringWeights,
    StopConstraints,
    composite_score,
    meets_quality,
)

logger = logging.getLogger(__name__)


class RouteContext(NamedTuple):
    route: Route
    geometry: RouteGeometry
    avoid_tolls: bool = False
    prefer_fast: bool = False

    @classmethod
    def for_route(cls, route: Route, avoid_tolls: bool = False, prefer_fast: bool = False) -> "RouteContext":
        return cls(route, route.geometry(), avoid_tolls, prefer_fast)


class _Projected(NamedTuple):
    candidate: Candidate
    strict_quality: bool
    off_route_miles: float
    along_route_miles: float
    route_progress: float
    proxy_detour_minutes: float


def category_matches(profile: CategoryProfile, candidate: Candidate, details: PlaceDetails) -> bool:
    """Any of type, fallback type, name keyword or review keyword confirms the category."""
    if not profile.explicit:
        return True
    types = set(candidate.lower_types) | set(details.lower_types)
    if any(t in types for t in profile.primary_types):
        return True
    if any(t in types for t in profile.fallback_types):
        return True
    names = (candidate.name.lower(), details.name.lower())
    if any(keyword in name for keyword in profile.keywords for name in names):
        return True
    reviews = details.review_text
    return bool(reviews) and any(keyword in reviews for keyword in profile.keywords)


class CandidateVerifier:
    """
    Turns raw candidates into scored candidates.

    Cheap checks (quality gate, proxy detour) run first; details and
    directions calls are only made for the top few survivors.
    """

    def __init__(
        self,
        places_provider: PlacesProvider,
        directions_provider: DirectionsProvider,
        weights: Optional[ScoringWeights] = None,
        relaxation_policy: Optional[RelaxationPolicy] = None,
        max_candidates: int = 8,
        average_speed_mph: float = 30.0,
        directions_budget_factor: float = 1.5,
        max_concurrency: int = 5,
    ):
        self.places_provider = places_provider
        self.directions_provider = directions_provider
        self.weights = weights or ScoringWeights()
        self.relaxation_policy = relaxation_policy or RelaxationPolicy()
        self.max_candidates = max_candidates
        self.average_speed_mph = average_speed_mph
        self.directions_budget_factor = directions_budget_factor
        self._semaphore = asyncio.Semaphore(max_concurrency)

    def proxy_detour_minutes(self, off_route_miles: float) -> float:
        # out and back at average speed
        return off_route_miles / self.average_speed_mph * 60 * 2

    def _cheap_rank(self, item: _Projected) -> tuple:
        rating = item.candidate.rating or 0.0
        proxy = (
            rating * self.weights.rating
            + math.log10(item.candidate.review_count + 1) * self.weights.review_volume
            - item.off_route_miles * self.weights.off_route_mile_penalty
        )
        return (item.strict_quality, proxy)

    def preselect(
        self,
        candidates: List[Candidate],
        context: RouteContext,
        constraints: StopConstraints,
    ) -> List[_Projected]:
        relaxed = self.relaxation_policy.relax(constraints)
        survivors = []
        for candidate in candidates:
            if not meets_quality(candidate.rating, candidate.review_count, relaxed):
                logger.debug(
                    f"Dropping '{candidate.name}': rating={candidate.rating} reviews={candidate.review_count}"
                )
                continue
            projection = context.geometry.project(candidate.location)
            off_route = projection.distance_miles
            proxy = self.proxy_detour_minutes(off_route)
            if (proxy > constraints.max_detour_minutes * 2
                    and off_route > constraints.max_off_route_miles * 2):
                logger.debug(f"Dropping '{candidate.name}': {off_route:.2f} mi off route")
                continue
            progress = context.geometry.progress_of(candidate.location)
            survivors.append(
                _Projected(
                    candidate,
                    meets_quality(candidate.rating, candidate.review_count, constraints),
                    off_route,
                    projection.along_miles,
                    progress,
                    proxy,
                )
            )
        survivors.sort(key=self._cheap_rank, reverse=True)
        return survivors[: self.max_candidates]

    async def _fetch_details(self, place_id: str) -> Optional[PlaceDetails]:
        async with self._semaphore:
            return await self.places_provider.get_details(place_id)

    async def measure_detour(self, context: RouteContext, item: _Projected, budget_minutes: float):
        """Return (detour_minutes, estimated)."""
        if item.proxy_detour_minutes > budget_minutes * self.directions_budget_factor:
            return item.proxy_detour_minutes, True
        route = context.route
        try:
            async with self._semaphore:
                with_stop = await self.directions_provider.get_route(
                    route.origin,
                    route.destination,
                    waypoints=[item.candidate.location],
                    avoid_tolls=context.avoid_tolls,
                    prefer_fast=context.prefer_fast,
                )
        except DirectionsError as e:
            logger.warning(
                f"Detour directions failed for '{item.candidate.name}', using estimate: {e}"
            )
            return item.proxy_detour_minutes, True
        added = (with_stop.total_duration_seconds - route.total_duration_seconds) / 60
        return max(0.0, added), False

    async def _verify_one(
        self,
        item: _Projected,
        context: RouteContext,
        profile: CategoryProfile,
        constraints: StopConstraints,
    ) -> Optional[ScoredCandidate]:
        candidate = item.candidate
        details = await self._fetch_details(candidate.place_id)
        if details is None:
            logger.info(f"No details for '{candidate.name}' ({candidate.place_id}); excluded")
            return None
        if not category_matches(profile, candidate, details):
            logger.info(f"'{candidate.name}' does not look like {profile.label}; excluded")
            return None

        # Search results sometimes omit fields the detail record has
        details = details.model_copy(
            update={
                "rating": details.rating if details.rating is not None else candidate.rating,
                "review_count": details.review_count or candidate.review_count,
            }
        )
        detour, estimated = await self.measure_detour(context, item, constraints.max_detour_minutes)
        score = composite_score(
            details.rating or 0.0,
            details.review_count,
            detour,
            item.off_route_miles,
            item.route_progress,
            profile.explicit,
            self.weights,
        )
        return ScoredCandidate(
            details=details,
            profile=profile,
            off_route_miles=item.off_route_miles,
            along_route_miles=item.along_route_miles,
            route_progress=item.route_progress,
            detour_minutes=detour,
            detour_estimated=estimated,
            score=score,
        )

    async def evaluate(
        self,
        candidates: List[Candidate],
        context: RouteContext,
        profile: CategoryProfile,
        constraints: StopConstraints,
    ) -> List[ScoredCandidate]:
        shortlist = self.preselect(candidates, context, constraints)
        logger.info(
            f"Verifying {len(shortlist)} of {len(candidates)} '{profile.key}' candidates"
        )
        results = await asyncio.gather(
            *[self._verify_one(item, context, profile, constraints) for item in shortlist],
            return_exceptions=True,
        )

        scored = []
        for item, result in zip(shortlist, results):
            if isinstance(result, CandidateFetchFailure):
                logger.warning(f"Skipping '{item.candidate.name}': {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            if result is not None:
                scored.append(result)
        scored.sort(key=lambda c: c.score, reverse=True)
        return scored
