"""Constraint checks, composite scoring and the single-step relaxation policy."""
import logging
import math
from typing import List, NamedTuple, Optional

from pydantic import BaseModel, Field

from stopover.models.category import CategoryProfile
from stopover.models.place import PlaceDetails

logger = logging.getLogger(__name__)


class ScoringWeights(BaseModel):
    rating: float = 20.0
    review_volume: float = 10.0
    detour_minute_penalty: float = 2.0
    off_route_mile_penalty: float = 5.0
    explicit_category_bonus: float = 15.0
    route_position_bonus: float = 10.0
    preferred_progress_min: float = 0.25
    preferred_progress_max: float = 0.75


class StopConstraints(BaseModel):
    max_detour_minutes: float = Field(5.0, gt=0)
    max_off_route_miles: float = Field(1.0, gt=0)
    min_rating: float = Field(4.2, ge=0, le=5)
    min_reviews: float = Field(50, ge=0)


class ScoredCandidate(BaseModel):
    details: PlaceDetails
    profile: CategoryProfile
    off_route_miles: float
    along_route_miles: float
    route_progress: float
    detour_minutes: float
    detour_estimated: bool = Field(False, description="Detour is the distance-based proxy, not a directions delta")
    score: float = 0.0

    @property
    def place_id(self) -> str:
        return self.details.place_id

    @property
    def rating(self) -> float:
        return self.details.rating or 0.0

    @property
    def review_count(self) -> int:
        return self.details.review_count


def meets_constraints(
    detour_minutes: float,
    off_route_miles: float,
    max_detour_minutes: float,
    max_off_route_miles: float,
) -> bool:
    """Either budget is enough: a stop close by distance or by time qualifies."""
    return detour_minutes <= max_detour_minutes or off_route_miles <= max_off_route_miles


def meets_quality(rating: Optional[float], review_count: int, constraints: StopConstraints) -> bool:
    return (rating or 0.0) >= constraints.min_rating and review_count >= constraints.min_reviews


def composite_score(
    rating: float,
    review_count: int,
    detour_minutes: float,
    off_route_miles: float,
    route_progress: float,
    explicit_profile: bool,
    weights: Optional[ScoringWeights] = None,
) -> float:
    w = weights or ScoringWeights()
    score = rating * w.rating
    score += math.log10(review_count + 1) * w.review_volume
    score -= detour_minutes * w.detour_minute_penalty
    score -= off_route_miles * w.off_route_mile_penalty
    if explicit_profile:
        score += w.explicit_category_bonus
    if w.preferred_progress_min <= route_progress <= w.preferred_progress_max:
        score += w.route_position_bonus
    return score


def _accepts(candidate: ScoredCandidate, constraints: StopConstraints) -> bool:
    return meets_quality(candidate.rating, candidate.review_count, constraints) and meets_constraints(
        candidate.detour_minutes,
        candidate.off_route_miles,
        constraints.max_detour_minutes,
        constraints.max_off_route_miles,
    )


class Selection(NamedTuple):
    """``relaxed`` is set whenever the relaxation step ran, even if it found nothing."""
    accepted: List[ScoredCandidate]
    relaxed: bool


class RelaxationPolicy:
    """
    One bounded relaxation step.

    Budgets are multiplied by ``multiplier``; the quality floor drops by
    ``rating_step`` stars and review minimum is divided by ``multiplier``.
    Re-filters already scored candidates only.
    """

    def __init__(self, multiplier: float = 1.5, rating_step: float = 0.5):
        if multiplier < 1:
            raise ValueError("Relaxation multiplier must be >= 1")
        self.multiplier = multiplier
        self.rating_step = rating_step

    def relax(self, constraints: StopConstraints) -> StopConstraints:
        return StopConstraints(
            max_detour_minutes=constraints.max_detour_minutes * self.multiplier,
            max_off_route_miles=constraints.max_off_route_miles * self.multiplier,
            min_rating=max(0.0, constraints.min_rating - self.rating_step),
            min_reviews=constraints.min_reviews / self.multiplier,
        )

    def select(
        self,
        scored: List[ScoredCandidate],
        constraints: StopConstraints,
        limit: int,
    ) -> Selection:
        ranked = sorted(scored, key=lambda c: c.score, reverse=True)
        strict = [c for c in ranked if _accepts(c, constraints)][:limit]
        if strict or not ranked:
            return Selection(strict, False)

        relaxed_constraints = self.relax(constraints)
        relaxed = [c for c in ranked if _accepts(c, relaxed_constraints)][:limit]
        logger.info(
            f"No candidates met strict constraints; {len(relaxed)} of {len(ranked)} pass relaxed "
            f"constraints (detour <= {relaxed_constraints.max_detour_minutes:.1f} min or "
            f"off-route <= {relaxed_constraints.max_off_route_miles:.2f} mi, "
            f"rating >= {relaxed_constraints.min_rating:.1f})"
        )
        return Selection(relaxed, True)
