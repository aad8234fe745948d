import asyncio
import logging
from datetime import datetime
from typing import Dict, List, NamedTuple, Optional, Tuple

from stopover.models.category import DEFAULT_PROFILES, CategoryProfile, CategoryProfiles
from stopover.models.search import CategoryFilter, FindStopsRequest, FindStopsResponse
from stopover.models.stops import Stop
from stopover.models.trip import RestaurantPreferences
from stopover.repositories.base import Geocoder
from stopover.services import attributes
from stopover.services.fuel import FuelStopTarget, needs_fuel_stop, plan_fuel_stops
from stopover.services.recalculator import RouteRecalculator
from stopover.services.scoring import RelaxationPolicy, ScoredCandidate, StopConstraints
from stopover.services.search import CandidateSearchService
from stopover.services.sequencer import WaypointSequencer
from stopover.services.verification import CandidateVerifier, RouteContext

logger = logging.getLogger(__name__)

RELAXATION_NOTE = "Relaxed detour and quality constraints slightly due to sparse options near the route."


class CategoryPlan(NamedTuple):
    label: str
    profile: CategoryProfile
    constraints: StopConstraints
    limit: int
    keyword: Optional[str] = None
    open_now: Optional[bool] = None
    fuel_target: Optional[FuelStopTarget] = None


class CategoryOutcome(NamedTuple):
    plan: CategoryPlan
    accepted: List[ScoredCandidate]
    relaxed: bool
    evaluated: int


class RouteStopFinder:
    """
    Search -> verify/score -> relax -> sequence -> recalculate.

    The route in the request is treated as the baseline: stop projection,
    detour deltas and the recalculated route all start from it.
    """

    def __init__(
        self,
        search_service: CandidateSearchService,
        verifier: CandidateVerifier,
        sequencer: WaypointSequencer,
        recalculator: RouteRecalculator,
        geocoder: Optional[Geocoder] = None,
        profiles: CategoryProfiles = DEFAULT_PROFILES,
        relaxation_policy: Optional[RelaxationPolicy] = None,
        default_max_detour_minutes: float = 5.0,
        default_max_off_route_miles: float = 1.0,
        fuel_reserve_fraction: float = 0.2,
        fuel_window_miles: float = 10.0,
    ):
        self.search_service = search_service
        self.verifier = verifier
        self.sequencer = sequencer
        self.recalculator = recalculator
        self.geocoder = geocoder
        self.profiles = profiles
        self.relaxation_policy = relaxation_policy or RelaxationPolicy()
        self.default_max_detour_minutes = default_max_detour_minutes
        self.default_max_off_route_miles = default_max_off_route_miles
        self.fuel_reserve_fraction = fuel_reserve_fraction
        self.fuel_window_miles = fuel_window_miles

    def constraints_for(self, profile: CategoryProfile, filt: CategoryFilter) -> StopConstraints:
        return StopConstraints(
            max_detour_minutes=filt.max_detour_minutes or self.default_max_detour_minutes,
            max_off_route_miles=filt.max_off_route_miles or self.default_max_off_route_miles,
            min_rating=filt.min_rating if filt.min_rating is not None else profile.min_rating,
            min_reviews=filt.min_reviews if filt.min_reviews is not None else profile.min_reviews,
        )

    def _filter_for(
        self,
        name: str,
        profile: CategoryProfile,
        request: FindStopsRequest,
        restaurant_preferences: Optional[RestaurantPreferences],
    ) -> CategoryFilter:
        filters = request.per_category_filters
        filt = filters.get(name) or filters.get(profile.key)
        if filt is not None:
            return filt
        if restaurant_preferences and profile.key == "restaurant":
            prefs = restaurant_preferences
            return CategoryFilter(
                min_rating=prefs.min_rating,
                keyword=prefs.cuisine or (prefs.keywords[0] if prefs.keywords else None),
                open_now=prefs.open_now,
            )
        return CategoryFilter()

    def build_plans(
        self,
        request: FindStopsRequest,
        restaurant_preferences: Optional[RestaurantPreferences] = None,
    ) -> List[CategoryPlan]:
        plans: List[CategoryPlan] = []
        seen = set()
        gas_requested = False

        for name, wanted in request.requested_categories.items():
            if not wanted:
                continue
            profile = self.profiles.resolve(name)
            if profile.key in seen:
                continue
            seen.add(profile.key)
            filt = self._filter_for(name, profile, request, restaurant_preferences)
            if profile.key == "gas" and request.fuel is not None:
                gas_requested = True
                continue
            plans.append(
                CategoryPlan(
                    label=profile.label if profile.explicit else name,
                    profile=profile,
                    constraints=self.constraints_for(profile, filt),
                    limit=filt.max_results,
                    keyword=filt.keyword,
                    open_now=filt.open_now,
                )
            )

        for custom in request.custom_stops:
            profile = CategoryProfile.from_custom_stop(custom)
            if profile.key in seen:
                continue
            seen.add(profile.key)
            filt = self._filter_for(custom.id, profile, request, None)
            plans.append(
                CategoryPlan(
                    label=custom.label,
                    profile=profile,
                    constraints=self.constraints_for(profile, filt),
                    limit=filt.max_results,
                    keyword=filt.keyword,
                    open_now=filt.open_now,
                )
            )

        fuel = request.fuel
        if fuel is not None and (gas_requested or needs_fuel_stop(request.route, fuel.fuel_level, fuel.vehicle_range)):
            profile = self.profiles.get("gas") or self.profiles.resolve("gas")
            filt = self._filter_for("gas", profile, request, None)
            targets = plan_fuel_stops(
                request.route, fuel.fuel_level, fuel.vehicle_range, self.fuel_reserve_fraction
            )
            for target in targets:
                plans.append(
                    CategoryPlan(
                        label=profile.label,
                        profile=profile,
                        constraints=self.constraints_for(profile, filt),
                        limit=1,
                        keyword=filt.keyword,
                        fuel_target=target,
                    )
                )
            if not targets and gas_requested:
                # Tank covers the trip; still honour the explicit request
                plans.append(
                    CategoryPlan(
                        label=profile.label,
                        profile=profile,
                        constraints=self.constraints_for(profile, filt),
                        limit=filt.max_results,
                        keyword=filt.keyword,
                    )
                )
        return plans

    def _fuel_band(self, context: RouteContext, target: FuelStopTarget) -> Tuple[float, float, float]:
        """Focus band around a fuel target, plus its position in path miles."""
        geometry = context.geometry
        target_miles = geometry.distance_along(target.location)
        length = geometry.length_miles or 1.0
        window = self.fuel_window_miles / length
        center = target_miles / length
        return max(0.0, center - window), min(1.0, center + window), target_miles

    async def _run_plan(self, plan: CategoryPlan, context: RouteContext) -> CategoryOutcome:
        profile = plan.profile
        if plan.fuel_target is not None:
            start, end, target_miles = self._fuel_band(context, plan.fuel_target)
            candidates = await self.search_service.find_candidates(
                context.geometry, profile, plan.keyword, focus_band=(start, end), include_endpoints=False
            )
        else:
            candidates = await self.search_service.find_candidates(context.geometry, profile, plan.keyword)

        scored = await self.verifier.evaluate(candidates, context, profile, plan.constraints)
        if plan.fuel_target is not None:
            scored = [
                c for c in scored
                if abs(c.along_route_miles - target_miles) <= self.fuel_window_miles
            ]
        if plan.open_now:
            scored = [c for c in scored if c.details.open_now is not False]

        selection = self.relaxation_policy.select(scored, plan.constraints, plan.limit)
        return CategoryOutcome(plan, selection.accepted, selection.relaxed, len(scored))

    def build_stop(
        self,
        scored: ScoredCandidate,
        plan: CategoryPlan,
        relaxed: bool,
        origin_label: str,
        destination_label: str,
        when: Optional[datetime] = None,
        restaurant_preferences: Optional[RestaurantPreferences] = None,
    ) -> Stop:
        details = scored.details
        profile = plan.profile
        menu = attributes.extract_menu_info(details, profile.key)
        serves_food = "restaurant" in profile.primary_types + profile.fallback_types
        open_now = details.opening_hours.open_now if details.opening_hours else details.open_now
        return Stop(
            place_id=details.place_id,
            name=details.name,
            category=plan.label,
            category_key=profile.key,
            location=details.location,
            address=details.address,
            rating=round(details.rating or 0.0, 1),
            review_count=details.review_count,
            price_level=attributes.format_price_level(details.price_level),
            open_now=open_now,
            hours_snippet=attributes.hours_snippet(details.opening_hours, when),
            distance_off_route_miles=round(scored.off_route_miles, 2),
            detour_minutes=round(scored.detour_minutes, 1),
            distance_along_route_miles=scored.along_route_miles,
            route_progress=scored.route_progress,
            score=round(scored.score, 2),
            time_cost_summary=attributes.time_cost_summary(scored.detour_minutes, scored.off_route_miles),
            justification=attributes.build_justification(
                plan.label,
                details.rating or 0.0,
                details.review_count,
                scored.detour_minutes,
                scored.off_route_miles,
                plan.constraints.max_detour_minutes,
                menu.best_items,
                menu.parking_notes,
                open_now,
                relaxed,
            ),
            verified_attributes=attributes.verified_attributes(
                details, profile.key, restaurant_preferences if serves_food else None
            ),
            best_items=menu.best_items,
            dietary_notes=menu.dietary_notes,
            parking_notes=menu.parking_notes,
            phone=details.phone,
            website=details.website,
            add_to_route_url=attributes.directions_url(origin_label, destination_label, [details.location]),
            relaxed=relaxed,
        )

    async def _endpoint_labels(self, request: FindStopsRequest) -> Tuple[str, str]:
        route = request.route
        start = route.origin_address or route.origin.to_latlng_string()
        end = route.destination_address or route.destination.to_latlng_string()
        if self.geocoder is None:
            return start, end
        start_address, end_address = await asyncio.gather(
            self.geocoder.reverse_geocode(route.origin),
            self.geocoder.reverse_geocode(route.destination),
        )
        return start_address or start, end_address or end

    async def find_stops(
        self,
        request: FindStopsRequest,
        restaurant_preferences: Optional[RestaurantPreferences] = None,
    ) -> FindStopsResponse:
        context = RouteContext.for_route(request.route, request.avoid_tolls, request.prefer_fast)
        plans = self.build_plans(request, restaurant_preferences)
        logger.info(
            f"Finding stops for {len(plans)} plan(s) along a "
            f"{request.route.total_distance_miles:.0f} mi route: {', '.join(p.profile.key for p in plans)}"
        )
        origin_label, destination_label = await self._endpoint_labels(request)
        outcomes = await asyncio.gather(*[self._run_plan(plan, context) for plan in plans])

        when = request.time_context.local_time() if request.time_context else None
        warnings: List[str] = []
        any_relaxed = False
        stops: Dict[str, Stop] = {}
        for outcome in outcomes:
            plan = outcome.plan
            if not outcome.accepted:
                where = (
                    f" near mile {plan.fuel_target.distance_miles:.0f}" if plan.fuel_target else ""
                )
                if outcome.relaxed:
                    warnings.append(
                        f"No {plan.label.lower()} options{where} met the detour limits, even after relaxing them."
                    )
                else:
                    warnings.append(f"No {plan.label.lower()} options found{where} along the route.")
                continue
            any_relaxed = any_relaxed or outcome.relaxed
            for scored in outcome.accepted:
                if scored.place_id in stops:
                    continue
                stops[scored.place_id] = self.build_stop(
                    scored,
                    plan,
                    outcome.relaxed,
                    origin_label,
                    destination_label,
                    when,
                    restaurant_preferences,
                )

        ordered = self.sequencer.order(list(stops.values()), request.route)
        waypoints, dropped = self.sequencer.limit([stop.to_waypoint() for stop in ordered])
        if dropped:
            warnings.append(self.sequencer.overflow_warning(dropped))
        updated_route = request.route
        if request.recalculate_route and waypoints:
            result = await self.recalculator.recalculate_or_keep(
                request.route,
                waypoints,
                baseline_route=request.route,
                avoid_tolls=request.avoid_tolls,
                prefer_fast=request.prefer_fast,
            )
            updated_route = result.route
            if result.warning:
                warnings.append(result.warning)
            if not result.applied:
                waypoints = []

        return FindStopsResponse(
            stops=ordered,
            updated_route=updated_route,
            waypoints=waypoints,
            relaxation_note=RELAXATION_NOTE if any_relaxed else None,
            warnings=warnings,
            start_address=origin_label,
            destination_address=destination_label,
        )
