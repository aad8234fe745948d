from datetime import datetime
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from pydantic import BaseModel, Field, validator

from stopover.models.route import Route
from stopover.models.stops import Stop, Waypoint
from stopover.models.trip import CustomStopRequest


class CategoryFilter(BaseModel):
    """Per-category overrides; unset fields fall back to profile and settings defaults."""
    min_rating: Optional[float] = Field(None, ge=0, le=5)
    min_reviews: Optional[int] = Field(None, ge=0)
    max_detour_minutes: Optional[float] = Field(None, gt=0)
    max_off_route_miles: Optional[float] = Field(None, gt=0)
    keyword: Optional[str] = None
    open_now: Optional[bool] = None
    max_results: int = Field(3, ge=1, le=10)


class FuelContext(BaseModel):
    fuel_level: float = Field(..., ge=0, le=1)
    vehicle_range: float = Field(..., gt=0, description="Full-tank range in miles")


class TimeContext(BaseModel):
    timezone: Optional[str] = Field(None, description="IANA name, e.g. America/New_York")
    timestamp: Optional[datetime] = None

    @validator("timezone")
    def check_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    def local_time(self) -> Optional[datetime]:
        if self.timestamp is None:
            return None
        if self.timezone and self.timestamp.tzinfo is not None:
            return self.timestamp.astimezone(ZoneInfo(self.timezone))
        return self.timestamp


class FindStopsRequest(BaseModel):
    route: Route
    requested_categories: Dict[str, bool] = Field(default_factory=dict)
    per_category_filters: Dict[str, CategoryFilter] = Field(default_factory=dict)
    custom_stops: List[CustomStopRequest] = Field(default_factory=list)
    fuel: Optional[FuelContext] = None
    avoid_tolls: bool = False
    prefer_fast: bool = False
    time_context: Optional[TimeContext] = None
    recalculate_route: bool = Field(True, description="Re-thread the route through the accepted stops")


class FindStopsResponse(BaseModel):
    stops: List[Stop] = Field(default_factory=list)
    updated_route: Route
    waypoints: List[Waypoint] = Field(default_factory=list)
    relaxation_note: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    start_address: str = ""
    destination_address: str = ""


class RouteUpdateResponse(BaseModel):
    updated_route: Route
    waypoints: List[Waypoint] = Field(default_factory=list)
    warning: Optional[str] = None
