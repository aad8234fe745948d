from typing import Dict, Optional
from pydantic import BaseModel, Field

from stopover.models.search import CategoryFilter, TimeContext
from stopover.models.stops import Waypoint
from stopover.models.trip import TripPreferences


# Request Models
class CreateTripRequest(BaseModel):
    origin: str = Field(..., min_length=1, description="Free-text address, place name or 'lat,lng'")
    destination: str = Field(..., min_length=1, description="Free-text address, place name or 'lat,lng'")
    fuel_level: Optional[float] = Field(None, ge=0, le=1, description="Tank fraction, 0-1")
    vehicle_range: Optional[float] = Field(None, gt=0, description="Full-tank range in miles")
    preferences: TripPreferences = Field(default_factory=TripPreferences)
    plan_route: bool = Field(True, description="Resolve locations and fetch the route immediately")


class UpdatePreferencesRequest(BaseModel):
    preferences: TripPreferences = Field(default_factory=TripPreferences)
    fuel_level: Optional[float] = Field(None, ge=0, le=1)
    vehicle_range: Optional[float] = Field(None, gt=0)


class TripStopsRequest(BaseModel):
    per_category_filters: Dict[str, CategoryFilter] = Field(default_factory=dict)
    time_context: Optional[TimeContext] = None


class AddWaypointRequest(BaseModel):
    waypoint: Waypoint
