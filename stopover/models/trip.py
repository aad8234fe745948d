from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import uuid4
from pydantic import BaseModel, Field

from stopover.models.route import Route
from stopover.models.stops import Stop, Waypoint


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RestaurantPreferences(BaseModel):
    cuisine: Optional[str] = None
    min_rating: Optional[float] = Field(None, ge=0, le=5)
    price_level: Optional[int] = Field(None, ge=1, le=4)
    kid_friendly: Optional[bool] = None
    open_now: Optional[bool] = None
    vegetarian: Optional[bool] = None
    vegan: Optional[bool] = None
    keywords: List[str] = Field(default_factory=list)


class CustomStopRequest(BaseModel):
    id: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    keywords: List[str] = Field(default_factory=list)
    place_types: List[str] = Field(default_factory=list)
    min_rating: Optional[float] = Field(None, ge=0, le=5)


class TripPreferences(BaseModel):
    """
    Evolving trip preferences.

    ``None`` scalars mean "not stated"; they never overwrite an earlier value
    when merged.
    """
    requested_stops: Dict[str, bool] = Field(default_factory=dict)
    custom_stops: List[CustomStopRequest] = Field(default_factory=list)
    restaurant_preferences: Optional[RestaurantPreferences] = None
    scenic: Optional[bool] = None
    fast: Optional[bool] = None
    avoid_tolls: Optional[bool] = None


class TripRequest(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    fuel_level: Optional[float] = Field(None, ge=0, le=1, description="Tank fraction, 0-1")
    vehicle_range: Optional[float] = Field(None, gt=0, description="Full-tank range in miles")
    preferences: TripPreferences = Field(default_factory=TripPreferences)
    route: Optional[Route] = None
    baseline_route: Optional[Route] = Field(None, description="Route before any waypoints; used for projection")
    stops: List[Stop] = Field(default_factory=list)
    waypoints: List[Waypoint] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
