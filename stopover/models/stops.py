from typing import List, Optional
from pydantic import BaseModel, Field

from stopover.models.location import GeoPoint


class Waypoint(BaseModel):
    name: str = Field(..., min_length=1)
    location: GeoPoint


class Stop(BaseModel):
    """An accepted, enriched candidate ready to show or add to the route."""
    place_id: str
    name: str
    category: str = Field(..., description="User-facing category label")
    category_key: str
    location: GeoPoint
    address: str = ""
    rating: float = 0.0
    review_count: int = 0
    price_level: Optional[str] = Field(None, description="'$' repeated per provider price level")
    open_now: Optional[bool] = None
    hours_snippet: str = "Hours vary"
    distance_off_route_miles: float = Field(..., ge=0)
    detour_minutes: float = Field(..., ge=0)
    distance_along_route_miles: float = Field(0.0, ge=0)
    route_progress: float = Field(0.0, ge=0, le=1)
    score: float = 0.0
    time_cost_summary: str = ""
    justification: str = ""
    verified_attributes: List[str] = Field(default_factory=list)
    best_items: List[str] = Field(default_factory=list)
    dietary_notes: List[str] = Field(default_factory=list)
    parking_notes: List[str] = Field(default_factory=list)
    phone: Optional[str] = None
    website: Optional[str] = None
    add_to_route_url: str = ""
    relaxed: bool = Field(False, description="Accepted only under relaxed constraints")

    def to_waypoint(self) -> Waypoint:
        return Waypoint(name=self.name, location=self.location)
