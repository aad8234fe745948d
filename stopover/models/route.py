from typing import List, Optional
from pydantic import BaseModel, Field, PrivateAttr, computed_field

from stopover.core import polyline
from stopover.core.geometry import METERS_PER_MILE, RouteGeometry
from stopover.models.location import GeoPoint


class RouteStep(BaseModel):
    instructions: str = Field(default="", description="HTML instructions from the provider")
    distance_meters: float = Field(0.0, ge=0)
    duration_seconds: float = Field(0.0, ge=0)
    polyline: str = Field(default="", description="Encoded polyline for the step")


class RouteLeg(BaseModel):
    start_location: GeoPoint
    end_location: GeoPoint
    start_address: str = ""
    end_address: str = ""
    distance_meters: float = Field(..., ge=0, description="Leg distance in meters")
    duration_seconds: float = Field(..., ge=0, description="Leg duration in seconds")
    steps: List[RouteStep] = Field(default_factory=list)

    @property
    def distance_miles(self) -> float:
        return self.distance_meters / METERS_PER_MILE


class Route(BaseModel):
    """
    Driving route from the directions provider.

    Totals are always derived from the legs. ``path()`` decodes the overview
    polyline and caches the resulting geometry.
    """
    legs: List[RouteLeg] = Field(..., min_length=1)
    overview_polyline: str = Field(default="", description="Encoded polyline for the entire route")
    summary: str = ""
    bounds: Optional[dict] = Field(None, description="Northeast and southwest bounds of the route")
    waypoint_order: List[int] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    _geometry: Optional[RouteGeometry] = PrivateAttr(default=None)

    @computed_field
    @property
    def total_distance_meters(self) -> float:
        return sum(leg.distance_meters for leg in self.legs)

    @computed_field
    @property
    def total_duration_seconds(self) -> float:
        return sum(leg.duration_seconds for leg in self.legs)

    @property
    def total_distance_miles(self) -> float:
        return self.total_distance_meters / METERS_PER_MILE

    @property
    def total_duration_minutes(self) -> float:
        return self.total_duration_seconds / 60

    @property
    def origin(self) -> GeoPoint:
        return self.legs[0].start_location

    @property
    def destination(self) -> GeoPoint:
        return self.legs[-1].end_location

    @property
    def origin_address(self) -> str:
        return self.legs[0].start_address

    @property
    def destination_address(self) -> str:
        return self.legs[-1].end_address

    def path(self) -> List[GeoPoint]:
        return self.geometry().points

    def geometry(self) -> RouteGeometry:
        if self._geometry is None:
            points = polyline.decode(self.overview_polyline)
            if not points:
                # No overview: fall back to leg endpoints
                points = [self.legs[0].start_location] + [leg.end_location for leg in self.legs]
            self._geometry = RouteGeometry(points)
        return self._geometry

    def is_contiguous(self, tolerance_degrees: float = 1e-4) -> bool:
        for previous, current in zip(self.legs, self.legs[1:]):
            if (abs(previous.end_location.lat - current.start_location.lat) > tolerance_degrees
                    or abs(previous.end_location.lng - current.start_location.lng) > tolerance_degrees):
                return False
        return True
