from typing import Tuple
from pydantic import BaseModel, ConfigDict, Field


class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lng)

    def to_latlng_string(self) -> str:
        return f"{self.lat},{self.lng}"

    @classmethod
    def from_dict(cls, data: dict) -> "GeoPoint":
        """Build from a provider ``{"lat": .., "lng": ..}`` mapping."""
        return cls(lat=data["lat"], lng=data["lng"])


class ResolvedLocation(BaseModel):
    """A free-text location resolved to coordinates."""
    query: str
    point: GeoPoint
    address: str = ""
    place_id: str = ""
    source: str = Field(..., description="Resolver that produced this result")
