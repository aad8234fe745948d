from typing import List, Optional
from pydantic import BaseModel, Field

from stopover.models.location import GeoPoint


class Candidate(BaseModel):
    """A place returned by a nearby search."""
    place_id: str
    name: str
    location: GeoPoint
    types: List[str] = Field(default_factory=list)
    rating: Optional[float] = Field(None, ge=0, le=5)
    review_count: int = Field(0, ge=0)
    price_level: Optional[int] = Field(None, ge=0, le=4)
    open_now: Optional[bool] = None
    vicinity: str = ""

    @property
    def lower_types(self) -> List[str]:
        return [t.lower() for t in self.types]


class PlaceReview(BaseModel):
    author_name: str = ""
    rating: Optional[float] = None
    text: str = ""
    time: Optional[int] = None


class OpeningPeriodTime(BaseModel):
    day: int
    time: str = ""


class OpeningPeriod(BaseModel):
    open: OpeningPeriodTime
    close: Optional[OpeningPeriodTime] = None


class OpeningHours(BaseModel):
    open_now: Optional[bool] = None
    weekday_text: List[str] = Field(default_factory=list, description="Monday first, as the provider returns it")
    periods: List[OpeningPeriod] = Field(default_factory=list)


class PlaceDetails(Candidate):
    formatted_address: str = ""
    opening_hours: Optional[OpeningHours] = None
    reviews: List[PlaceReview] = Field(default_factory=list)
    phone: Optional[str] = None
    website: Optional[str] = None
    url: Optional[str] = None

    @property
    def review_text(self) -> str:
        return " ".join(review.text for review in self.reviews).lower()

    @property
    def address(self) -> str:
        return self.formatted_address or self.vicinity
