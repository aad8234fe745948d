import re
from typing import Iterable, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field


def normalize_category(category: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", category.strip().lower()).strip("_")


class CategoryProfile(BaseModel):
    """
    Search and match rules for one stop category.

    ``explicit`` profiles come from the built-in table or a user-defined
    custom stop; only those get the category-match score bonus and the
    category confirmation step.
    """
    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    aliases: Tuple[str, ...] = ()
    primary_types: Tuple[str, ...] = ()
    fallback_types: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    search_keyword: Optional[str] = None
    search_radius_meters: int = Field(5000, gt=0, le=50000)
    min_rating: float = Field(4.2, ge=0, le=5)
    min_reviews: int = Field(50, ge=0)
    explicit: bool = True

    @property
    def search_types(self) -> Tuple[Optional[str], ...]:
        types = self.primary_types + self.fallback_types
        return types if types else (None,)

    def matches_category(self, category: str) -> bool:
        lower = category.lower()
        if normalize_category(category) == self.key:
            return True
        return any(alias in lower for alias in self.aliases)

    @classmethod
    def generic(cls, category: str) -> "CategoryProfile":
        text = category.strip().lower()
        return cls(
            key=normalize_category(category) or "stop",
            label=category.strip() or "Stop",
            keywords=(text,) if text else (),
            search_keyword=text or None,
            explicit=False,
        )

    @classmethod
    def from_custom_stop(cls, custom, default_min_rating: float = 4.2) -> "CategoryProfile":
        keywords = tuple(k.lower() for k in custom.keywords if k.strip())
        return cls(
            key=normalize_category(custom.id),
            label=custom.label,
            primary_types=tuple(custom.place_types),
            keywords=keywords or (custom.label.lower(),),
            search_keyword=keywords[0] if keywords else custom.label.lower(),
            min_rating=custom.min_rating if custom.min_rating is not None else default_min_rating,
        )


class CategoryProfiles:
    """Immutable, ordered set of category profiles."""

    def __init__(self, profiles: Iterable[CategoryProfile]):
        self._profiles: Tuple[CategoryProfile, ...] = tuple(profiles)

    def __iter__(self):
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    def get(self, key: str) -> Optional[CategoryProfile]:
        for profile in self._profiles:
            if profile.key == key:
                return profile
        return None

    def resolve(self, category: str) -> CategoryProfile:
        # Exact key first so "restaurant" never resolves through an alias
        exact = self.get(normalize_category(category))
        if exact is not None:
            return exact
        for profile in self._profiles:
            if profile.matches_category(category):
                return profile
        return CategoryProfile.generic(category)


DEFAULT_PROFILES = CategoryProfiles([
    CategoryProfile(
        key="gas",
        label="Gas station",
        aliases=("gas", "fuel", "petrol", "charging"),
        primary_types=("gas_station",),
        keywords=("gas", "fuel", "petrol", "travel center", "truck stop"),
        search_radius_meters=3000,
        min_rating=4.0,
    ),
    CategoryProfile(
        key="chinese",
        label="Chinese restaurant",
        aliases=("chinese",),
        primary_types=("chinese_restaurant",),
        fallback_types=("restaurant",),
        keywords=(
            "chinese", "szechuan", "sichuan", "hunan", "cantonese", "dim sum",
            "dumpling", "noodle", "bao", "hot pot", "xiao long bao", "wok",
        ),
        search_keyword="chinese",
        search_radius_meters=5000,
    ),
    CategoryProfile(
        key="boba",
        label="Boba / bubble tea",
        aliases=("boba", "bubble tea", "milk tea"),
        primary_types=("bubble_tea_shop",),
        fallback_types=("cafe", "tea_house"),
        keywords=(
            "boba", "bubble tea", "milk tea", "tapioca", "tea bar", "fresh boba",
            "taro latte", "tea spot", "tea shop",
        ),
        search_keyword="boba",
        search_radius_meters=4000,
    ),
    CategoryProfile(
        key="coffee",
        label="Coffee",
        aliases=("coffee", "cafe", "espresso"),
        primary_types=("cafe",),
        fallback_types=("bakery",),
        keywords=("coffee", "espresso", "cafe", "roaster", "latte"),
        search_keyword="coffee",
        search_radius_meters=3000,
    ),
    CategoryProfile(
        key="restaurant",
        label="Restaurant",
        aliases=("restaurant", "food", "lunch", "dinner", "breakfast"),
        primary_types=("restaurant",),
        fallback_types=("meal_takeaway",),
        keywords=("restaurant", "diner", "grill", "kitchen", "eatery", "bistro"),
        search_radius_meters=5000,
        min_rating=4.3,
    ),
    CategoryProfile(
        key="scenic",
        label="Scenic stop",
        aliases=("scenic", "viewpoint", "overlook", "attraction", "sightseeing"),
        primary_types=("tourist_attraction",),
        fallback_types=("park", "natural_feature"),
        keywords=("scenic", "overlook", "viewpoint", "vista", "falls", "state park", "lookout"),
        search_radius_meters=8000,
        min_rating=4.2,
    ),
])
