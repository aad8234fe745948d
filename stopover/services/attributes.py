"""
Rule-based stop presentation: verified attributes, menu highlights,
opening hours and the "why this stop" text.

All review checks are phrase lookups; a missing phrase means unknown.
"""
import re
from datetime import datetime
from typing import List, NamedTuple, Optional, Sequence
from urllib.parse import quote

from stopover.models.location import GeoPoint
from stopover.models.place import OpeningHours, PlaceDetails
from stopover.models.trip import RestaurantPreferences

MENU_PATTERNS = {
    "chinese": [
        (r"hand[- ]pulled noodles", "hand-pulled noodles"),
        (r"xiao long bao|soup dumplings", "xiao long bao"),
        (r"cumin lamb", "cumin lamb"),
        (r"sichuan|szechuan", "Sichuan dishes"),
        (r"kung pao", "kung pao chicken"),
        (r"general tso|general tsao", "general tso chicken"),
        (r"mapo tofu", "mapo tofu"),
        (r"peking duck", "peking duck"),
        (r"hot pot", "hot pot"),
        (r"chili oil", "house chili oil"),
        (r"dan dan noodles", "dan dan noodles"),
        (r"char siu", "char siu"),
    ],
    "boba": [
        (r"taro", "taro milk tea"),
        (r"fresh boba|freshly made boba", "fresh boba"),
        (r"brown sugar", "brown sugar boba"),
        (r"matcha", "matcha boba"),
        (r"thai tea", "Thai tea"),
        (r"jasmine", "jasmine milk tea"),
    ],
    "coffee": [
        (r"pour[- ]over", "pour-over coffee"),
        (r"cold brew", "cold brew"),
        (r"espresso", "espresso"),
        (r"latte", "lattes"),
        (r"pastr(y|ies)|croissant", "pastries"),
    ],
}

PARKING_PATTERNS = [
    (r"(?:free|complimentary) parking", "free parking available"),
    (r"parking lot|lot parking", "parking lot available"),
    (r"street parking", "street parking available"),
    (r"garage parking|parking garage", "garage parking available"),
    (r"ample parking|plenty of parking", "ample parking available"),
    (r"easy parking", "easy parking available"),
]
PARKING_NEGATIVE = ("no parking", "parking difficult", "limited parking", "hard to park")

CLEAN_WORDS = ("clean", "spotless", "well-maintained", "tidy", "pristine", "hygienic")
DIRTY_WORDS = ("dirty", "filthy", "messy", "disgusting", "unclean")
RESTROOM_POSITIVE = ("clean restroom", "nice bathroom", "good facilities", "well-kept restroom", "clean bathroom")
EASY_ACCESS = ("easy access", "convenient location", "right off highway", "right off the highway", "right off the exit")
VEGETARIAN_WORDS = ("vegetarian", "vegan", "plant-based", "meatless", "veggie", "tofu")
KID_FRIENDLY_WORDS = (
    "kid-friendly", "children", "family", "high chair", "kids menu",
    "child-friendly", "family-friendly", "play area",
)


def _affirms(text: str, words: Sequence[str]) -> bool:
    """True when some word appears without a "not" or "no" right before it."""
    return any(re.search(rf"(?<!not )(?<!no ){re.escape(word)}", text) for word in words)


class MenuInfo(NamedTuple):
    best_items: List[str]
    dietary_notes: List[str]
    parking_notes: List[str]


def _unique(items: Sequence[str]) -> List[str]:
    seen = set()
    out = []
    for raw in items:
        item = (raw or "").strip()
        if item and item.lower() not in seen:
            seen.add(item.lower())
            out.append(item)
    return out


def format_price_level(level: Optional[int]) -> Optional[str]:
    if not level:
        return None
    return "$" * level


def is_open_24_hours(hours: Optional[OpeningHours]) -> bool:
    if hours is None:
        return False
    if hours.periods and all(
        p.close is None or (p.close.time == p.open.time and p.close.day != p.open.day)
        for p in hours.periods
    ):
        return True
    return any("24 hours" in day.lower() or "open 24" in day.lower() for day in hours.weekday_text)


def extract_menu_info(details: PlaceDetails, category_key: str) -> MenuInfo:
    if not details.reviews:
        return MenuInfo([], [], [])
    text = " ".join(review.text for review in details.reviews)
    lower = text.lower()

    best_items = [
        name for pattern, name in MENU_PATTERNS.get(category_key, [])
        if re.search(pattern, text, re.IGNORECASE)
    ]
    if category_key == "boba" and "fresh" in lower and ("tea" in lower or "boba" in lower):
        if not any("fresh" in item for item in best_items):
            best_items.insert(0, "fresh tea")

    dietary = []
    if "vegan" in lower or "plant-based" in lower:
        dietary.append("vegan options")
    if "vegetarian" in lower and "not vegetarian" not in lower:
        dietary.append("vegetarian options")
    if "gluten-free" in lower or "gluten free" in lower:
        dietary.append("gluten-free options")

    parking = [note for pattern, note in PARKING_PATTERNS if re.search(pattern, text, re.IGNORECASE)]
    if any(phrase in lower for phrase in PARKING_NEGATIVE):
        parking.append("parking may be limited")

    return MenuInfo(_unique(best_items)[:3], _unique(dietary), _unique(parking))


def verified_attributes(
    details: PlaceDetails,
    category_key: str,
    restaurant_preferences: Optional[RestaurantPreferences] = None,
) -> List[str]:
    """Facts confirmed by hours data or review text."""
    attributes = []
    text = details.review_text

    if is_open_24_hours(details.opening_hours):
        attributes.append("24/7 operation")

    if category_key == "gas":
        clean = sum(1 for word in CLEAN_WORDS if word in text)
        dirty = sum(1 for word in DIRTY_WORDS if word in text)
        if clean > dirty and clean >= 2:
            attributes.append("clean facilities (verified in reviews)")
        if ("restroom" in text or "bathroom" in text) and any(p in text for p in RESTROOM_POSITIVE):
            attributes.append("clean restrooms")
    if any(phrase in text for phrase in EASY_ACCESS):
        attributes.append("easy access")

    if (details.rating or 0) >= 4.5:
        attributes.append(f"highly rated ({details.rating}/5)")

    prefs = restaurant_preferences
    if prefs and prefs.cuisine:
        cuisine = prefs.cuisine.strip().lower()
        variants = {cuisine, cuisine.replace(" ", "_"), f"{cuisine}_restaurant"}
        haystack = details.lower_types + [details.name.lower(), text]
        if any(v in entry for entry in haystack for v in variants):
            attributes.append(f"{prefs.cuisine.strip().capitalize()} cuisine")
    if prefs and (prefs.vegetarian or prefs.vegan) and _affirms(text, VEGETARIAN_WORDS):
        attributes.append("vegetarian options (verified in reviews)")
    if prefs and prefs.kid_friendly and any(w in text for w in KID_FRIENDLY_WORDS):
        attributes.append("kid-friendly (verified in reviews)")

    price = format_price_level(details.price_level)
    if price:
        attributes.append(f"{price} price range")
    return _unique(attributes)


def hours_snippet(hours: Optional[OpeningHours], when: Optional[datetime] = None) -> str:
    if hours is None:
        return "Hours vary"
    if hours.weekday_text:
        # weekday_text starts on Monday, same as datetime.weekday()
        day = (when or datetime.now()).weekday()
        raw = hours.weekday_text[day] if day < len(hours.weekday_text) else hours.weekday_text[0]
        label, sep, text = raw.partition(":")
        if not sep:
            return raw
        return f"{label.strip() or 'Today'}: {text.strip()}"
    if hours.periods:
        return "See Google Maps for detailed hours"
    return "Hours vary"


def time_cost_summary(detour_minutes: float, off_route_miles: float) -> str:
    return f"adds ~{round(detour_minutes)} min / {off_route_miles:.1f} mi"


def directions_url(origin: str, destination: str, waypoints: Sequence[GeoPoint] = ()) -> str:
    base = "https://www.google.com/maps/dir/?api=1"
    url = f"{base}&origin={quote(origin, safe='')}&destination={quote(destination, safe='')}"
    if waypoints:
        url += "&waypoints=" + quote("|".join(w.to_latlng_string() for w in waypoints), safe=",")
    return url + "&travelmode=driving"


def build_justification(
    category_label: str,
    rating: float,
    review_count: int,
    detour_minutes: float,
    off_route_miles: float,
    max_detour_minutes: float,
    best_items: Sequence[str],
    parking_notes: Sequence[str],
    open_now: Optional[bool],
    relaxed: bool = False,
) -> str:
    detour = round(detour_minutes)
    if detour_minutes <= 1:
        detour_text = "minimal detour"
    elif detour_minutes <= max_detour_minutes:
        detour_text = f"+{detour} min detour"
    else:
        detour_text = f"+{detour} min detour (slightly over limit but best quality option)"
    distance_text = "directly on route" if off_route_miles < 0.3 else f"{off_route_miles:.1f} mi off route"

    parts = [
        f"Matches your {category_label} request with a {detour_text} ({distance_text}).",
        f"Rated {rating:.1f}★ with {review_count:,} reviews.",
    ]
    if len(best_items) >= 2:
        parts.append(f"Known for {best_items[0]} and {best_items[1]}.")
    elif best_items:
        parts.append(f"Known for {best_items[0]}.")
    else:
        parts.append(f"Well-reviewed option for {category_label.lower()}.")
    if parking_notes:
        parts.append(f"{parking_notes[0][0].upper()}{parking_notes[0][1:]}.")
    if open_now is False:
        parts.append("(Currently closed, but worth the detour for quality.)")
    if relaxed:
        parts.append("Found with relaxed detour and quality limits.")
    return " ".join(parts)
