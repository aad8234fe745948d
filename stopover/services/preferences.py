"""
Trip preference merging.

Rules, applied field by field:

* ``requested_stops``: key union; the newer flag wins for a key present in both.
* ``custom_stops``: union keyed by ``id``. For a repeated id, keywords and place
  types are unioned (keywords lowercased), ``min_rating`` takes the max and the
  first label is kept.
* ``restaurant_preferences``: field-wise; newer non-null scalars overwrite,
  keywords are unioned.
* other scalars: newer value when it is not None.

Merging the same update twice gives the same result.
"""
from typing import Iterable, List, Optional

from stopover.models.trip import CustomStopRequest, RestaurantPreferences, TripPreferences


def _union(first: Iterable[str], second: Iterable[str], lower: bool = False) -> List[str]:
    out: List[str] = []
    for item in list(first) + list(second):
        value = item.strip().lower() if lower else item.strip()
        if value and value not in out:
            out.append(value)
    return out


def _max_optional(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def merge_custom_stop(existing: CustomStopRequest, update: CustomStopRequest) -> CustomStopRequest:
    return CustomStopRequest(
        id=existing.id,
        label=existing.label or update.label,
        keywords=_union(existing.keywords, update.keywords, lower=True),
        place_types=_union(existing.place_types, update.place_types),
        min_rating=_max_optional(existing.min_rating, update.min_rating),
    )


def merge_custom_stops(
    existing: List[CustomStopRequest], updates: List[CustomStopRequest]
) -> List[CustomStopRequest]:
    merged = {stop.id: stop for stop in existing}
    order = [stop.id for stop in existing]
    for stop in updates:
        if stop.id in merged:
            merged[stop.id] = merge_custom_stop(merged[stop.id], stop)
        else:
            normalized = stop.model_copy(
                update={
                    "keywords": _union(stop.keywords, [], lower=True),
                    "place_types": _union(stop.place_types, []),
                }
            )
            merged[stop.id] = normalized
            order.append(stop.id)
    return [merged[stop_id] for stop_id in order]


def merge_restaurant_preferences(
    existing: Optional[RestaurantPreferences], update: Optional[RestaurantPreferences]
) -> Optional[RestaurantPreferences]:
    if update is None:
        return existing
    if existing is None:
        return update.model_copy(update={"keywords": _union(update.keywords, [], lower=True)})
    values = existing.model_dump()
    for field, value in update.model_dump().items():
        if field == "keywords":
            values[field] = _union(existing.keywords, update.keywords, lower=True)
        elif value is not None:
            values[field] = value
    return RestaurantPreferences(**values)


def merge_preferences(existing: TripPreferences, update: TripPreferences) -> TripPreferences:
    return TripPreferences(
        requested_stops={**existing.requested_stops, **update.requested_stops},
        custom_stops=merge_custom_stops(existing.custom_stops, update.custom_stops),
        restaurant_preferences=merge_restaurant_preferences(
            existing.restaurant_preferences, update.restaurant_preferences
        ),
        scenic=update.scenic if update.scenic is not None else existing.scenic,
        fast=update.fast if update.fast is not None else existing.fast,
        avoid_tolls=update.avoid_tolls if update.avoid_tolls is not None else existing.avoid_tolls,
    )
