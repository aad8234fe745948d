"""Encoded polyline codec (Google's 1e5 signed-delta format)."""
import logging
from typing import Iterable, List

import polyline as polyline_codec

from stopover.core.exceptions import PolylineDecodeError
from stopover.models.location import GeoPoint

logger = logging.getLogger(__name__)

PRECISION = 5
_MIN_CHAR = 63
_MAX_CHAR = 126
_CONTINUATION = 0x20


def _validate(encoded: str) -> None:
    """Reject input that would decode to a truncated or shifted path."""
    values = 0
    in_group = False
    for position, char in enumerate(encoded):
        code = ord(char)
        if code < _MIN_CHAR or code > _MAX_CHAR:
            raise PolylineDecodeError(
                f"Invalid character {char!r} at position {position} in encoded polyline"
            )
        if (code - _MIN_CHAR) & _CONTINUATION:
            in_group = True
        else:
            in_group = False
            values += 1
    if in_group:
        raise PolylineDecodeError("Encoded polyline ends in the middle of a value")
    if values % 2:
        raise PolylineDecodeError(
            f"Encoded polyline holds an odd number of values ({values}); latitude without longitude"
        )


def decode(encoded: str) -> List[GeoPoint]:
    if not encoded:
        return []
    _validate(encoded)
    try:
        pairs = polyline_codec.decode(encoded, PRECISION)
    except (IndexError, ValueError) as e:
        logger.error(f"Failed to decode polyline of length {len(encoded)}: {e}")
        raise PolylineDecodeError(f"Malformed encoded polyline: {e}") from e
    try:
        return [GeoPoint(lat=lat, lng=lng) for lat, lng in pairs]
    except ValueError as e:
        raise PolylineDecodeError(f"Polyline decodes to out-of-range coordinates: {e}") from e


def encode(points: Iterable[GeoPoint]) -> str:
    return polyline_codec.encode([p.as_tuple() for p in points], PRECISION)
