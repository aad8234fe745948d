import math
from bisect import bisect_left
from typing import List, NamedTuple, Optional, Sequence, Tuple

from stopover.models.location import GeoPoint

EARTH_RADIUS_MILES = 3959.0
METERS_PER_MILE = 1609.344


def haversine_miles(a: GeoPoint, b: GeoPoint) -> float:
    lat1, lon1 = math.radians(a.lat), math.radians(a.lng)
    lat2, lon2 = math.radians(b.lat), math.radians(b.lng)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2)
    return 2 * EARTH_RADIUS_MILES * math.asin(min(1.0, math.sqrt(h)))


def _to_xy(origin: GeoPoint, p: GeoPoint) -> Tuple[float, float]:
    """
    Equirectangular approximation around origin, in miles.
    Only used to pick the closest point on a segment.
    """
    x = math.radians(p.lng - origin.lng) * EARTH_RADIUS_MILES * math.cos(math.radians(origin.lat))
    y = math.radians(p.lat - origin.lat) * EARTH_RADIUS_MILES
    return x, y


def _lerp(a: GeoPoint, b: GeoPoint, t: float) -> GeoPoint:
    return GeoPoint(lat=a.lat + (b.lat - a.lat) * t, lng=a.lng + (b.lng - a.lng) * t)


class RouteProjection(NamedTuple):
    distance_miles: float
    along_miles: float
    segment_index: int
    t: float
    point: GeoPoint


class RouteGeometry:
    """
    Decoded route path with cumulative distances cached.

    All reported distances are haversine miles; the planar projection is
    only used to choose the closest point on each segment.
    """

    def __init__(self, points: Sequence[GeoPoint]):
        if not points:
            raise ValueError("Route path must contain at least one point")
        self.points: List[GeoPoint] = list(points)
        self.cumulative_miles: List[float] = [0.0]
        for i in range(1, len(self.points)):
            self.cumulative_miles.append(
                self.cumulative_miles[-1] + haversine_miles(self.points[i - 1], self.points[i])
            )

    @property
    def length_miles(self) -> float:
        return self.cumulative_miles[-1]

    @property
    def start(self) -> GeoPoint:
        return self.points[0]

    @property
    def end(self) -> GeoPoint:
        return self.points[-1]

    def project(self, point: GeoPoint) -> RouteProjection:
        if len(self.points) == 1:
            return RouteProjection(haversine_miles(point, self.points[0]), 0.0, 0, 0.0, self.points[0])

        best: Optional[RouteProjection] = None
        for i in range(len(self.points) - 1):
            a, b = self.points[i], self.points[i + 1]
            ax, ay = _to_xy(point, a)
            bx, by = _to_xy(point, b)
            vx, vy = bx - ax, by - ay

            seg_len2 = vx * vx + vy * vy
            if seg_len2 <= 1e-18:
                t = 0.0
            else:
                # query point is the planar origin
                t = (-ax * vx - ay * vy) / seg_len2
                t = min(1.0, max(0.0, t))

            if t == 0.0:
                matched = a
            elif t == 1.0:
                matched = b
            else:
                matched = _lerp(a, b, t)
            d = haversine_miles(point, matched)

            if best is None or d < best.distance_miles:
                segment_miles = self.cumulative_miles[i + 1] - self.cumulative_miles[i]
                best = RouteProjection(d, self.cumulative_miles[i] + t * segment_miles, i, t, matched)
        return best

    def distance_to(self, point: GeoPoint) -> float:
        return self.project(point).distance_miles

    def distance_along(self, point: GeoPoint) -> float:
        return self.project(point).along_miles

    def progress_of(self, point: GeoPoint, total_route_miles: Optional[float] = None) -> float:
        total = total_route_miles if total_route_miles else self.length_miles
        if total <= 0:
            return 0.0
        return min(1.0, max(0.0, self.distance_along(point) / total))

    def interpolate(self, fraction: float) -> GeoPoint:
        """Point at the given fraction of path length."""
        fraction = min(1.0, max(0.0, fraction))
        return self.point_at_miles(fraction * self.length_miles)

    def point_at_miles(self, miles: float) -> GeoPoint:
        if len(self.points) == 1 or miles <= 0:
            return self.points[0]
        if miles >= self.length_miles:
            return self.points[-1]
        i = bisect_left(self.cumulative_miles, miles)
        start_miles = self.cumulative_miles[i - 1]
        segment_miles = self.cumulative_miles[i] - start_miles
        if segment_miles <= 0:
            return self.points[i]
        return _lerp(self.points[i - 1], self.points[i], (miles - start_miles) / segment_miles)

    def sample(self, start_fraction: float, end_fraction: float, count: int) -> List[GeoPoint]:
        """Evenly spaced points by distance over [start_fraction, end_fraction]."""
        if count <= 0:
            return []
        if count == 1:
            return [self.interpolate((start_fraction + end_fraction) / 2)]
        step = (end_fraction - start_fraction) / (count - 1)
        return [self.interpolate(start_fraction + step * k) for k in range(count)]


def distance_to_path(point: GeoPoint, path: Sequence[GeoPoint]) -> float:
    return RouteGeometry(path).distance_to(point)


def progress_along_route(
    point: GeoPoint, path: Sequence[GeoPoint], total_route_miles: Optional[float] = None
) -> float:
    return RouteGeometry(path).progress_of(point, total_route_miles)


def distance_along_route(point: GeoPoint, path: Sequence[GeoPoint]) -> float:
    return RouteGeometry(path).distance_along(point)
