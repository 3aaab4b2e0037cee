"""Great-circle distance and coordinate validation."""

from __future__ import annotations

import math
from typing import Any, Iterable, Sequence

from trailfinder.common.constants import EARTH_RADIUS_KM
from trailfinder.common.models import GeoPoint


def safe_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def is_valid_coordinate(lat: Any, lon: Any) -> bool:
    if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
        return False
    if isinstance(lat, bool) or isinstance(lon, bool):
        return False
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


def is_valid_point(point: GeoPoint | None) -> bool:
    return point is not None and is_valid_coordinate(point.lat, point.lon)


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    d_lat = lat2 - lat1
    d_lon = math.radians(b.lon - a.lon)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    # Rounding can push h a hair past 1 for antipodal points.
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(h, 1.0)))


def route_length_km(coordinates: Iterable[Sequence[float]]) -> float:
    """Length of a ``[lon, lat]`` polyline, rounded to 0.1 km."""
    total = 0.0
    previous: GeoPoint | None = None
    for lon, lat in coordinates:
        current = GeoPoint(lat=float(lat), lon=float(lon))
        if previous is not None:
            total += haversine_km(previous, current)
        previous = current
    return round(total, 1)
