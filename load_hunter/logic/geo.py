"""Great-circle distance and radius checks.

Everything here is total: bad coordinates or a bad radius produce a
non-match, never an exception.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

EARTH_RADIUS_MILES = 3958.8


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    @classmethod
    def from_value(cls, value: Any) -> Coordinates | None:
        """Accept {"lat", "lng"} mappings, (lat, lng) pairs or Coordinates."""
        if value is None:
            return None
        if isinstance(value, Coordinates):
            return value if valid_coordinates(value.lat, value.lng) else None
        if isinstance(value, dict):
            lat = value.get("lat", value.get("latitude"))
            lng = value.get("lng", value.get("lon", value.get("longitude")))
        elif isinstance(value, (list, tuple)) and len(value) == 2:
            lat, lng = value
        else:
            return None
        lat_f = _as_float(lat)
        lng_f = _as_float(lng)
        if lat_f is None or lng_f is None or not valid_coordinates(lat_f, lng_f):
            return None
        return cls(lat=lat_f, lng=lng_f)

    def as_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class GeoResult:
    matched: bool
    distance_miles: float | None = None


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def valid_coordinates(lat: Any, lng: Any) -> bool:
    lat_f = _as_float(lat)
    lng_f = _as_float(lng)
    if lat_f is None or lng_f is None:
        return False
    return -90.0 <= lat_f <= 90.0 and -180.0 <= lng_f <= 180.0


def distance_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Haversine distance in statute miles."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push a slightly past 1 for antipodal points.
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def within_radius(origin: Any, target: Any, radius_miles: Any) -> GeoResult:
    """Is ``target`` within ``radius_miles`` of ``origin``?  Boundary counts."""
    origin_coords = Coordinates.from_value(origin)
    target_coords = Coordinates.from_value(target)
    radius = _as_float(radius_miles)
    if origin_coords is None or target_coords is None or radius is None or radius < 0:
        return GeoResult(matched=False)

    distance = distance_miles(origin_coords.lat, origin_coords.lng, target_coords.lat, target_coords.lng)
    return GeoResult(matched=distance <= radius, distance_miles=distance)
