"""Great-circle helpers used throughout the analytics engine."""
from __future__ import annotations

import math
from typing import Tuple

from fleetgps.config import EARTH_RADIUS_KM

LatLon = Tuple[float, float]


def to_radians(degrees: float) -> float:
    return degrees * (math.pi / 180.0)


def to_degrees(radians: float) -> float:
    return radians * (180.0 / math.pi)


def haversine_km(a: LatLon, b: LatLon) -> float:
    """Return the great-circle distance in kilometres between ``(lat, lon)`` pairs."""

    lat1, lon1 = a
    lat2, lon2 = b
    lat1_rad = to_radians(lat1)
    lat2_rad = to_radians(lat2)
    dlat = lat2_rad - lat1_rad
    dlon = to_radians(lon2 - lon1)
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    )
    # Rounding can push h a hair outside [0, 1] for antipodal points.
    h = min(1.0, max(0.0, h))
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def bearing_degrees(a: LatLon, b: LatLon) -> float:
    """Initial bearing from *a* to *b* in degrees, normalised to ``[0, 360)``."""

    lat1_rad = to_radians(a[0])
    lat2_rad = to_radians(b[0])
    delta_lon = to_radians(b[1] - a[1])

    y = math.sin(delta_lon) * math.cos(lat2_rad)
    x = (
        math.cos(lat1_rad) * math.sin(lat2_rad)
        - math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(delta_lon)
    )
    bearing = (to_degrees(math.atan2(y, x)) + 360.0) % 360.0
    if bearing >= 360.0:
        return 0.0
    return bearing


def interpolate(a: LatLon, b: LatLon, fraction: float) -> LatLon:
    """Linear interpolation between two nearby points."""

    fraction = max(0.0, min(1.0, float(fraction)))
    return (a[0] + (b[0] - a[0]) * fraction, a[1] + (b[1] - a[1]) * fraction)


__all__ = ["LatLon", "bearing_degrees", "haversine_km", "interpolate", "to_degrees", "to_radians"]
