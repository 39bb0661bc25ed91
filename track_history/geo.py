"""Geospatial utilities (no external dependencies)."""

from __future__ import annotations

import math
from typing import Protocol


EARTH_RADIUS_M = 6_371_000.0  # mean Earth radius in meters


class HasLatLon(Protocol):
    @property
    def latitude(self) -> float: ...

    @property
    def longitude(self) -> float: ...


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute Haversine distance in meters between two lat/lon points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Distance in meters. Exactly 0.0 for identical points.
    """

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    # rounding can push a slightly outside [0, 1] near antipodal points
    a = min(1.0, max(0.0, a))
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def distance_m(a: HasLatLon, b: HasLatLon) -> float:
    """Great-circle distance between two objects carrying latitude/longitude."""

    return haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)


def format_distance(meters: float) -> str:
    """Format a distance: whole meters below 1 km, otherwise km with 2 decimals."""

    if meters < 1000:
        return f"{math.floor(meters + 0.5)} m"
    return f"{meters / 1000.0:.2f} km"
