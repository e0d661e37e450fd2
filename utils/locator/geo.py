"""
Geospatial helpers.
"""

from __future__ import annotations

import math

from .constants import EARTH_RADIUS_METERS
from .models import Coordinates


def haversine_distance(a: Coordinates, b: Coordinates) -> float:
    """
    Compute the great-circle distance between two points on the Earth.

    Args:
        a: First point.
        b: Second point.

    Returns:
        Distance between a and b in meters.
    """
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = (math.sin(d_phi / 2) ** 2
         + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_METERS * c


def offset_coordinates(origin: Coordinates, d_lat: float, d_lon: float) -> Coordinates:
    """Shift a point by the given degrees, clamping latitude and wrapping longitude."""
    latitude = min(max(origin.latitude + d_lat, -90.0), 90.0)
    longitude = ((origin.longitude + d_lon + 180.0) % 360.0) - 180.0
    return Coordinates(latitude, longitude)
