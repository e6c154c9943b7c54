"""
Great-circle distance between coordinates.

Spherical Earth, radius 6371 km. Inputs are degrees and are expected to be
in range already; the HTTP schemas enforce the bounds.
"""

import math
from dataclasses import dataclass

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinate:
    """A point on the Earth's surface, in decimal degrees."""
    latitude: float
    longitude: float


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        a: First point
        b: Second point

    Returns:
        Distance in kilometers
    """
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.latitude))
        * math.cos(math.radians(b.latitude))
        * math.sin(d_lon / 2) ** 2
    )
    # Rounding can push h a hair above 1 for antipodal points
    h = min(h, 1.0)

    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))
