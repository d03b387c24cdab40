"""Great-circle distance helpers for check-in/out locations"""

import math
from typing import Iterable, Optional

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in kilometres between two WGS84 coordinates"""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def distance_m(
    lat1: Optional[float], lng1: Optional[float], lat2: Optional[float], lng2: Optional[float]
) -> Optional[float]:
    """Metres between two points, or None when any coordinate is missing"""
    if None in (lat1, lng1, lat2, lng2):
        return None
    return round(haversine_km(lat1, lng1, lat2, lng2) * 1000, 1)


def travel_distance_km(points: Iterable[tuple[float, float]]) -> float:
    """Total length of a path of (lat, lng) points, rounded to 2 dp"""
    total = 0.0
    previous = None
    for point in points:
        if previous is not None:
            total += haversine_km(previous[0], previous[1], point[0], point[1])
        previous = point
    return round(total, 2)
