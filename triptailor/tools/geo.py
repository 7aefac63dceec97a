"""
Geographic helpers: great-circle distance and PostGIS text points.
"""

import math
import re
from typing import Optional

from ..schemas.suggestions import Coordinates

# Earth radius in meters
EARTH_RADIUS_M = 6371000.0

# Minimum magnitude for a coordinate to count as set; (0, 0) is how blank
# locations end up in the database.
COORDINATE_EPSILON = 0.0001

_WKT_POINT = re.compile(r"POINT\s*\(\s*(-?[0-9.]+)[,\s]+(-?[0-9.]+)\s*\)", re.IGNORECASE)


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> int:
    """
    Great-circle distance between two points, in whole meters.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in meters, rounded to the nearest integer
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (math.sin(d_lat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return int(round(EARTH_RADIUS_M * c))


def parse_wkt_point(text: Optional[str]) -> Optional[Coordinates]:
    """
    Parse `POINT(lon lat)` (as produced by ST_AsText) into coordinates.

    WKT stores longitude first. Returns None for anything that is not a point.
    """
    if not text or not isinstance(text, str):
        return None
    match = _WKT_POINT.search(text)
    if not match:
        return None
    return Coordinates(lat=float(match.group(2)), lon=float(match.group(1)))


def is_valid_coordinate(coords: Optional[Coordinates]) -> bool:
    """True unless the point is missing or sits on (0, 0)."""
    if coords is None:
        return False
    return abs(coords.lat) > COORDINATE_EPSILON or abs(coords.lon) > COORDINATE_EPSILON
