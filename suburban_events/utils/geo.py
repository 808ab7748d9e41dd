"""Great-circle distance and the textual geofence fallback."""

import math
from collections.abc import Iterable

from ..models.event import GeoPoint

EARTH_RADIUS_MILES = 3958.8

# Absorbs float rounding so a point computed to lie on the radius is kept
RADIUS_TOLERANCE_MILES = 1e-9

# Place names that mark an event without coordinates as local. Substring
# matches, so short names like "dtc" also hit longer words; accepted.
DEFAULT_LOCAL_PLACES = (
    "greenwood",
    "littleton",
    "englewood",
    "centennial",
    "lone tree",
    "highlands ranch",
    "roxborough",
    "ken caryl",
    "columbine",
    "parker",
    "dtc",
)


def haversine_miles(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in statute miles."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    d_lat = lat2 - lat1
    d_lon = math.radians(b.lon - a.lon)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(math.sqrt(h))


def within_radius(point: GeoPoint, center: GeoPoint, radius_miles: float) -> bool:
    """True when ``point`` is no farther than ``radius_miles`` from ``center``."""
    return haversine_miles(point, center) <= radius_miles + RADIUS_TOLERANCE_MILES


def mentions_local_place(text: str, places: Iterable[str] = DEFAULT_LOCAL_PLACES) -> bool:
    """Case-insensitive substring test against known local place names."""
    haystack = (text or "").lower()
    return any(place.lower() in haystack for place in places if place)
