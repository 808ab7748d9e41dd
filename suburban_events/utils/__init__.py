"""Utility modules for the aggregator."""

from .dates import REFERENCE_TZ, normalize_datetime
from .geo import haversine_miles, mentions_local_place, within_radius
from .http import AsyncHTTPClient, FetchError, FetchResult, ResponseCache
from .parser import HTMLParser
from .sanitize import sanitize_description

__all__ = [
    "AsyncHTTPClient",
    "FetchError",
    "FetchResult",
    "HTMLParser",
    "REFERENCE_TZ",
    "ResponseCache",
    "haversine_miles",
    "mentions_local_place",
    "normalize_datetime",
    "sanitize_description",
    "within_radius",
]
