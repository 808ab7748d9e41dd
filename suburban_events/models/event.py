"""Event record model shared by every parser and pipeline stage."""

from dataclasses import dataclass, field
from datetime import datetime

UNTITLED = "Untitled"


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float

    def __post_init__(self):
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lon <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lon}")


def format_iso(dt: datetime | None) -> str:
    """Canonical ISO-8601 form used for sorting and deduplication keys."""
    if dt is None:
        return ""
    return dt.isoformat(timespec="seconds")


@dataclass(frozen=True)
class EventRecord:
    """
    A single event extracted from one source.

    Records are validated on construction and never mutated afterwards;
    tagging and deduplication build new records with ``dataclasses.replace``.
    ``start`` and ``end`` are timezone-aware datetimes already converted to
    the reference timezone by the date normalizer, or ``None``.
    """

    source: str
    title: str
    url: str
    description: str = ""
    location: str = ""
    start: datetime | None = None
    end: datetime | None = None
    lat: float | None = None
    lon: float | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        """Validate fields at the parser boundary."""
        if not self.source:
            raise ValueError("Event source is required")
        if not self.url:
            raise ValueError("Event URL is required")
        for name in ("start", "end"):
            value = getattr(self, name)
            if value is None:
                continue
            if not isinstance(value, datetime):
                raise ValueError(f"{name} must be a datetime, got {type(value).__name__}")
            if value.tzinfo is None:
                raise ValueError(f"{name} must be timezone-aware")
        if (self.lat is None) != (self.lon is None):
            raise ValueError("lat and lon must be given together")
        if self.lat is not None:
            GeoPoint(self.lat, self.lon)

        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "title", (self.title or "").strip())
        object.__setattr__(self, "description", (self.description or "").strip())
        object.__setattr__(self, "location", (self.location or "").strip())
        object.__setattr__(self, "tags", tuple(self.tags))

    @property
    def start_iso(self) -> str:
        """Start as canonical ISO string, or "" when unscheduled."""
        return format_iso(self.start)

    @property
    def end_iso(self) -> str:
        return format_iso(self.end)

    @property
    def coordinates(self) -> GeoPoint | None:
        """Structured coordinates, if the source supplied them."""
        if self.lat is None or self.lon is None:
            return None
        return GeoPoint(self.lat, self.lon)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        data = {
            "source": self.source,
            "title": self.title,
            "url": self.url,
            "description": self.description,
            "location": self.location,
            "start": self.start_iso or None,
            "end": self.end_iso or None,
            "tags": list(self.tags),
        }
        if self.lat is not None:
            data["lat"] = self.lat
            data["lon"] = self.lon
        return data
