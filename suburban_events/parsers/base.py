"""Base class shared by the feed, calendar and markup parsers."""

from abc import ABC, abstractmethod
from datetime import date, datetime
from urllib.parse import urljoin
from zoneinfo import ZoneInfo

from ..config import Source
from ..logger import get_logger
from ..models.event import UNTITLED, EventRecord
from ..utils.dates import REFERENCE_TZ, normalize_datetime

logger = get_logger(__name__)


class ParseError(Exception):
    """Raised when a whole payload cannot be parsed."""

    pass


class SourceParser(ABC):
    """
    Converts one source's raw payload into event records.

    Subclasses implement :meth:`parse`. Item-level problems must be
    logged and skipped; only a payload that cannot be read at all may
    raise (``ParseError`` or the underlying library's exception), which
    the aggregator isolates to that source.

    Parsers that set ``raw_payload`` receive the undecoded response bytes
    and do their own charset detection.
    """

    raw_payload = False

    def __init__(self, tz: ZoneInfo = REFERENCE_TZ, now: datetime | None = None):
        """
        Args:
            tz: Reference timezone for date normalization
            now: Clock override used to anchor year-less dates
        """
        self.tz = tz
        self.now = now

    @abstractmethod
    def parse(self, payload: str | bytes, source: Source) -> list[EventRecord]:
        """
        Parse a payload fetched from ``source``.

        Args:
            payload: Response body, as bytes when ``raw_payload`` is set
            source: Descriptor the payload was fetched from

        Returns:
            List of validated EventRecord objects
        """

    def normalize_date(self, value: str | datetime | date | None) -> datetime | None:
        return normalize_datetime(value, self.tz, self.now)

    def build_record(
        self,
        source: Source,
        *,
        title: str | None,
        url: str | None,
        description: str | None = "",
        location: str | None = "",
        start=None,
        end=None,
        lat: float | None = None,
        lon: float | None = None,
    ) -> EventRecord | None:
        """
        Build a record, applying the shared fallbacks.

        Empty titles become the "Untitled" placeholder, relative links are
        resolved against the source URL and a missing link falls back to it.
        Dates go through the normalizer. Returns None (and logs) when the
        record fails validation.
        """
        link = (url or "").strip()
        link = urljoin(source.url, link) if link else source.url
        try:
            return EventRecord(
                source=source.name,
                title=(title or "").strip() or UNTITLED,
                url=link,
                description=description or "",
                location=location or "",
                start=self.normalize_date(start),
                end=self.normalize_date(end),
                lat=lat,
                lon=lon,
            )
        except ValueError as e:
            logger.warning(f"Skipping invalid event '{title}' from {source.name}: {e}")
            return None
