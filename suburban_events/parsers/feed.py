"""Parser for RSS and Atom syndication feeds."""

import io

import feedparser

from ..config import Source
from ..logger import get_logger
from ..models.event import EventRecord
from ..utils.sanitize import sanitize_description
from .base import ParseError, SourceParser

logger = get_logger(__name__)


class FeedParser(SourceParser):
    """
    One record per RSS ``<item>`` or Atom ``<entry>``.

    The date is the item's published (or updated) timestamp. Plain feeds
    carry no venue, so location stays empty and the geofence falls back
    to place names in the description. Feeds using the RSS event module
    (``ev:startdate``, ``ev:enddate``, ``ev:location``) get those fields
    instead.
    """

    raw_payload = True

    def parse(self, payload: str | bytes, source: Source) -> list[EventRecord]:
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        # A stream is never mistaken for a URL or a local filename
        feed = feedparser.parse(io.BytesIO(payload))

        # feedparser tolerates most breakage; only give up when nothing came out
        if feed.bozo and not feed.entries:
            raise ParseError(f"Not a readable feed: {feed.get('bozo_exception')}")

        records = []
        for entry in feed.entries:
            try:
                record = self._parse_entry(entry, source)
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Failed to parse feed item from {source.name}: {e}")
                continue
            if record:
                records.append(record)

        logger.debug(f"Parsed {len(records)} items from feed {source.name}")
        return records

    def _parse_entry(self, entry, source: Source) -> EventRecord | None:
        description = entry.get("summary") or entry.get("description") or ""
        return self.build_record(
            source,
            title=sanitize_description(entry.get("title", "")),
            url=entry.get("link", ""),
            description=sanitize_description(description),
            location=sanitize_description(entry.get("ev_location", "")),
            start=(
                entry.get("ev_startdate")
                or entry.get("published")
                or entry.get("updated")
                or ""
            ),
            end=entry.get("ev_enddate") or "",
        )
