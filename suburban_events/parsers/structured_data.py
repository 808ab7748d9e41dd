"""Extraction of schema.org Event items from JSON-LD script blocks."""

import json
import math
import re
from datetime import datetime
from zoneinfo import ZoneInfo

from ..config import Source
from ..logger import get_logger
from ..models.event import EventRecord, GeoPoint
from ..utils.dates import REFERENCE_TZ
from ..utils.parser import HTMLParser
from ..utils.sanitize import sanitize_description
from .base import SourceParser

logger = get_logger(__name__)

_EVENT_TYPE_RE = re.compile(r"event", re.IGNORECASE)


def _text(value) -> str:
    """JSON-LD scalars are usually strings; anything else is ignored."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        for item in value:
            if isinstance(item, str) and item.strip():
                return item.strip()
    return ""


def _coordinate(value) -> float | None:
    """Accept numbers and numeric strings, but not booleans."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def is_event(item: dict) -> bool:
    """True when ``@type`` (a string or a list of strings) names an Event type."""
    types = item.get("@type")
    if isinstance(types, str):
        types = [types]
    if not isinstance(types, list):
        return False
    return any(isinstance(t, str) and _EVENT_TYPE_RE.search(t) for t in types)


def iter_json_ld_items(parser: HTMLParser):
    """
    Yield every JSON object found in the document's JSON-LD blocks.

    A block may hold a single object, an array of objects or an object
    with an ``@graph`` array. Blocks json cannot load are skipped.
    """
    for raw in parser.json_ld_scripts():
        try:
            data = json.loads(raw)
        except (ValueError, RecursionError) as e:
            # JSONDecodeError, oversized integers and runaway nesting
            logger.debug(f"Skipping unreadable JSON-LD block: {type(e).__name__}: {e}")
            continue

        blocks = data if isinstance(data, list) else [data]
        for block in blocks:
            if not isinstance(block, dict):
                continue
            graph = block.get("@graph")
            if isinstance(graph, list):
                yield from (item for item in graph if isinstance(item, dict))
            else:
                yield block


def _location(value) -> tuple[str, GeoPoint | None]:
    """Place name and coordinates from a ``location`` value."""
    if isinstance(value, list):
        for item in value:
            name, geo = _location(item)
            if name or geo:
                return name, geo
        return "", None
    if isinstance(value, str):
        return value.strip(), None
    if not isinstance(value, dict):
        return "", None

    name = _text(value.get("name"))
    if not name:
        address = value.get("address")
        if isinstance(address, dict):
            parts = [
                _text(address.get(key))
                for key in ("streetAddress", "addressLocality", "addressRegion")
            ]
            name = ", ".join(p for p in parts if p)
        else:
            name = _text(address)

    geo = value.get("geo")
    point = None
    if isinstance(geo, dict):
        lat = _coordinate(geo.get("latitude"))
        lon = _coordinate(geo.get("longitude"))
        if lat is not None and lon is not None:
            try:
                point = GeoPoint(lat, lon)
            except ValueError:
                logger.debug(f"Ignoring out-of-range geo for '{name}': {lat}, {lon}")
    return name, point


def _item_record(
    builder: SourceParser, item: dict, source: Source
) -> EventRecord | None:
    if not is_event(item):
        return None

    location, point = _location(item.get("location"))
    return builder.build_record(
        source,
        title=sanitize_description(_text(item.get("name"))),
        url=_text(item.get("url")),
        description=sanitize_description(_text(item.get("description"))),
        location=location,
        start=_text(item.get("startDate")),
        end=_text(item.get("endDate")),
        lat=point.lat if point else None,
        lon=point.lon if point else None,
    )


class StructuredDataParser(SourceParser):
    """Parser for pages whose only usable data is JSON-LD."""

    def parse(self, payload: str, source: Source) -> list[EventRecord]:
        return extract_structured_events(
            HTMLParser(payload, source.url), source, self.tz, self.now
        )


def extract_structured_events(
    parser: HTMLParser,
    source: Source,
    tz: ZoneInfo = REFERENCE_TZ,
    now: datetime | None = None,
) -> list[EventRecord]:
    """
    Build records from every schema.org Event in a parsed document.

    Args:
        parser: Parsed HTML document
        source: Source the document came from
        tz: Reference timezone for date normalization
        now: Clock override for year-less dates

    Returns:
        Records in document order
    """
    builder = StructuredDataParser(tz=tz, now=now)
    records = []

    for item in iter_json_ld_items(parser):
        try:
            record = _item_record(builder, item, source)
        except (AttributeError, TypeError, ValueError, RecursionError) as e:
            logger.warning(f"Failed to parse JSON-LD item from {source.name}: {e}")
            continue
        if record:
            records.append(record)

    if records:
        logger.debug(f"Found {len(records)} JSON-LD events on {source.name}")
    return records
