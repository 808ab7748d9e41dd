"""Parser for plain HTML event listing pages."""

from bs4 import Tag
from soupsieve import SelectorSyntaxError

from ..config import Source
from ..logger import get_logger
from ..models.event import EventRecord
from ..utils.parser import HTMLParser
from .base import SourceParser
from .structured_data import extract_structured_events

logger = get_logger(__name__)

TITLE_SELECTOR = "h1, h2, h3, .title, .event-title, .EventList-title"
LOCATION_SELECTOR = ".location, .event-location, .EventListItem-location"

MAX_TITLE_LENGTH = 140
MAX_DESCRIPTION_LENGTH = 1200


class MarkupParser(SourceParser):
    """
    Extract events from an HTML page.

    JSON-LD Event blocks are read first. When the source configures a CSS
    selector, each matching element is then turned into a record with a
    set of generic heuristics:

    - title: first heading or title-like child, else aria-label, else the
      element's own text
    - link: the element itself if it is an anchor, else its first anchor
    - date: first ``<time>`` element's ``datetime`` attribute or its text
    - location: first location-like child
    - description: the element's full text

    Both paths contribute records; the deduplicator reconciles pages that
    publish the same event both ways. The heuristic path is lossy by
    nature: a page whose layout does not fit simply yields fewer or
    poorer records.
    """

    def parse(self, payload: str, source: Source) -> list[EventRecord]:
        parser = HTMLParser(payload, source.url)

        records = extract_structured_events(parser, source, self.tz, self.now)

        if source.selector:
            records.extend(self._parse_selector(parser, source))

        logger.debug(f"Parsed {len(records)} events from {source.name}")
        return records

    def _parse_selector(self, parser: HTMLParser, source: Source) -> list[EventRecord]:
        try:
            elements = parser.select(source.selector)
        except (SelectorSyntaxError, ValueError) as e:
            logger.warning(f"Invalid selector for {source.name} ({source.selector!r}): {e}")
            return []

        logger.debug(f"Selector {source.selector!r} matched {len(elements)} elements")

        records = []
        for element in elements:
            try:
                record = self._parse_element(parser, element, source)
            except (AttributeError, TypeError, ValueError) as e:
                logger.debug(f"Failed to parse element from {source.name}: {e}")
                continue
            if record:
                records.append(record)
        return records

    def _parse_element(
        self, parser: HTMLParser, element: Tag, source: Source
    ) -> EventRecord | None:
        text = parser.get_text(element)
        title = (
            parser.get_text(element, TITLE_SELECTOR)
            or parser.get_attr(element, "aria-label")
            or text
        )
        # Image-only cards still count when they carry an aria-label
        if not title:
            return None

        time_el = element.select_one("time")
        date_guess = ""
        if time_el is not None:
            date_guess = time_el.get("datetime") or parser.get_text(time_el)

        return self.build_record(
            source,
            title=parser.truncate(title, MAX_TITLE_LENGTH),
            url=parser.get_link(element),
            description=parser.truncate(text, MAX_DESCRIPTION_LENGTH),
            location=parser.get_text(element, LOCATION_SELECTOR),
            start=date_guess,
        )
