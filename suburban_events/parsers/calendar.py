"""Parser for iCalendar (.ics) feeds."""

from icalendar import Calendar

from ..config import Source
from ..logger import get_logger
from ..models.event import EventRecord
from ..utils.sanitize import sanitize_description
from .base import ParseError, SourceParser

logger = get_logger(__name__)


def _text(component, name: str) -> str:
    value = component.get(name)
    return str(value) if value is not None else ""


def _date_value(component, name: str):
    """DTSTART/DTEND as the date or datetime icalendar decoded, or None."""
    prop = component.get(name)
    return getattr(prop, "dt", None) if prop is not None else None


class CalendarParser(SourceParser):
    """
    One record per VEVENT in an iCalendar payload.

    VTIMEZONE, VTODO and other components are ignored. TZID parameters are
    honoured by icalendar; floating times are read in the reference
    timezone and all-day events start at midnight. Records come out in
    (start, title) order so a reordered export yields the same list.
    """

    def parse(self, payload: str, source: Source) -> list[EventRecord]:
        if not payload or "BEGIN:VCALENDAR" not in payload:
            raise ParseError(f"No VCALENDAR block in payload from {source.name}")

        try:
            calendar = Calendar.from_ical(payload)
        except ValueError as e:
            raise ParseError(f"Invalid iCalendar data: {e}") from e

        records = []
        for component in calendar.walk("VEVENT"):
            try:
                record = self._parse_event(component, source)
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Failed to parse VEVENT from {source.name}: {e}")
                continue
            if record:
                records.append(record)

        records.sort(key=lambda r: (r.start_iso, r.title))
        logger.debug(f"Parsed {len(records)} VEVENTs from {source.name}")
        return records

    def _parse_event(self, component, source: Source) -> EventRecord | None:
        return self.build_record(
            source,
            title=_text(component, "SUMMARY"),
            url=_text(component, "URL"),
            description=sanitize_description(_text(component, "DESCRIPTION")),
            location=_text(component, "LOCATION"),
            start=_date_value(component, "DTSTART"),
            end=_date_value(component, "DTEND"),
        )
