"""Format adapters, one per source kind."""

from ..config import SourceKind
from .base import ParseError, SourceParser
from .calendar import CalendarParser
from .feed import FeedParser
from .markup import MarkupParser
from .structured_data import StructuredDataParser, extract_structured_events

PARSERS = {
    SourceKind.FEED: FeedParser,
    SourceKind.CALENDAR_FEED: CalendarParser,
    SourceKind.MARKUP: MarkupParser,
}


def get_parser(kind: SourceKind | str) -> type[SourceParser]:
    """
    Get parser class for a source kind.

    Args:
        kind: Source kind (e.g., 'feed', 'markup')

    Returns:
        Parser class

    Raises:
        ValueError: If no parser handles the kind
    """
    try:
        return PARSERS[SourceKind(kind)]
    except ValueError:
        available = ", ".join(k.value for k in PARSERS)
        raise ValueError(f"Unknown source kind: {kind}. Available: {available}") from None


def list_parsers() -> list[str]:
    """List the source kinds that have a parser."""
    return [kind.value for kind in PARSERS]


__all__ = [
    "CalendarParser",
    "FeedParser",
    "MarkupParser",
    "ParseError",
    "SourceParser",
    "StructuredDataParser",
    "extract_structured_events",
    "get_parser",
    "list_parsers",
]
