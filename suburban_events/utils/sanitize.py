"""Turn HTML fragments from feeds and JSON-LD into plain text."""

import html
import re

_HTML_TAG_RE = re.compile(r"<[^>]+>")

_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_description(text: str | None) -> str:
    """Strip tags, decode entities and collapse whitespace.

    Feed summaries, iCalendar descriptions and JSON-LD ``description``
    values frequently embed HTML. The renderer escapes everything it
    prints, so the only goal here is readable plain text for display and
    for keyword tagging.

    Args:
        text: Raw description, possibly containing tags and entities.

    Returns:
        Plain text, or "" for empty input.
    """
    if not text:
        return ""

    # Replace tags with a space so adjacent words do not merge
    clean = _HTML_TAG_RE.sub(" ", str(text))
    clean = html.unescape(clean)
    clean = _WHITESPACE_RE.sub(" ", clean)
    return clean.strip()
