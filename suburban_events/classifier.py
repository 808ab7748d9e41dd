"""Keyword tagger assigning interest categories to events."""

import re
from dataclasses import replace

from .logger import get_logger
from .models.event import EventRecord

logger = get_logger(__name__)

# Category patterns, in taxonomy order. Matched case-insensitively against
# "title description location source".
TAXONOMY: dict[str, list[str]] = {
    "Music": [r"concert|band|orchestra|dj\b|open mic"],
    "Arts": [r"\bart\b|gallery|exhibit|exhibition|sculpture|craft fair"],
    "Theater": [r"theatre|theater|play\b|musical\b|improv show"],
    "Comedy": [r"comedy|stand-?up"],
    "Markets": [r"market|bazaar|fair|flea market|farmers market"],
    "Food & Drink": [
        r"brewery|beer|wine|tasting|food truck|restaurant week|cookoff|brunch"
    ],
    "Outdoors": [r"hike|trail|garden|nature walk|wildflower|botanic"],
    "Fitness": [r"yoga|pilates|boot ?camp|zumba|run\b|5k|spin class"],
    "Sports": [
        r"game\b|match|tournament|league|soccer|baseball|basketball|pickleball|hockey"
    ],
    "Kids & Family": [r"kids|family|children|toddler|storytime|lego|teen|young adult"],
    "Library": [r"library|libraries|book club|author talk|storytime"],
    "Classes & Workshops": [r"workshop|class|course|lesson|seminar|training|clinic"],
    "City & Civic": [
        r"city council|town hall|public meeting|board meeting|candidate forum|planning commission"
    ],
}

# Interest names subscribers can choose from
INTERESTS: list[str] = list(TAXONOMY)

LIBRARY_TAG = "Library"

# Library systems whose every listing is a library event
DEFAULT_LIBRARY_SOURCES = ("Arapahoe Libraries", "Douglas County Libraries")


class EventTagger:
    """
    Assigns taxonomy categories to events by regex matching.

    A category is assigned when any of its patterns matches anywhere in
    the concatenation of title, description, location and source name.
    Events from a library system are always tagged "Library", whatever
    their text says. Tags are returned sorted, so tagging is a pure
    function of the record.
    """

    def __init__(
        self,
        patterns: dict[str, list[str]] | None = None,
        library_sources: tuple[str, ...] | list[str] = DEFAULT_LIBRARY_SOURCES,
    ):
        """
        Initialize the tagger.

        Args:
            patterns: Extra patterns per category, merged into the taxonomy
            library_sources: Source names that are always tagged "Library"
        """
        merged = {category: list(regexes) for category, regexes in TAXONOMY.items()}
        if patterns:
            for category, regexes in patterns.items():
                merged.setdefault(category, []).extend(regexes)

        self.categories = list(merged)
        self._compiled = {
            category: [re.compile(p, re.IGNORECASE) for p in regexes]
            for category, regexes in merged.items()
        }

        self.library_sources = tuple(library_sources)
        self._library_re = None
        if self.library_sources:
            self._library_re = re.compile(
                "|".join(re.escape(name) for name in self.library_sources),
                re.IGNORECASE,
            )

    def tag(self, record: EventRecord) -> tuple[str, ...]:
        """
        Compute the tags of a record.

        Args:
            record: Event to tag

        Returns:
            Sorted tuple of unique category names
        """
        haystack = " ".join(
            [record.title, record.description, record.location, record.source]
        )

        tags = {
            category
            for category, regexes in self._compiled.items()
            if any(regex.search(haystack) for regex in regexes)
        }

        if self._library_re and self._library_re.search(record.source):
            tags.add(LIBRARY_TAG)

        return tuple(sorted(tags))

    def tag_event(self, record: EventRecord) -> EventRecord:
        """Return a copy of ``record`` carrying its tags."""
        tags = self.tag(record)
        logger.debug(f"Tagged '{record.title[:30]}' with {list(tags)}")
        return replace(record, tags=tags)

    @classmethod
    def from_config(cls, config: dict) -> "EventTagger":
        """
        Create tagger from the ``aggregation`` configuration section.

        Args:
            config: Mapping with optional ``library_sources`` and
                ``extra_keywords`` ({category: [pattern, ...]})

        Returns:
            EventTagger instance
        """
        library_sources = config.get("library_sources")
        if library_sources is None:
            library_sources = DEFAULT_LIBRARY_SOURCES
        return cls(
            patterns=config.get("extra_keywords"),
            library_sources=tuple(library_sources),
        )
