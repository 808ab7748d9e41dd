"""Duplicate event detection across sources."""

from .logger import get_logger
from .models.event import EventRecord

logger = get_logger(__name__)


class EventDeduplicator:
    """
    Collapse records describing the same event.

    Two records are duplicates when they share a key built from the
    lowercased title, the calendar date of the start and the lowercased
    location. Of each group the richest record survives, richness being
    the number of populated optional fields (url, description, location,
    tags). On a tie the record seen first wins, so the outcome only
    depends on input order, which the aggregator keeps fixed.
    """

    @staticmethod
    def dedup_key(record: EventRecord) -> str:
        """Key identifying an event across sources."""
        return f"{record.title.lower()}|{record.start_iso[:10]}|{record.location.lower()}"

    @staticmethod
    def richness_score(record: EventRecord) -> int:
        """Number of populated optional fields, 0 to 4."""
        return sum(
            1
            for value in (record.url, record.description, record.location, record.tags)
            if value
        )

    def dedupe(self, records: list[EventRecord]) -> list[EventRecord]:
        """
        Keep one record per key.

        Args:
            records: Candidate records in a deterministic order

        Returns:
            Surviving records, in the order their keys were first seen
        """
        kept: dict[str, EventRecord] = {}
        for record in records:
            key = self.dedup_key(record)
            current = kept.get(key)
            if current is None or self.richness_score(record) > self.richness_score(current):
                kept[key] = record

        merged = len(records) - len(kept)
        if merged:
            logger.info(f"Merged {merged} duplicate events ({len(kept)} remain)")
        return list(kept.values())
