"""Tests for cross-source duplicate detection."""

from datetime import datetime

import pytest

from suburban_events.deduplicator import EventDeduplicator
from suburban_events.models.event import EventRecord
from suburban_events.utils.dates import REFERENCE_TZ


def make_record(
    title="Summer Concert",
    start=datetime(2025, 7, 12, 18, 0, tzinfo=REFERENCE_TZ),
    location="Main Street Plaza",
    source="Source A",
    **kwargs,
):
    kwargs.setdefault("url", "https://example.com/concert")
    return EventRecord(source=source, title=title, start=start, location=location, **kwargs)


@pytest.fixture
def deduplicator():
    return EventDeduplicator()


class TestDedupKey:
    """Tests for the duplicate key."""

    def test_case_insensitive(self):
        a = make_record(title="Summer Concert", location="Main Street Plaza")
        b = make_record(title="SUMMER CONCERT", location="main street plaza")
        assert EventDeduplicator.dedup_key(a) == EventDeduplicator.dedup_key(b)

    def test_uses_calendar_date_only(self):
        a = make_record(start=datetime(2025, 7, 12, 18, 0, tzinfo=REFERENCE_TZ))
        b = make_record(start=datetime(2025, 7, 12, 19, 30, tzinfo=REFERENCE_TZ))
        assert EventDeduplicator.dedup_key(a) == EventDeduplicator.dedup_key(b)

    def test_different_dates(self):
        a = make_record(start=datetime(2025, 7, 12, 18, 0, tzinfo=REFERENCE_TZ))
        b = make_record(start=datetime(2025, 7, 13, 18, 0, tzinfo=REFERENCE_TZ))
        assert EventDeduplicator.dedup_key(a) != EventDeduplicator.dedup_key(b)

    def test_unscheduled(self):
        assert EventDeduplicator.dedup_key(make_record(start=None)) == "summer concert||main street plaza"


class TestRichnessScore:
    """Tests for richness scoring."""

    def test_url_only(self):
        assert EventDeduplicator.richness_score(make_record(location="")) == 1

    def test_all_fields(self):
        record = make_record(description="Live band", tags=("Music",))
        assert EventDeduplicator.richness_score(record) == 4


class TestDedupe:
    """Tests for EventDeduplicator.dedupe."""

    def test_empty(self, deduplicator):
        assert deduplicator.dedupe([]) == []

    def test_distinct_records_kept_in_order(self, deduplicator):
        records = [make_record(title="B"), make_record(title="A"), make_record(title="C")]
        assert [r.title for r in deduplicator.dedupe(records)] == ["B", "A", "C"]

    def test_richer_record_wins(self, deduplicator):
        sparse = make_record(source="Source A")
        rich = make_record(source="Source B", description="Live band", tags=("Music",))

        result = deduplicator.dedupe([sparse, rich])

        assert result == [rich]

    def test_tie_keeps_first_seen(self, deduplicator):
        first = make_record(source="Source A", description="One")
        second = make_record(source="Source B", description="Two")

        assert deduplicator.dedupe([first, second]) == [first]
        assert deduplicator.dedupe([second, first]) == [second]

    def test_survivor_takes_first_seen_position(self, deduplicator):
        concert = make_record(source="Source A")
        market = make_record(title="Farmers Market", location="Southglenn")
        richer_concert = make_record(source="Source B", description="Live band")

        result = deduplicator.dedupe([concert, market, richer_concert])

        assert result == [richer_concert, market]

    def test_idempotent(self, deduplicator):
        records = [
            make_record(source="Source A"),
            make_record(source="Source B", description="Live band"),
            make_record(title="Farmers Market"),
        ]
        once = deduplicator.dedupe(records)
        assert deduplicator.dedupe(once) == once

    def test_no_two_survivors_share_a_key(self, deduplicator):
        records = [make_record(source=f"Source {i}") for i in range(5)]
        result = deduplicator.dedupe(records)
        keys = [EventDeduplicator.dedup_key(r) for r in result]
        assert len(keys) == len(set(keys)) == 1

    def test_logs_merge_count(self, deduplicator, caplog):
        caplog.set_level("INFO", logger="suburban_events")
        deduplicator.dedupe([make_record(), make_record(source="Source B")])
        assert "Merged 1 duplicate events" in caplog.text
