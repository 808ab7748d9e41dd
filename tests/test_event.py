"""Tests for the event record model."""

from dataclasses import FrozenInstanceError, replace
from datetime import datetime

import pytest

from suburban_events.models.event import UNTITLED, EventRecord, GeoPoint, format_iso
from suburban_events.utils.dates import REFERENCE_TZ


def make_record(**kwargs):
    defaults = {
        "source": "Test Source",
        "title": "Summer Concert",
        "url": "https://example.com/e/1",
        "start": datetime(2025, 7, 12, 18, 0, tzinfo=REFERENCE_TZ),
    }
    defaults.update(kwargs)
    return EventRecord(**defaults)


class TestGeoPoint:
    """Tests for GeoPoint."""

    def test_valid_point(self):
        point = GeoPoint(39.61, -104.89)
        assert (point.lat, point.lon) == (39.61, -104.89)

    @pytest.mark.parametrize("lat,lon", [(90.5, 0), (-91, 0), (0, 180.1), (0, -181)])
    def test_out_of_range(self, lat, lon):
        with pytest.raises(ValueError):
            GeoPoint(lat, lon)


class TestEventRecord:
    """Tests for EventRecord validation and helpers."""

    def test_strips_text_fields(self):
        record = make_record(title="  Summer Concert ", location=" Littleton ", description=" x ")
        assert record.title == "Summer Concert"
        assert record.location == "Littleton"
        assert record.description == "x"

    def test_tags_become_tuple(self):
        record = make_record(tags=["Music"])
        assert record.tags == ("Music",)

    def test_requires_source_and_url(self):
        with pytest.raises(ValueError, match="source"):
            make_record(source="")
        with pytest.raises(ValueError, match="URL"):
            make_record(url="")

    def test_rejects_naive_datetime(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            make_record(start=datetime(2025, 7, 12, 18, 0))

    def test_rejects_string_dates(self):
        with pytest.raises(ValueError, match="must be a datetime"):
            make_record(start="2025-07-12T18:00:00")

    def test_lat_lon_must_come_together(self):
        with pytest.raises(ValueError, match="together"):
            make_record(lat=39.6)

    def test_coordinates_range_checked(self):
        with pytest.raises(ValueError):
            make_record(lat=100.0, lon=-104.9)

    def test_coordinates_property(self):
        assert make_record().coordinates is None
        assert make_record(lat=39.6, lon=-104.9).coordinates == GeoPoint(39.6, -104.9)

    def test_start_iso(self):
        record = make_record()
        assert record.start_iso == "2025-07-12T18:00:00-06:00"
        assert make_record(start=None).start_iso == ""

    def test_is_frozen(self):
        record = make_record()
        with pytest.raises(FrozenInstanceError):
            record.title = "Changed"
        assert replace(record, title="Changed").title == "Changed"

    def test_to_dict(self):
        data = make_record(tags=("Music",), lat=39.6, lon=-104.9).to_dict()
        assert data["start"] == "2025-07-12T18:00:00-06:00"
        assert data["end"] is None
        assert data["tags"] == ["Music"]
        assert data["lat"] == 39.6

    def test_to_dict_omits_missing_coordinates(self):
        assert "lat" not in make_record().to_dict()


def test_format_iso_none():
    assert format_iso(None) == ""


def test_untitled_placeholder():
    assert UNTITLED == "Untitled"
