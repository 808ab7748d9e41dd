"""Tests for the HTML listing parser."""

import json
import logging

import pytest

from suburban_events.parsers import MarkupParser

LISTING = """
<html>
<head>
  <script type="application/ld+json">{jsonld}</script>
</head>
<body>
  <div class="event-card">
    <h3>Movie Night</h3>
    <time datetime="2025-07-18T19:30:00">Jul 18</time>
    <span class="location">Clement Park</span>
    <a href="/e/movie-night">More</a>
  </div>
  <div class="event-card" aria-label="Chalk Art Day">
    <span>Sidewalk drawing for everyone</span>
    <a href="https://chalk.example.org/day">Details</a>
  </div>
  <div class="event-card"><time>Jul 20</time> Farmers Market on Main</div>
  <div class="event-card">   </div>
</body>
</html>
"""

JSON_LD = {
    "@type": "Event",
    "name": "Summer Concert",
    "startDate": "2025-07-12T18:00:00",
    "location": "Main Street Plaza, Littleton",
}


@pytest.fixture
def listing():
    return LISTING.replace("{jsonld}", json.dumps(JSON_LD))


@pytest.fixture
def parser(fixed_now):
    return MarkupParser(now=fixed_now)


@pytest.fixture
def source(make_source):
    return make_source(
        name="Littleton Events",
        url="https://littleton.example.com/events/",
        selector=".event-card",
    )


class TestMarkupParser:
    """Tests for the combined JSON-LD and selector paths."""

    def test_both_paths_contribute(self, parser, source, listing):
        titles = [r.title for r in parser.parse(listing, source)]
        assert titles == [
            "Summer Concert",
            "Movie Night",
            "Chalk Art Day",
            "Jul 20 Farmers Market on Main",
        ]

    def test_no_selector_reads_json_ld_only(self, parser, make_source, listing):
        source = make_source(url="https://littleton.example.com/events/")
        assert [r.title for r in parser.parse(listing, source)] == ["Summer Concert"]

    def test_heading_time_and_location(self, parser, source, listing):
        record = parser.parse(listing, source)[1]

        assert record.url == "https://littleton.example.com/e/movie-night"
        assert record.start_iso == "2025-07-18T19:30:00-06:00"
        assert record.location == "Clement Park"
        assert record.description.startswith("Movie Night")

    def test_aria_label_title(self, parser, source, listing):
        record = parser.parse(listing, source)[2]
        assert record.url == "https://chalk.example.org/day"
        assert record.start is None
        assert record.location == ""

    def test_time_text_and_link_fallback(self, parser, source, listing):
        record = parser.parse(listing, source)[3]
        assert record.start_iso == "2025-07-20T00:00:00-06:00"
        assert record.url == source.url

    def test_anchor_as_element(self, parser, make_source):
        source = make_source(url="https://example.com/", selector="a.event")
        html = '<a class="event" href="/yoga"><h2>Yoga in the Park</h2></a>'
        record = parser.parse(html, source)[0]
        assert record.title == "Yoga in the Park"
        assert record.url == "https://example.com/yoga"

    def test_long_title_is_truncated(self, parser, make_source):
        source = make_source(selector=".event-card")
        html = f'<div class="event-card"><h3>{"word " * 60}</h3></div>'
        record = parser.parse(html, source)[0]
        assert len(record.title) <= 140
        assert record.title.endswith("...")

    def test_image_only_anchor_uses_aria_label(self, parser, make_source):
        source = make_source(url="https://parkmeadows.example.com/", selector="a[href*='/events/']")
        html = (
            '<a href="/en/events/fall-market" aria-label="Fall Market">'
            '<img src="/img/fall.jpg" alt=""></a>'
        )

        records = parser.parse(html, source)

        assert [r.title for r in records] == ["Fall Market"]
        assert records[0].url == "https://parkmeadows.example.com/en/events/fall-market"
        assert records[0].description == ""

    def test_unreadable_json_ld_keeps_other_records(self, parser, make_source):
        source = make_source(url="https://example.com/", selector=".ev")
        good = json.dumps(JSON_LD)
        for bad_block in ("1" * 5000, "[" * 100000 + "]" * 100000):
            html = (
                f'<script type="application/ld+json">{good}</script>'
                f'<script type="application/ld+json">{bad_block}</script>'
                '<div class="ev"><h3>Story Hour</h3></div>'
            )
            titles = [r.title for r in parser.parse(html, source)]
            assert titles == ["Summer Concert", "Story Hour"]


class TestMarkupFailures:
    """Bad selectors and broken markup degrade to fewer records."""

    def test_invalid_selector(self, parser, make_source, listing, caplog):
        source = make_source(selector="div[")
        caplog.set_level(logging.WARNING, logger="suburban_events")

        records = parser.parse(listing, source)

        assert [r.title for r in records] == ["Summer Concert"]
        assert "Invalid selector" in caplog.text

    def test_malformed_markup(self, parser, source):
        html = "<div class='event-card'><h3>Broken<div><p>unclosed"
        records = parser.parse(html, source)
        assert records[0].title.startswith("Broken")

    def test_no_matches(self, parser, source):
        assert parser.parse("<html><body><p>Nothing here</p></body></html>", source) == []
