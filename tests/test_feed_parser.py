"""Tests for the RSS/Atom feed parser."""

import pytest

from suburban_events.models.event import UNTITLED
from suburban_events.parsers import FeedParser, ParseError


@pytest.fixture
def source(make_source):
    return make_source(
        name="Littleton News", url="https://littleton.example.com/news", kind="feed"
    )


@pytest.fixture
def parser(fixed_now):
    return FeedParser(now=fixed_now)


RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>City News</title>
    <link>https://littleton.example.com/news</link>
    <description>News from the city</description>
    <item>
      <title>Summer Concert Series announced</title>
      <link>https://littleton.example.com/news/summer-concert</link>
      <description>Live band &lt;b&gt;on the plaza&lt;/b&gt;</description>
      <pubDate>Sat, 12 Jul 2025 18:00:00 -0600</pubDate>
    </item>
    <item>
      <description>An item with no title or link</description>
      <pubDate>Sun, 13 Jul 2025 10:00:00 -0600</pubDate>
    </item>
  </channel>
</rss>
"""

ATOM = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Parks Updates</title>
  <id>urn:uuid:parks</id>
  <updated>2025-07-13T16:00:00Z</updated>
  <entry>
    <title>Trail closure on Saturday</title>
    <id>urn:uuid:trail</id>
    <link href="https://parks.example.com/trail-closure"/>
    <updated>2025-07-13T16:00:00Z</updated>
    <summary>Crews will be working near the creek.</summary>
  </entry>
</feed>
"""


class TestRSS:
    """Tests for RSS 2.0 payloads."""

    def test_one_record_per_item(self, parser, source):
        assert len(parser.parse(RSS, source)) == 2

    def test_maps_fields(self, parser, source):
        record = parser.parse(RSS, source)[0]

        assert record.source == "Littleton News"
        assert record.title == "Summer Concert Series announced"
        assert record.url == "https://littleton.example.com/news/summer-concert"
        assert record.description == "Live band on the plaza"
        assert record.location == ""
        assert record.coordinates is None

    def test_pub_date_becomes_start(self, parser, source):
        record = parser.parse(RSS, source)[0]
        assert record.start_iso == "2025-07-12T18:00:00-06:00"

    def test_missing_title_and_link_fall_back(self, parser, source):
        record = parser.parse(RSS, source)[1]
        assert record.title == UNTITLED
        assert record.url == source.url


class TestAtom:
    """Tests for Atom payloads."""

    def test_updated_is_used_as_start(self, parser, source):
        records = parser.parse(ATOM, source)

        assert len(records) == 1
        # 16:00 UTC is 10:00 in Denver during daylight time
        assert records[0].start_iso == "2025-07-13T10:00:00-06:00"

    def test_link_and_summary(self, parser, source):
        record = parser.parse(ATOM, source)[0]
        assert record.url == "https://parks.example.com/trail-closure"
        assert record.description == "Crews will be working near the creek."


class TestUnreadableFeeds:
    """A payload that is not a feed at all is a whole-source failure."""

    def test_plain_text_raises(self, parser, source):
        with pytest.raises(ParseError):
            parser.parse("this is not a feed <<< at all", source)

    def test_empty_channel_is_not_an_error(self, parser, source):
        payload = (
            '<?xml version="1.0"?><rss version="2.0"><channel>'
            "<title>Empty</title></channel></rss>"
        )
        assert parser.parse(payload, source) == []

    def test_local_path_payload_is_not_opened(self, parser, source, tmp_path):
        local = tmp_path / "local.xml"
        local.write_text(RSS, encoding="utf-8")

        with pytest.raises(ParseError):
            parser.parse(str(local), source)

    def test_url_payload_is_not_fetched(self, parser, source, monkeypatch):
        def no_fetch(*args, **kwargs):
            raise AssertionError("feed body was fetched as a URL")

        monkeypatch.setattr("urllib.request.OpenerDirector.open", no_fetch)

        with pytest.raises(ParseError):
            parser.parse("https://news.example.com/other-feed.xml", source)


class TestEncodingAndExtensions:
    """Raw bytes and the RSS event module."""

    def test_declared_encoding_is_honoured(self, parser, source):
        payload = (
            '<?xml version="1.0" encoding="iso-8859-1"?>'
            '<rss version="2.0"><channel><title>News</title>'
            "<item><title>Café concert</title>"
            "<pubDate>Sat, 12 Jul 2025 18:00:00 -0600</pubDate></item>"
            "</channel></rss>"
        ).encode("latin-1")

        assert [r.title for r in parser.parse(payload, source)] == ["Café concert"]

    def test_event_module_fields(self, parser, source):
        payload = """<?xml version="1.0"?>
<rss version="2.0" xmlns:ev="http://purl.org/rss/1.0/modules/event/">
  <channel>
    <title>City Events</title>
    <item>
      <title>Summer Concert</title>
      <link>https://littleton.example.com/news/concert</link>
      <pubDate>Mon, 07 Jul 2025 09:00:00 -0600</pubDate>
      <ev:startdate>2025-07-12T18:00:00-06:00</ev:startdate>
      <ev:enddate>2025-07-12T20:00:00-06:00</ev:enddate>
      <ev:location>Main Street Plaza, Littleton</ev:location>
    </item>
  </channel>
</rss>
"""
        record = parser.parse(payload, source)[0]

        assert record.start_iso == "2025-07-12T18:00:00-06:00"
        assert record.end.isoformat() == "2025-07-12T20:00:00-06:00"
        assert record.location == "Main Street Plaza, Littleton"
