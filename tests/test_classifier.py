"""Tests for the keyword tagger."""

import pytest

from suburban_events.classifier import INTERESTS, LIBRARY_TAG, TAXONOMY, EventTagger
from suburban_events.models.event import EventRecord


def make_record(title="", description="", location="", source="Test Source", **kwargs):
    return EventRecord(
        source=source,
        title=title,
        url="https://example.com/e",
        description=description,
        location=location,
        **kwargs,
    )


@pytest.fixture
def tagger():
    return EventTagger()


class TestTaxonomy:
    """Tests for the category list."""

    def test_interests_follow_taxonomy_order(self):
        assert INTERESTS == list(TAXONOMY)
        assert INTERESTS[0] == "Music"
        assert INTERESTS[-1] == "City & Civic"

    def test_thirteen_categories(self):
        assert len(INTERESTS) == 13


class TestEventTagger:
    """Tests for EventTagger.tag."""

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Summer Concert", ("Music",)),
            ("Open Mic Night", ("Music",)),
            ("Improv Show at the Arts Center", ("Theater",)),
            ("Stand-up Saturday", ("Comedy",)),
            ("Sunset Yoga", ("Fitness",)),
            ("Pickleball Tournament", ("Sports",)),
            ("City Council Regular Meeting", ("City & Civic",)),
            ("Pottery Workshop", ("Classes & Workshops",)),
        ],
    )
    def test_single_category(self, tagger, title, expected):
        assert tagger.tag(make_record(title=title)) == expected

    def test_multiple_categories_sorted(self, tagger):
        tags = tagger.tag(make_record(title="Family Yoga at the Botanic Gardens"))
        assert tags == ("Fitness", "Kids & Family", "Outdoors")
        assert list(tags) == sorted(tags)

    def test_matches_description_and_location(self, tagger):
        record = make_record(title="Saturday Fun", description="Bring the kids", location="Brewery Row")
        assert tagger.tag(record) == ("Food & Drink", "Kids & Family")

    def test_case_insensitive(self, tagger):
        assert tagger.tag(make_record(title="FARMERS MARKET")) == ("Markets",)

    def test_word_boundaries(self, tagger):
        # "art" must be a whole word; "party" and "started" do not count
        assert tagger.tag(make_record(title="Party started early")) == ()
        assert tagger.tag(make_record(title="Art Walk")) == ("Arts",)

    def test_no_match(self, tagger):
        assert tagger.tag(make_record(title="Quarterly Update")) == ()

    def test_deterministic(self, tagger):
        record = make_record(title="Storytime with a Lego build")
        assert tagger.tag(record) == tagger.tag(record)
        assert tagger.tag(record) == ("Kids & Family", "Library")


class TestLibraryRule:
    """Library systems always produce the Library tag."""

    def test_library_source_is_tagged(self, tagger):
        record = make_record(title="Chess Club", source="Arapahoe Libraries")
        assert LIBRARY_TAG in tagger.tag(record)

    def test_other_source_needs_keyword(self, tagger):
        assert LIBRARY_TAG not in tagger.tag(make_record(title="Chess Club"))

    def test_custom_library_sources(self):
        tagger = EventTagger(library_sources=["Englewood Public Library"])
        record = make_record(title="Chess Club", source="Englewood Public Library")
        assert tagger.tag(record) == (LIBRARY_TAG,)

    def test_no_library_sources(self):
        tagger = EventTagger(library_sources=())
        record = make_record(title="Chess Club", source="Douglas County Libraries")
        # "libraries" in the source name still matches the keyword pattern
        assert tagger.tag(record) == (LIBRARY_TAG,)


class TestTagEvent:
    """Tests for tag_event."""

    def test_returns_tagged_copy(self, tagger):
        record = make_record(title="Summer Concert")
        tagged = tagger.tag_event(record)

        assert tagged.tags == ("Music",)
        assert record.tags == ()
        assert tagged.title == record.title


class TestFromConfig:
    """Tests for EventTagger.from_config."""

    def test_defaults(self):
        tagger = EventTagger.from_config({})
        assert tagger.categories == INTERESTS
        assert tagger.library_sources == ("Arapahoe Libraries", "Douglas County Libraries")

    def test_extra_keywords_extend_categories(self):
        tagger = EventTagger.from_config({"extra_keywords": {"Music": [r"bluegrass"]}})
        assert tagger.tag(make_record(title="Bluegrass Picnic")) == ("Music",)

    def test_new_category_is_appended(self):
        tagger = EventTagger.from_config({"extra_keywords": {"Pets": [r"\bdogs?\b"]}})
        assert tagger.categories[-1] == "Pets"
        assert tagger.tag(make_record(title="Dog Adoption Day")) == ("Pets",)

    def test_library_sources_from_config(self):
        tagger = EventTagger.from_config({"library_sources": ["Littleton Museum"]})
        record = make_record(title="Talk", source="Littleton Museum")
        assert tagger.tag(record) == (LIBRARY_TAG,)
