"""
Tests for lenient date parsing and the selectolax helpers.
"""

from datetime import datetime, timedelta, timezone

import pytest
from selectolax.lexbor import LexborHTMLParser

from metalink.utils.dates import parse_date, to_utc
from metalink.utils.html import clean_text, meta_content, meta_contents, node_text, rel_tokens


@pytest.mark.unit
class TestParseDate:
    def test_iso_with_z(self):
        assert parse_date("2024-03-01T10:00:00Z") == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)

    def test_offset_is_converted_to_utc(self):
        parsed = parse_date("2024-03-01T12:00:00+02:00")
        assert parsed == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_naive_is_taken_as_utc(self):
        """Values without an offset are read as UTC."""
        assert parse_date("2024-03-01 10:00:00") == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)

    def test_epoch_seconds_and_millis(self):
        expected = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
        assert parse_date("1700000000") == expected
        assert parse_date("1700000000000") == expected
        assert parse_date(1700000000) == expected

    @pytest.mark.parametrize("value", [None, "", "yesterday", True, "12345", [], {}])
    def test_garbage_is_none(self, value):
        assert parse_date(value) is None

    def test_to_utc_keeps_aware_instant(self):
        aware = datetime(2024, 1, 1, 5, tzinfo=timezone(timedelta(hours=5)))
        assert to_utc(aware) == datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.mark.unit
class TestHtmlHelpers:
    def test_clean_text_collapses_whitespace(self):
        assert clean_text("  Hello\n\t world\x00 ") == "Hello world"
        assert clean_text("   ") is None
        assert clean_text(None) is None

    def test_meta_content_first_non_empty_wins(self):
        """Keys match property or name case-insensitively; blanks are skipped."""
        doc = LexborHTMLParser(
            '<meta property="OG:Title" content="  "><meta name="og:title" content="Second"><meta property="og:title" content="Third">'
        )
        assert meta_content(doc, "og:title") == "Second"

    def test_meta_contents_are_distinct(self):
        doc = LexborHTMLParser('<meta property="article:tag" content="a"><meta property="article:tag" content="a"><meta property="article:tag" content="b">')
        assert meta_contents(doc, "article:tag") == ["a", "b"]

    def test_rel_tokens_are_lower_case(self):
        node = LexborHTMLParser('<link rel="Shortcut  ICON" href="/f.ico">').css_first("link")
        assert rel_tokens(node) == ["shortcut", "icon"]

    def test_node_text_joins_nested_text(self):
        doc = LexborHTMLParser("<h1>Big <em>news</em>\n today</h1>")
        assert node_text(doc.css_first("h1")) == "Big news today"
        assert node_text(doc.css_first("h2")) is None

    def test_script_body_is_raw_text(self):
        """Markup-like characters inside a script stay as text."""
        doc = LexborHTMLParser('<script type="application/ld+json">{"name": "a <b> c"}</script>')
        assert doc.css_first("script").text(deep=True) == '{"name": "a <b> c"}'
