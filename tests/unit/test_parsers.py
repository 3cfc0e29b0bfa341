"""Unit tests for event header, metadata and date heading parsers."""

import pytest

from itmd_app.data.models import DestinationKind
from itmd_app.data.parsers import (
    ClockToken,
    MarkerToken,
    lex_separators,
    match_event_line,
    parse_date_heading,
    parse_event_header,
    parse_meta_item,
    parse_time_token,
)
from itmd_app.data.validators import EventValidator
from itmd_app.errors import InvalidDateError, MalformedEventError
from itmd_app.markdown.inline import to_plain_text
from itmd_app.markdown.nodes import Heading, InlineCode, Link, ListItem, Paragraph, Strong, Text


def header(text: str) -> tuple:
    return (Text(text),)


def plain(nodes) -> str:
    return to_plain_text(nodes) if nodes is not None else None


class TestTimeTokens:
    """Test parsing of bracketed time tokens."""

    def test_clock_with_offset_and_zone(self):
        """Clock tokens carry day offset and timezone override."""
        token = parse_time_token("09:15+1@Europe/Paris")
        assert token == ClockToken(hour=9, minute=15, plus_days=1, tz="Europe/Paris", text="09:15+1@Europe/Paris")

    def test_day_offset_after_zone(self):
        """A trailing +N after an IANA zone is a day offset."""
        token = parse_time_token("06:00@Asia/Tokyo+1")
        assert token.tz == "Asia/Tokyo"
        assert token.plus_days == 1

    def test_markers_are_case_insensitive(self):
        """[AM] and [pm] are markers."""
        assert parse_time_token("AM") == MarkerToken(value="am", text="AM")
        assert parse_time_token("pm").value == "pm"

    def test_empty_bracket(self):
        """Empty brackets mean no time."""
        assert parse_time_token("  ") is None

    def test_malformed_time_raises(self):
        """Other text is not a time."""
        with pytest.raises(MalformedEventError):
            parse_time_token("noon")

    def test_match_event_line(self):
        """Span, type and the offset of the rest are returned."""
        span, event_type, offset = match_event_line("[08:00]-[09:15] Flight NH21")
        assert span.text == "[08:00]-[09:15]"
        assert isinstance(span.start, ClockToken) and isinstance(span.end, ClockToken)
        assert event_type == "flight"
        assert "[08:00]-[09:15] Flight NH21"[offset:] == "NH21"

    @pytest.mark.parametrize("text", ["no brackets here", "[08:00]", "[soon] flight x", "[link](x) text"])
    def test_non_event_lines(self, text):
        """Lines without a valid span and type word are not events."""
        assert match_event_line(text) is None


class TestSeparators:
    """Test the separator lexer."""

    def test_route_words_and_symbols(self):
        """Separators are found with their kinds."""
        kinds = [s.kind for s in lex_separators(header("Dinner :: Gion at Kyoto - Osaka"))]
        assert kinds == ["doublecolon", "at", "dash"]

    def test_words_must_be_whole(self):
        """Route words inside other words are not separators."""
        assert lex_separators(header("Tokyo Station towards Kyoto")) == []

    def test_route_words_are_case_sensitive(self):
        """Capitalized words are part of names."""
        assert lex_separators(header("Dinner At Eight")) == []

    def test_protected_regions(self):
        """Separators inside code, brackets and parentheses are ignored."""
        nodes = (Text("A "), InlineCode("x - y"), Text(" (to be) [at] B"))
        assert lex_separators(nodes) == []


class TestEventHeader:
    """Test event header parsing."""

    def test_title_and_dash_destination(self):
        """:: splits title from a dash route."""
        parsed = parse_event_header(header("[08:00] flight NH21 :: HND - ITM"))

        assert parsed.event_type == "flight"
        assert plain(parsed.title) == "NH21"
        assert parsed.destination.kind == DestinationKind.DASH_PAIR
        assert plain(parsed.destination.origin.primary) == "HND"
        assert plain(parsed.destination.target.primary) == "ITM"

    def test_at_with_caret_names(self):
        """Title and place are both split at the caret."""
        parsed = parse_event_header(header("[pm] museum National Museum^国立博物館 at Ueno^上野"))

        assert plain(parsed.title) == "National Museum"
        assert plain(parsed.title_alt) == "国立博物館"
        assert parsed.destination.kind == DestinationKind.SINGLE
        assert plain(parsed.destination.at.primary) == "Ueno"
        assert plain(parsed.destination.at.alternate) == "上野"

    def test_from_to_via(self):
        """from/to/via route after the title."""
        parsed = parse_event_header(header("[20:00] train Nightjet from Paris to Vienna via Munich"))
        dest = parsed.destination

        assert plain(parsed.title) == "Nightjet"
        assert dest.kind == DestinationKind.FROM_TO
        assert plain(dest.origin.primary) == "Paris"
        assert plain(dest.target.primary) == "Vienna"
        assert [plain(stop.primary) for stop in dest.via] == ["Munich"]

    def test_bare_dash_route_has_no_title(self):
        """A route without a title leaves the title empty."""
        parsed = parse_event_header(header("[10:00] bus Kyoto - Nara - Osaka"))

        assert parsed.title is None
        assert plain(parsed.destination.origin.primary) == "Kyoto"
        assert plain(parsed.destination.target.primary) == "Osaka"
        assert [plain(stop.primary) for stop in parsed.destination.via] == ["Nara"]

    def test_empty_title_uses_event_type(self):
        """A missing title becomes the capitalized event type."""
        parsed = parse_event_header(header("[] lunch at Nishiki Market"))
        assert parsed.title == (Text("Lunch"),)
        assert plain(parsed.destination.at.primary) == "Nishiki Market"

    def test_formatting_survives(self):
        """Inline formatting in titles is kept."""
        nodes = (Text("[am] tour "), Strong(children=(Text("Fushimi Inari"),)), Text(" :: Kyoto"))
        parsed = parse_event_header(nodes)
        assert parsed.title == (Strong(children=(Text("Fushimi Inari"),)),)

    def test_not_an_event(self):
        """Ordinary quote text is not an event header."""
        assert parse_event_header(header("Remember the umbrella")) is None


class TestMetaAndHeadings:
    """Test metadata list items and date headings."""

    def test_meta_item(self):
        """key: value items are metadata with lower-cased keys."""
        item = ListItem(children=(Paragraph(children=(Text("Cost: JPY 1200"),)),))
        entry = parse_meta_item(item)
        assert entry.key == "cost"
        assert entry.raw == "JPY 1200"
        assert entry.value == (Text("JPY 1200"),)

    def test_url_is_not_meta(self):
        """A bare URL is not a key/value pair."""
        item = ListItem(children=(Paragraph(children=(Text("https://example.com"),)),))
        assert parse_meta_item(item) is None

    def test_date_heading(self):
        """H2 date headings are recognized."""
        parsed = parse_date_heading(Heading(depth=2, children=(Text("2024-03-01 @Asia/Tokyo"),)))
        assert parsed.date == "2024-03-01"
        assert parsed.timezone == "Asia/Tokyo"

    def test_other_headings(self):
        """H3 and non-date H2 are not date headings."""
        assert parse_date_heading(Heading(depth=3, children=(Text("2024-03-01"),))) is None
        assert parse_date_heading(Heading(depth=2, children=(Text("Day one"),))) is None

    def test_invalid_calendar_date_raises(self):
        """Date-shaped but impossible dates raise InvalidDateError."""
        with pytest.raises(InvalidDateError):
            parse_date_heading(Heading(depth=2, children=(Text("2024-02-30"),)))


class TestEventValidator:
    """Test event validation rules."""

    def test_clock_range(self):
        """Hours over 23 or minutes over 59 are invalid."""
        validator = EventValidator(["https"])
        assert validator.validate_clock(ClockToken(hour=23, minute=59)) == []
        assert validator.validate_clock(ClockToken(hour=25, minute=0)) == ["invalid-time"]

    def test_range_order(self):
        """Ranges ending before they start are flagged."""
        validator = EventValidator(["https"])
        assert validator.validate_range("2024-03-01T10:00+09:00", "2024-03-01T09:00+09:00") == ["end-before-start"]
        assert validator.validate_range("2024-03-01T10:00+09:00", "2024-03-01T02:00+01:00") == []
        assert validator.validate_range(None, "2024-03-01T09:00+09:00") == []

    def test_url_schemes(self):
        """Only listed schemes stay clickable; relative URLs are fine."""
        validator = EventValidator(["HTTPS", "mailto"])
        assert validator.is_allowed_url("https://example.com")
        assert validator.is_allowed_url("/relative/path")
        assert not validator.is_allowed_url("ftp://example.com")

    def test_sanitize_unwraps_links(self):
        """Disallowed links are replaced by their content."""
        validator = EventValidator(["https"])
        warnings = []
        nodes = (Link(url="ftp://files", children=(Text("files"),)), Link(url="https://ok", children=(Text("ok"),)))

        result = validator.sanitize_inline(nodes, warnings)

        assert result[0] == Text("files")
        assert isinstance(result[1], Link)
        assert warnings == ["unsafe-url"]
