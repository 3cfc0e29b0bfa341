"""
Error handling tests for the itinerary parser.

Tests cover the error taxonomy, graceful degradation on malformed input and
the guarantee that public parsing functions never raise on user text.
"""

from unittest.mock import patch

import pytest

from itmd_app.errors import (
    ConfigurationError,
    DataQualityError,
    FrontmatterError,
    InvalidDateError,
    InvalidTimezoneError,
    MalformedEventError,
    MalformedPriceError,
    MathEvaluationError,
    SystemFailureError,
)
from itmd_app.data.price import normalize_price_line
from itmd_app.engine import ItineraryEngine, parse_document
from itmd_app.markdown.builder import parse_markdown
from itmd_app.markdown.nodes import Blockquote


class TestErrorClassification:
    """Test error classification system."""

    def test_data_quality_error_hierarchy(self):
        """Test that data quality errors have proper hierarchy."""
        base_error = DataQualityError("base error")
        assert base_error.recoverable is True
        assert base_error.context == {}

        tz_error = InvalidTimezoneError("bad tz", value="Mars/Base", fallback="UTC")
        assert isinstance(tz_error, DataQualityError)
        assert tz_error.value == "Mars/Base"
        assert tz_error.fallback == "UTC"

        math_error = MathEvaluationError("bad expression", expression="1+")
        assert isinstance(math_error, DataQualityError)
        assert math_error.expression == "1+"

        for error in (
            MalformedPriceError("price", raw_line="EUR"),
            MalformedEventError("event", line="[x] y"),
            InvalidDateError("date", text="2024-02-30"),
            FrontmatterError("yaml", raw="a: ["),
        ):
            assert isinstance(error, DataQualityError)
            assert error.recoverable is True

    def test_system_failure_error_hierarchy(self):
        """Test that system failure errors are not recoverable."""
        config_error = ConfigurationError("unreadable", config_path="/tmp/itmd.yaml", field="policy")
        assert isinstance(config_error, SystemFailureError)
        assert config_error.recoverable is False
        assert config_error.config_path == "/tmp/itmd.yaml"
        assert config_error.field == "policy"

    def test_context_is_kept(self):
        """Extra context travels with the exception."""
        error = MalformedEventError("event", line="[x]", context={"line_number": 3})
        assert error.context == {"line_number": 3}


class TestGracefulDegradation:
    """Malformed input produces warnings, never exceptions."""

    @pytest.mark.parametrize("line", [
        "", "{", "{}", "{1/0}", "{2^^2} EUR", "€", "$$$", "-", "1,2,3,4", "EUR {(1+2}", "{9^9^9} USD",
        "{" + "+".join(["1"] * 1500) + "} USD",
        "{" + "-" * 2000 + "1} USD",
        "{" + "(" * 300 + "1" + ")" * 300 + "} EUR",
    ])
    def test_price_normalizer_never_raises(self, line):
        """Odd price lines still yield a PriceNode."""
        node = normalize_price_line(line, "EUR")
        assert node.to_dict()["type"] == "itmdPrice"

    @pytest.mark.parametrize("text", [
        "",
        "---\n",
        "---\n- a list\n---\n",
        "## 9999-99-99 @???\n",
        "> [99:99]-[am] x\n",
        "> [08:00@/] walk \\\n",
        "> []\n",
        "> [08:00] flight :: - - - from to via\n",
        "- cost: {1/0}\n",
        "## 2024-03-01\n\n> [10:00] flight X :: A - B\n> - cost: {" + "-" * 2000 + "1} USD\n",
        "## 2024-03-01\n\n> [10:00+99999999] flight X :: A - B\n",
        "## 9999-12-31\n\n> [10:00+1] flight X :: A - B\n",
        "## 9999-12-31 @UTC+14\n\n> [23:00@UTC-12] flight X :: A - B\n",
        "## 0001-01-01 @UTC-12\n\n> [00:00@UTC+14]-[01:00+999] flight X :: A - B\n",
    ])
    def test_parse_document_never_raises(self, text):
        """Degenerate documents parse to something."""
        doc = parse_document(text)
        assert doc.to_dict()["type"] == "root"

    def test_failed_event_block_passes_through(self):
        """A data quality error in one block keeps the block as a quote."""
        with patch("itmd_app.engine.parse_event_header", side_effect=MalformedEventError("boom")):
            doc = parse_document("> [08:00] walk Park\n\n> [09:00] walk Garden\n")

        assert [type(node) for node in doc.nodes] == [Blockquote, Blockquote]
        assert doc.events() == []

    def test_engine_assembles_after_failure(self):
        """One failing block does not affect later documents."""
        engine = ItineraryEngine()
        with patch("itmd_app.engine.parse_event_header", side_effect=MalformedEventError("boom")):
            engine.assemble(parse_markdown("> [08:00] walk Park\n"))

        doc = engine.assemble(parse_markdown("> [08:00] walk Park\n"))
        assert len(doc.events()) == 1
