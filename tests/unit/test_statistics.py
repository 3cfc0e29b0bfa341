"""Unit tests for itinerary statistics."""

from decimal import Decimal

from itmd_app.engine import parse_document
from itmd_app.metrics.calculator import StatisticsCalculator


class TestDateSummary:
    """Test date span calculation."""

    def test_summary_from_headings(self, sample_itinerary):
        """First and last heading date with inclusive day count."""
        summary = StatisticsCalculator("JPY").summarize_dates(parse_document(sample_itinerary))
        assert summary.start_date == "2024-03-01"
        assert summary.end_date == "2024-03-02"
        assert summary.num_days == 2

    def test_no_headings(self):
        """Documents without dates have an empty summary."""
        summary = StatisticsCalculator("USD").summarize_dates(parse_document("> [08:00] walk Park\n"))
        assert summary.to_dict() == {"startDate": None, "endDate": None, "numDays": None}


class TestCostTotals:
    """Test currency conversion and totals."""

    def test_totals_by_category(self, sample_itinerary):
        """Prices are converted through USD rates and bucketed by base type."""
        calculator = StatisticsCalculator("JPY", {"JPY": 150, "EUR": "0.9"})
        stats = calculator.analyze(parse_document(sample_itinerary))

        assert stats.totals.transportation == Decimal("38000")
        assert stats.totals.stay == Decimal("20000")
        assert stats.totals.activity == Decimal("0")
        assert stats.totals.total == Decimal("58000")
        assert stats.skipped == ()

    def test_missing_rate_is_skipped(self, sample_itinerary):
        """Prices without a rate are reported, not guessed."""
        stats = StatisticsCalculator("JPY", {"JPY": 150}).analyze(parse_document(sample_itinerary))

        assert stats.totals.total == Decimal("23000")
        assert [s.reason for s in stats.skipped] == ["missing-rate:EUR", "missing-rate:EUR"]

    def test_multi_term_and_empty_prices_are_skipped(self):
        """Lines that are not a single money amount are skipped."""
        doc = parse_document(
            "## 2024-03-01\n\n"
            "> [] visit Museum\n"
            "> - cost: USD 10 + USD 5\n"
            "> - price: free\n"
        )
        stats = StatisticsCalculator("USD").analyze(doc)

        assert [s.reason for s in stats.skipped] == ["multi-term", "no-amount"]
        assert stats.totals.total == Decimal("0.00")

    def test_convert(self):
        """Conversion goes through the USD rate of both currencies."""
        calculator = StatisticsCalculator("eur", {"EUR": "0.5", "GBP": "0.25"})
        assert calculator.convert(Decimal("10"), "GBP") == Decimal("20")
        assert calculator.convert(Decimal("10"), "USD") == Decimal("5")
        assert calculator.convert(Decimal("10"), "EUR") == Decimal("10")
        assert calculator.convert(Decimal("10"), "CHF") is None

    def test_rounding_uses_currency_scale(self):
        """Totals are rounded half up to the base currency's minor unit."""
        doc = parse_document("> [] visit Museum\n> - cost: USD 1\n")
        stats = StatisticsCalculator("EUR", {"EUR": "0.333"}).analyze(doc)
        assert stats.totals.total == Decimal("0.33")

    def test_to_dict(self, sample_itinerary):
        """Totals serialize as strings."""
        data = StatisticsCalculator("JPY", {"JPY": 150, "EUR": 0.9}).analyze(parse_document(sample_itinerary)).to_dict()
        assert data["totals"] == {
            "currency": "JPY",
            "total": "58000",
            "transportation": "38000",
            "stay": "20000",
            "activity": "0",
        }
        assert data["summary"]["numDays"] == 2
