"""Unit tests for price line normalization."""

import math
from decimal import Decimal

import pytest
from babel.numbers import parse_decimal

from itmd_app.data.math_eval import evaluate_expression, format_number
from itmd_app.data.models import MoneySource, MoneyToken, NumberToken, OperatorToken
from itmd_app.data.price import evaluate_braces, infer_scale, normalize_amount, normalize_price_line
from itmd_app.errors import MathEvaluationError


class TestNormalizeAmount:
    """Test decimal separator disambiguation."""

    @pytest.mark.parametrize("raw, expected", [
        ("1.234,56", "1234.56"),
        ("1,234.56", "1234.56"),
        ("12,30", "12.3"),
        ("0012,50", "12.5"),
        ("100", "100"),
        ("+5", "5"),
        ("-7.50", "-7.5"),
        ("-0,00", "0"),
    ])
    def test_rightmost_separator_is_decimal_point(self, raw, expected):
        """Rightmost . or , is the decimal point; zeros are trimmed."""
        assert normalize_amount(raw) == expected

    def test_empty_input(self):
        """No digits gives an empty amount."""
        assert normalize_amount("") == ""
        assert normalize_amount("   ") == ""

    @pytest.mark.parametrize("raw", [
        "1234.56", "1.234,56", "1,234.56", "0012,50", "-0,00", "+5", "20,000", "1.000.000", "7", "-7.50",
    ])
    def test_normalization_is_idempotent(self, raw):
        """Normalizing a normalized amount changes nothing."""
        once = normalize_amount(raw)
        assert normalize_amount(once) == once

    @pytest.mark.parametrize("line, number, locale", [
        ("EUR 1.234,56", "1.234,56", "de_DE"),
        ("1.234.567,89 EUR", "1.234.567,89", "de_DE"),
        ("€12,30", "12,30", "de_DE"),
        ("CHF 0,5", "0,5", "de_DE"),
        ("USD 1,234.56", "1,234.56", "en_US"),
        ("$1,234,567.89", "1,234,567.89", "en_US"),
        ("1234.5 USD", "1234.5", "en_US"),
        ("£ 99.99", "99.99", "en_US"),
        ("JPY 23000", "23000", "en_US"),
    ])
    def test_amount_matches_locale_parsing(self, line, number, locale):
        """Amounts with a fraction agree with CLDR locale parsing."""
        money = normalize_price_line(line).money_tokens[0]
        assert Decimal(money.normalized.amount) == parse_decimal(number, locale=locale)


class TestInferScale:
    """Test currency minor unit lookup."""

    def test_known_currencies(self):
        """Minor units come from CLDR data."""
        assert infer_scale("JPY") == 0
        assert infer_scale("eur") == 2
        assert infer_scale("KWD") == 3

    def test_unknown_currency_defaults_to_two(self):
        """Unknown codes use two digits."""
        assert infer_scale("XYZ") == 2


class TestMathEvaluation:
    """Test the brace expression evaluator."""

    @pytest.mark.parametrize("expression, expected", [
        ("25*4", 100.0),
        ("2^10", 1024.0),
        ("(1 + 2) * 3", 9.0),
        ("10/4", 2.5),
        ("-3 + 5", 2.0),
    ])
    def test_arithmetic(self, expression, expected):
        """Basic operators and exponentiation."""
        assert evaluate_expression(expression) == expected

    def test_division_by_zero_is_not_finite(self):
        """Division by zero evaluates to nan instead of raising."""
        assert math.isnan(evaluate_expression("1/0"))

    def test_overflow_is_infinite(self):
        """Overflowing powers evaluate to inf."""
        assert math.isinf(evaluate_expression("10^400"))

    @pytest.mark.parametrize("expression", ["", "2 +", "abs(1)", "x * 2", "2**3", "'a'"])
    def test_rejects_non_arithmetic(self, expression):
        """Anything but plain arithmetic raises MathEvaluationError."""
        with pytest.raises(MathEvaluationError):
            evaluate_expression(expression)

    def test_format_number(self):
        """Integral values have no fraction and nothing uses exponents."""
        assert format_number(100.0) == "100"
        assert format_number(2.5) == "2.5"
        assert format_number(1e-7) == "0.0000001"

    def test_evaluate_braces(self):
        """Every brace group is substituted."""
        line, has_math, warnings = evaluate_braces("{25*4} JPY + {1+1}")
        assert line == "100 JPY + 2"
        assert has_math is True
        assert warnings == []

    @pytest.mark.parametrize("expression", [
        "+".join(["1"] * 1500),
        "-" * 2000 + "1",
        "(" * 500 + "1" + ")" * 500,
    ])
    def test_deep_expressions_are_rejected(self, expression):
        """Expressions too deep to walk raise MathEvaluationError."""
        with pytest.raises(MathEvaluationError):
            evaluate_expression(expression)

    def test_deep_expression_reverts_price_line(self):
        """A too-deep brace group reverts the line with math-eval-error."""
        line = "{" + "+".join(["1"] * 1500) + "} USD"
        node = normalize_price_line(line)

        assert node.raw_line == line
        assert node.flags.has_math is True
        assert "math-eval-error" in node.warnings

class TestNormalizePriceLine:
    """Test normalize_price_line."""

    def test_default_currency_with_european_decimal(self):
        """A bare number takes the default currency."""
        node = normalize_price_line("1.234,56", "eur")
        money = node.tokens[0]

        assert isinstance(money, MoneyToken)
        assert money.currency == "EUR"
        assert money.amount == "1234.56"
        assert money.meta.source == MoneySource.DEFAULT_CURRENCY
        assert "currency-not-detected" in node.warnings
        assert node.summary.currencies == ("EUR",)

    def test_symbol_prefix(self):
        """Currency symbols are mapped to codes."""
        node = normalize_price_line("€12,30")
        money = node.tokens[0]

        assert money.currency == "EUR"
        assert money.amount == "12.3"
        assert money.meta.symbol == "€"
        assert money.meta.source == MoneySource.SYMBOL_INFERRED
        assert money.normalized.scale == 2

    def test_multi_character_symbol_wins(self):
        """A$ is Australian dollars, not US dollars."""
        node = normalize_price_line("A$120")
        assert node.tokens[0].currency == "AUD"
        assert node.tokens[0].amount == "120"

    def test_code_with_trailing_text(self):
        """Free text after the term is ignored."""
        node = normalize_price_line("USD 100 per night")
        money = node.tokens[0]

        assert money.currency == "USD"
        assert money.amount == "100"
        assert money.meta.source == MoneySource.INLINE
        assert node.warnings == ()

    def test_number_before_code(self):
        """NUMBER CODE order, case-insensitive code."""
        node = normalize_price_line("1,234.5 usd")
        assert node.tokens[0].currency == "USD"
        assert node.tokens[0].amount == "1234.5"

    def test_brace_math(self):
        """Brace expressions are evaluated before matching."""
        node = normalize_price_line("{25*4} JPY")
        money = node.tokens[0]

        assert node.flags.has_math is True
        assert money.currency == "JPY"
        assert money.amount == "100"
        assert money.normalized.scale == 0

    def test_non_finite_math_keeps_braces(self):
        """Division by zero keeps the group and warns."""
        node = normalize_price_line("{1/0} EUR")
        assert node.flags.has_math is True
        assert "math-eval-failed" in node.warnings

    def test_math_syntax_error_reverts_line(self):
        """Invalid expressions leave the line as written."""
        node = normalize_price_line("{2+} EUR")
        assert "math-eval-error" in node.warnings

    def test_empty_line(self):
        """Blank input is reported as empty."""
        node = normalize_price_line("   ")
        assert node.tokens == ()
        assert node.warnings == ("empty",)
        assert node.flags.has_number_only_term is True

    def test_unrecognized(self):
        """No currency and no number."""
        node = normalize_price_line("free")
        assert node.tokens == ()
        assert node.warnings == ("unrecognized",)

    def test_currency_without_amount(self):
        """A code without a number records the currency."""
        node = normalize_price_line("EUR only")
        assert node.tokens == ()
        assert "no-amount" in node.warnings
        assert node.summary.currencies == ("EUR",)

    def test_number_without_currency(self):
        """Without a default a bare number is a number token."""
        node = normalize_price_line("1200")
        assert isinstance(node.tokens[0], NumberToken)
        assert node.tokens[0].amount == "1200"
        assert node.flags.has_number_only_term is True
        assert node.summary.money_count == 0

    def test_loose_match(self):
        """Currency and number found apart from each other."""
        node = normalize_price_line("total EUR ~ 120")
        money = node.tokens[0]

        assert money.currency == "EUR"
        assert money.amount == "120"
        assert "loose-match" in node.warnings

    def test_multi_term_line_is_tokenized_not_totalled(self):
        """Arithmetic between money terms keeps every term."""
        node = normalize_price_line("USD 10 + EUR 5")

        assert [type(t) for t in node.tokens] == [MoneyToken, OperatorToken, MoneyToken]
        assert node.tokens[1].op == "add"
        assert node.summary.money_count == 2
        assert node.summary.currencies == ("USD", "EUR")
        assert node.flags.cross_currency is True
        assert "multi-term-unsupported" in node.warnings
        assert "cross-currency-unsupported" in node.warnings

    def test_multi_term_same_currency(self):
        """Same-currency arithmetic is not cross-currency."""
        node = normalize_price_line("€10 * €3")
        assert node.flags.cross_currency is False
        assert node.tokens[1].op == "mul"
        assert "cross-currency-unsupported" not in node.warnings

    def test_to_dict_contract(self):
        """Serialized form uses the camelCase contract."""
        data = normalize_price_line("€12,30").to_dict()

        assert data["type"] == "itmdPrice"
        assert data["rawLine"] == "€12,30"
        assert data["flags"] == {"hasMath": False, "crossCurrency": False, "hasNumberOnlyTerm": False}
        assert data["summary"] == {"currencies": ["EUR"], "moneyCount": 1}
        assert data["data"] == {"normalized": True, "needsEvaluation": True}
        assert data["tokens"][0]["meta"] == {"source": "symbolInferred", "symbol": "€"}
