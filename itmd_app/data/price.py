"""
Price line normalization.

Turns a free-form price line such as ``EUR 12,30``, ``{25*4} JPY`` or
``approx. 120 EUR incl. tax`` into a ``PriceNode``. The rules are explicit and
deterministic rather than locale driven:

- ``{...}`` groups are evaluated first and substituted back into the line
- ``CODE NUM``, ``NUM CODE`` and ``SYMBOL NUM`` are tried in that order
- the rightmost ``.`` or ``,`` of a number is the decimal point
- when no pattern matches, currency and number are searched independently

``normalize_price_line`` never raises; problems are reported as warnings.
"""

import logging
import math
import re
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Optional

from babel.numbers import get_currency_precision, list_currencies

from ..errors import MathEvaluationError
from .math_eval import evaluate_expression, format_number
from .models import (
    MoneyMeta,
    MoneySource,
    MoneyToken,
    NormalizedAmount,
    NumberToken,
    OperatorToken,
    PriceFlags,
    PriceNode,
    PriceSummary,
    PriceToken,
)

logger = logging.getLogger(__name__)

# Multi-character symbols must be listed before "$"
SYMBOL_TO_CODE = {
    "€": "EUR",
    "¥": "JPY",
    "£": "GBP",
    "₩": "KRW",
    "₫": "VND",
    "฿": "THB",
    "₱": "PHP",
    "₽": "RUB",
    "₺": "TRY",
    "A$": "AUD",
    "C$": "CAD",
    "HK$": "HKD",
    "S$": "SGD",
    "$": "USD",
}

OPERATOR_NAMES = {"+": "add", "-": "sub", "*": "mul", "/": "div"}

NUM = r"[+-]?(?:\d{1,3}(?:[.,]\d{3})+|\d+)(?:[.,]\d+)?"
SYM = r"A\$|C\$|HK\$|S\$|[€¥£₩₫฿₱₽₺$]"

NUM_RE = re.compile(NUM)
BRACE_RE = re.compile(r"\{([^{}]+)\}")

SINGLE_TERM_PATTERNS = (
    re.compile(rf"^(?P<code>[A-Za-z]{{3}})\s*(?P<num>{NUM})(?=\s|$)"),
    re.compile(rf"^(?P<num>{NUM})\s*(?P<code>[A-Za-z]{{3}})(?=\s|$)"),
    re.compile(rf"^(?P<sym>{SYM})\s*(?P<num>{NUM})(?=\s|$)"),
)

# One money term inside an arithmetic line such as "USD 10 + EUR 5"
TERM_RE = re.compile(
    rf"(?:(?P<code1>[A-Za-z]{{3}})\s*(?P<num1>{NUM})"
    rf"|(?P<num2>{NUM})\s*(?P<code2>[A-Za-z]{{3}})(?![A-Za-z])"
    rf"|(?P<sym>{SYM})\s*(?P<num3>{NUM}))"
    rf"(?=\s|[-+*/]|$)"
)
OPERATOR_RE = re.compile(r"\s*([-+*/])\s*")

LINE_START_CODE_RE = re.compile(r"^\s*([A-Za-z]{3})\b")
UPPER_CODE_RE = re.compile(r"\b([A-Z]{3})\b")
SYMBOL_RE = re.compile(rf"({SYM})")


@lru_cache(maxsize=1)
def known_currency_codes() -> frozenset[str]:
    """ISO 4217 codes known to the CLDR data shipped with Babel."""
    return frozenset(list_currencies())


def infer_scale(currency: str) -> int:
    """Minor-unit digits of ``currency``; 2 when unknown."""
    try:
        return get_currency_precision(currency.upper())
    except (KeyError, ValueError) as e:
        logger.debug(f"No precision for currency {currency!r}: {e}")
        return 2


def normalize_amount(raw_num: str) -> str:
    """
    Normalize a number written with either decimal convention.

    The rightmost ``.`` or ``,`` is the decimal point, every other separator
    is a thousands separator. Leading zeros and trailing fractional zeros are
    dropped and negative zero becomes ``0``.

    Returns:
        Plain decimal string, or ``""`` when ``raw_num`` has no digits
    """
    text = (raw_num or "").strip()
    if not text:
        return ""

    sign = ""
    if text[0] in "+-":
        sign, text = text[0], text[1:]

    sep = max(text.rfind("."), text.rfind(","))
    if sep == -1:
        integer, fraction = text, ""
    else:
        integer = text[:sep].replace(".", "").replace(",", "")
        fraction = text[sep + 1:].replace(".", "").replace(",", "")

    integer = integer.lstrip("0") or "0"
    fraction = fraction.rstrip("0")

    try:
        value = Decimal(f"{sign}{integer}.{fraction}" if fraction else f"{sign}{integer}")
    except InvalidOperation:
        return ""

    if value == 0:
        return "0"
    return format(value, "f")


def evaluate_braces(line: str) -> tuple[str, bool, list[str]]:
    """
    Substitute every ``{expr}`` in ``line`` with its value.

    Returns:
        ``(evaluated_line, has_math, warnings)``; on a syntax error the line is
        returned unchanged with ``math-eval-error``
    """
    has_math = False
    warnings: list[str] = []

    def substitute(match: re.Match) -> str:
        nonlocal has_math
        has_math = True
        value = evaluate_expression(match.group(1))
        if not math.isfinite(value):
            warnings.append("math-eval-failed")
            return match.group(0)
        return format_number(value)

    try:
        evaluated = BRACE_RE.sub(substitute, line)
    except MathEvaluationError as e:
        logger.debug(f"Reverting price line {line!r}: {e}")
        warnings.append("math-eval-error")
        return line, has_math, warnings

    return evaluated, has_math, warnings


def _money(raw: str, currency: str, amount: str, source: MoneySource,
           symbol: Optional[str] = None, warnings: tuple[str, ...] = ()) -> MoneyToken:
    currency = currency.upper()
    return MoneyToken(
        raw=raw,
        currency=currency,
        amount=amount,
        normalized=NormalizedAmount(currency=currency, amount=amount, scale=infer_scale(currency)),
        meta=MoneyMeta(source=source, symbol=symbol),
        warnings=warnings,
    )


def _distinct(codes: list[str]) -> tuple[str, ...]:
    seen: list[str] = []
    for code in codes:
        if code not in seen:
            seen.append(code)
    return tuple(seen)


def tokenize_terms(line: str) -> Optional[list[PriceToken]]:
    """
    Tokenize a line made only of money terms joined by ``+ - * /``.

    Returns:
        Alternating money and operator tokens, or ``None`` unless the whole
        line is at least two such terms
    """
    tokens: list[PriceToken] = []
    pos = 0
    text = line.strip()

    while True:
        match = TERM_RE.match(text, pos)
        if not match:
            return None
        code = match.group("code1") or match.group("code2")
        symbol = match.group("sym")
        num = match.group("num1") or match.group("num2") or match.group("num3")
        if code:
            tokens.append(_money(match.group(0), code, normalize_amount(num), MoneySource.INLINE))
        else:
            tokens.append(_money(match.group(0), SYMBOL_TO_CODE[symbol], normalize_amount(num),
                                 MoneySource.SYMBOL_INFERRED, symbol=symbol))
        pos = match.end()
        if pos == len(text):
            break

        op = OPERATOR_RE.match(text, pos)
        if not op:
            return None
        tokens.append(OperatorToken(raw=op.group(1), op=OPERATOR_NAMES[op.group(1)]))
        pos = op.end()

    if len(tokens) < 3:
        return None
    return tokens


def _detect_currency(line: str) -> tuple[Optional[str], Optional[str]]:
    """Find a known currency code or symbol anywhere in ``line``."""
    known = known_currency_codes()

    start = LINE_START_CODE_RE.match(line)
    if start and start.group(1).upper() in known:
        return start.group(1).upper(), None

    for match in UPPER_CODE_RE.finditer(line):
        if match.group(1) in known:
            return match.group(1), None

    symbol = SYMBOL_RE.search(line)
    if symbol:
        return SYMBOL_TO_CODE[symbol.group(1)], symbol.group(1)

    return None, None


def normalize_price_line(raw_line: str, default_currency: Optional[str] = None) -> PriceNode:
    """
    Normalize a raw price line.

    Args:
        raw_line: Price text as written, e.g. ``"€12,30"`` or ``"USD 100 per night"``
        default_currency: Currency assumed for a bare number

    Returns:
        PriceNode; never raises
    """
    line = (raw_line or "").strip()
    if not line:
        return PriceNode.empty(raw_line, ("empty",), number_only=True)

    evaluated, has_math, warnings = evaluate_braces(line)

    # Arithmetic between several money terms is tokenized but never totalled
    terms = tokenize_terms(evaluated)
    if terms is not None:
        currencies = _distinct([t.currency for t in terms if isinstance(t, MoneyToken)])
        cross_currency = len(currencies) > 1
        warnings.append("multi-term-unsupported")
        if cross_currency:
            warnings.append("cross-currency-unsupported")
        logger.debug(f"Multi-term price line {line!r} ({', '.join(currencies)})")
        return PriceNode(
            raw_line=raw_line,
            tokens=tuple(terms),
            flags=PriceFlags(has_math=has_math, cross_currency=cross_currency),
            summary=PriceSummary(currencies=currencies,
                                 money_count=sum(1 for t in terms if isinstance(t, MoneyToken))),
            warnings=tuple(warnings),
        )

    for pattern in SINGLE_TERM_PATTERNS:
        match = pattern.match(evaluated)
        if not match:
            continue
        groups = match.groupdict()
        amount = normalize_amount(groups["num"])
        if groups.get("code"):
            money = _money(line, groups["code"], amount, MoneySource.INLINE, warnings=tuple(warnings))
        else:
            symbol = groups["sym"]
            money = _money(line, SYMBOL_TO_CODE[symbol], amount, MoneySource.SYMBOL_INFERRED,
                           symbol=symbol, warnings=tuple(warnings))
        return PriceNode(
            raw_line=raw_line,
            tokens=(money,),
            flags=PriceFlags(has_math=has_math),
            summary=PriceSummary(currencies=(money.currency,), money_count=1),
            warnings=tuple(warnings),
        )

    # Loose search: currency and number anywhere in the line
    currency, symbol = _detect_currency(evaluated)
    number = NUM_RE.search(evaluated)

    if currency is None and number is None:
        logger.debug(f"Unrecognized price line {line!r}")
        return PriceNode.empty(raw_line, tuple(warnings + ["unrecognized"]), has_math=has_math, number_only=True)

    if number is None:
        return PriceNode.empty(raw_line, tuple(warnings + ["no-amount"]), has_math=has_math,
                               currencies=(currency,), number_only=True)

    amount = normalize_amount(number.group(0))

    if currency is None:
        default = (default_currency or "").strip()
        if default:
            warnings.append("currency-not-detected")
            money = _money(line, default, amount, MoneySource.DEFAULT_CURRENCY, warnings=tuple(warnings))
            return PriceNode(
                raw_line=raw_line,
                tokens=(money,),
                flags=PriceFlags(has_math=has_math),
                summary=PriceSummary(currencies=(money.currency,), money_count=1),
                warnings=tuple(warnings),
            )
        return PriceNode(
            raw_line=raw_line,
            tokens=(NumberToken(raw=number.group(0), amount=amount),),
            flags=PriceFlags(has_math=has_math, has_number_only_term=True),
            summary=PriceSummary(),
            warnings=tuple(warnings),
        )

    warnings.append("loose-match")
    source = MoneySource.SYMBOL_INFERRED if symbol else MoneySource.INLINE
    money = _money(line, currency, amount, source, symbol=symbol, warnings=tuple(warnings))
    return PriceNode(
        raw_line=raw_line,
        tokens=(money,),
        flags=PriceFlags(has_math=has_math),
        summary=PriceSummary(currencies=(money.currency,), money_count=1),
        warnings=tuple(warnings),
    )
