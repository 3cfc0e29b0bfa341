"""Statistics calculator for parsed itinerary documents"""

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, DivisionByZero, InvalidOperation
from typing import Any, Mapping, Optional

import structlog

from ..data.models import BaseType, Document, MoneyToken, PriceEntry
from ..data.price import infer_scale

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DateSummary:
    """First and last heading date and the number of days they span."""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    num_days: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {"startDate": self.start_date, "endDate": self.end_date, "numDays": self.num_days}


@dataclass(frozen=True)
class CostTotals:
    """Converted cost totals per event category."""
    currency: str
    total: Decimal
    transportation: Decimal
    stay: Decimal
    activity: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "currency": self.currency,
            "total": str(self.total),
            "transportation": str(self.transportation),
            "stay": str(self.stay),
            "activity": str(self.activity),
        }


@dataclass(frozen=True)
class SkippedPrice:
    """Price that could not be added to the totals."""
    line: Optional[int]
    key: str
    raw: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"line": self.line, "key": self.key, "raw": self.raw, "reason": self.reason}


@dataclass(frozen=True)
class ItineraryStatistics:
    summary: DateSummary
    totals: CostTotals
    skipped: tuple[SkippedPrice, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "totals": self.totals.to_dict(),
            "skipped": [s.to_dict() for s in self.skipped],
        }


class StatisticsCalculator:
    """
    Computes the date span and cost totals of a document.

    Amounts are converted through a USD-based rate table: one USD buys
    ``rates_usd[code]`` units of ``code``. Nothing is guessed; prices that
    cannot be converted exactly as written are reported in ``skipped``.
    """

    def __init__(self, base_currency: str, rates_usd: Optional[Mapping[str, Any]] = None):
        self.base_currency = base_currency.upper()
        self.rates_usd = {code.upper(): Decimal(str(rate)) for code, rate in (rates_usd or {}).items()}
        self.rates_usd.setdefault("USD", Decimal(1))

    def analyze(self, document: Document) -> ItineraryStatistics:
        """
        Analyze a parsed document.

        Args:
            document: Output of ``parse_document``

        Returns:
            ItineraryStatistics with summary, totals and skipped prices
        """
        summary = self.summarize_dates(document)
        totals, skipped = self.total_costs(document)
        logger.debug(
            "Statistics calculated",
            start_date=summary.start_date,
            end_date=summary.end_date,
            total=str(totals.total),
            skipped=len(skipped),
        )
        return ItineraryStatistics(summary=summary, totals=totals, skipped=tuple(skipped))

    def summarize_dates(self, document: Document) -> DateSummary:
        dates = sorted(heading.date_iso for heading in document.headings())
        if not dates:
            return DateSummary()
        start, end = dates[0], dates[-1]
        num_days = (date.fromisoformat(end) - date.fromisoformat(start)).days + 1
        return DateSummary(start_date=start, end_date=end, num_days=num_days)

    def convert(self, amount: Decimal, from_currency: str) -> Optional[Decimal]:
        """Convert ``amount`` into the base currency, None without rates."""
        if from_currency == self.base_currency:
            return amount
        rate_from = self.rates_usd.get(from_currency)
        rate_to = self.rates_usd.get(self.base_currency)
        if rate_from is None or rate_to is None:
            return None
        try:
            return amount / rate_from * rate_to
        except (DivisionByZero, InvalidOperation):
            return None

    def _price_amount(self, entry: PriceEntry) -> tuple[Optional[Decimal], Optional[str]]:
        price = entry.price
        money = price.money_tokens
        if not money:
            return None, "no-amount"
        if len(money) > 1:
            return None, "multi-term"
        token: MoneyToken = money[0]
        try:
            amount = Decimal(token.normalized.amount)
        except InvalidOperation:
            return None, "no-amount"
        converted = self.convert(amount, token.normalized.currency)
        if converted is None:
            return None, f"missing-rate:{token.normalized.currency}"
        return converted, None

    def total_costs(self, document: Document) -> tuple[CostTotals, list[SkippedPrice]]:
        buckets = {base_type: Decimal(0) for base_type in BaseType}
        skipped: list[SkippedPrice] = []

        for event in document.events():
            for entry in event.prices:
                amount, reason = self._price_amount(entry)
                if amount is None:
                    skipped.append(SkippedPrice(line=event.line, key=entry.key, raw=entry.raw, reason=reason or ""))
                    continue
                buckets[event.base_type] += amount

        quantum = Decimal(1).scaleb(-infer_scale(self.base_currency))

        def rounded(value: Decimal) -> Decimal:
            return value.quantize(quantum, rounding=ROUND_HALF_UP)

        transportation = rounded(buckets[BaseType.TRANSPORTATION])
        stay = rounded(buckets[BaseType.STAY])
        activity = rounded(buckets[BaseType.ACTIVITY])
        totals = CostTotals(
            currency=self.base_currency,
            total=rounded(buckets[BaseType.TRANSPORTATION] + buckets[BaseType.STAY] + buckets[BaseType.ACTIVITY]),
            transportation=transportation,
            stay=stay,
            activity=activity,
        )
        return totals, skipped
