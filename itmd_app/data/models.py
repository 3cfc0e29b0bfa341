"""
Domain models for parsed itinerary documents.

This module defines the immutable node types produced by the pipeline:
headings that establish a date/timezone context, events with resolved times,
destinations and prices, and alert callouts. ``to_dict`` renders the stable
camelCase contract consumed by renderers and the statistics calculator.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from ..markdown.nodes import InlineNode, ListItem


def _inline_dict(nodes: Optional[tuple[InlineNode, ...]]) -> Optional[list[dict[str, Any]]]:
    if nodes is None:
        return None
    return [node.to_dict() for node in nodes]


class MoneySource(str, Enum):
    """Where the currency of a money token came from."""
    INLINE = "inline"
    DEFAULT_CURRENCY = "defaultCurrency"
    SYMBOL_INFERRED = "symbolInferred"


class BaseType(str, Enum):
    """Event category derived from the event type word."""
    TRANSPORTATION = "transportation"
    STAY = "stay"
    ACTIVITY = "activity"


class TimeKind(str, Enum):
    NONE = "none"
    MARKER = "marker"
    POINT = "point"
    RANGE = "range"


class DestinationKind(str, Enum):
    SINGLE = "single"
    FROM_TO = "fromTo"
    DASH_PAIR = "dashPair"


class AlertVariant(str, Enum):
    NOTE = "note"
    TIP = "tip"
    IMPORTANT = "important"
    WARNING = "warning"
    CAUTION = "caution"


# Prices

@dataclass(frozen=True)
class NormalizedAmount:
    """Canonical currency amount; ``amount`` is a plain decimal string."""
    currency: str
    amount: str
    scale: int


@dataclass(frozen=True)
class MoneyMeta:
    source: MoneySource
    symbol: Optional[str] = None


@dataclass(frozen=True)
class MoneyToken:
    """Single recognized currency amount."""
    raw: str
    currency: str
    amount: str
    normalized: NormalizedAmount
    meta: Optional[MoneyMeta] = None
    warnings: tuple[str, ...] = ()

    kind = "money"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "kind": self.kind,
            "raw": self.raw,
            "currency": self.currency,
            "amount": self.amount,
            "normalized": {
                "currency": self.normalized.currency,
                "amount": self.normalized.amount,
                "scale": self.normalized.scale,
            },
        }
        if self.meta is not None:
            meta: dict[str, Any] = {"source": self.meta.source.value}
            if self.meta.symbol is not None:
                meta["symbol"] = self.meta.symbol
            result["meta"] = meta
        if self.warnings:
            result["warnings"] = list(self.warnings)
        return result


@dataclass(frozen=True)
class OperatorToken:
    """Arithmetic operator between money terms (``add|sub|mul|div``)."""
    raw: str
    op: str

    kind = "op"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "raw": self.raw, "op": self.op}


@dataclass(frozen=True)
class NumberToken:
    """Amount without any currency."""
    raw: str
    amount: str

    kind = "number"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "raw": self.raw, "amount": self.amount}


PriceToken = Union[MoneyToken, OperatorToken, NumberToken]


@dataclass(frozen=True)
class PriceFlags:
    has_math: bool = False
    cross_currency: bool = False
    has_number_only_term: bool = False


@dataclass(frozen=True)
class PriceSummary:
    currencies: tuple[str, ...] = ()
    money_count: int = 0


@dataclass(frozen=True)
class PriceNode:
    """Normalized price line; degraded results carry ``warnings``."""
    raw_line: str
    tokens: tuple[PriceToken, ...]
    flags: PriceFlags
    summary: PriceSummary
    warnings: tuple[str, ...] = ()

    node_type = "itmdPrice"

    @classmethod
    def empty(cls, raw_line: str, warnings: tuple[str, ...], has_math: bool = False,
              currencies: tuple[str, ...] = (), number_only: bool = False) -> "PriceNode":
        """Create a token-less node explaining why nothing was recognized."""
        return cls(
            raw_line=raw_line,
            tokens=(),
            flags=PriceFlags(has_math=has_math, has_number_only_term=number_only),
            summary=PriceSummary(currencies=currencies, money_count=0),
            warnings=warnings,
        )

    @property
    def money_tokens(self) -> tuple[MoneyToken, ...]:
        return tuple(t for t in self.tokens if isinstance(t, MoneyToken))

    @property
    def data(self) -> dict[str, bool]:
        return {"normalized": True, "needsEvaluation": True}

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.node_type,
            "rawLine": self.raw_line,
            "tokens": [token.to_dict() for token in self.tokens],
            "flags": {
                "hasMath": self.flags.has_math,
                "crossCurrency": self.flags.cross_currency,
                "hasNumberOnlyTerm": self.flags.has_number_only_term,
            },
            "summary": {
                "currencies": list(self.summary.currencies),
                "moneyCount": self.summary.money_count,
            },
            "warnings": list(self.warnings),
            "data": self.data,
        }


# Alerts

@dataclass(frozen=True)
class AlertNode:
    """GitHub-style callout rewritten from a blockquote."""
    variant: AlertVariant
    title: str
    inline_title: Optional[tuple[InlineNode, ...]]
    children: tuple[Any, ...]
    line: Optional[int] = None

    node_type = "itmdAlert"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.node_type,
            "variant": self.variant.value,
            "title": self.title,
            "inlineTitle": _inline_dict(self.inline_title),
            "children": [child.to_dict() for child in self.children],
        }


# Headings

@dataclass(frozen=True)
class DateContext:
    """Date/timezone context active when an event was assembled."""
    date_iso: Optional[str]
    timezone: Optional[str]

    def to_dict(self) -> dict[str, Any]:
        return {"dateISO": self.date_iso, "timezone": self.timezone}


@dataclass(frozen=True)
class HeadingNode:
    """H2 date heading establishing the context for following events."""
    date_iso: str
    timezone: Optional[str]
    day_of_week: str
    children: tuple[InlineNode, ...] = ()
    warnings: tuple[str, ...] = ()
    line: Optional[int] = None

    node_type = "itmdHeading"

    @property
    def context(self) -> DateContext:
        return DateContext(date_iso=self.date_iso, timezone=self.timezone)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.node_type,
            "dateISO": self.date_iso,
            "timezone": self.timezone,
            "dayOfWeek": self.day_of_week,
            "children": _inline_dict(self.children),
            "warnings": list(self.warnings),
        }


# Events

@dataclass(frozen=True)
class TimePoint:
    """Clock time of an event with its resolved instant."""
    hour: int
    minute: int
    plus_days: int = 0              # Explicit +N in the source
    tz: Optional[str] = None        # Normalized @tz override
    iso: Optional[str] = None       # Resolved instant, None when unresolvable
    day_offset: Optional[int] = None  # Days after the heading date, seen in the heading tz

    def to_dict(self) -> dict[str, Any]:
        return {
            "hh": self.hour,
            "mm": self.minute,
            "plusDays": self.plus_days,
            "tz": self.tz,
            "iso": self.iso,
            "dayOffset": self.day_offset,
        }


@dataclass(frozen=True)
class EventTime:
    """Time of an event: none, an am/pm marker, a point or a range."""
    kind: TimeKind
    start: Optional[TimePoint] = None
    end: Optional[TimePoint] = None
    marker: Optional[str] = None
    approximate: bool = False

    @classmethod
    def none(cls) -> "EventTime":
        return cls(kind=TimeKind.NONE)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"kind": self.kind.value}
        if self.marker is not None:
            result["marker"] = self.marker
        if self.start is not None:
            result["start"] = self.start.to_dict()
        if self.end is not None:
            result["end"] = self.end.to_dict()
        if self.approximate:
            result["approximate"] = True
        return result


@dataclass(frozen=True)
class NamePair:
    """Primary name and optional alternate, split at ``^``."""
    primary: tuple[InlineNode, ...]
    alternate: Optional[tuple[InlineNode, ...]] = None

    def to_dict(self) -> dict[str, Any]:
        return {"primary": _inline_dict(self.primary), "alternate": _inline_dict(self.alternate)}


@dataclass(frozen=True)
class Destination:
    """Where an event happens: one place, or a route with optional stops."""
    kind: DestinationKind
    at: Optional[NamePair] = None
    origin: Optional[NamePair] = None
    target: Optional[NamePair] = None
    via: tuple[NamePair, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        if self.kind == DestinationKind.SINGLE:
            return {"kind": self.kind.value, "at": self.at.to_dict() if self.at else None}
        return {
            "kind": self.kind.value,
            "from": self.origin.to_dict() if self.origin else None,
            "to": self.target.to_dict() if self.target else None,
            "via": [stop.to_dict() for stop in self.via],
        }


@dataclass(frozen=True)
class MetaEntry:
    key: str
    value: tuple[InlineNode, ...]
    raw: str

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "value": _inline_dict(self.value), "raw": self.raw}


@dataclass(frozen=True)
class InlineSegment:
    content: tuple[InlineNode, ...]

    kind = "inline"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "content": _inline_dict(self.content)}


@dataclass(frozen=True)
class MetaSegment:
    entries: tuple[MetaEntry, ...]

    kind = "meta"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "entries": [entry.to_dict() for entry in self.entries]}


@dataclass(frozen=True)
class ListSegment:
    items: tuple[ListItem, ...]

    kind = "list"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "items": [item.to_dict() for item in self.items]}


BodySegment = Union[InlineSegment, MetaSegment, ListSegment]


@dataclass(frozen=True)
class PriceEntry:
    """Price found in a ``cost``/``price`` metadata entry."""
    key: str
    raw: str
    price: PriceNode

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "raw": self.raw, "price": self.price.to_dict()}


@dataclass(frozen=True)
class EventNode:
    """Event assembled from a quote block such as ``> [08:00] flight NH1 :: HND - ITM``."""
    event_type: str
    base_type: BaseType
    time: EventTime
    title: Optional[tuple[InlineNode, ...]]
    title_alt: Optional[tuple[InlineNode, ...]]
    destination: Optional[Destination]
    body: tuple[BodySegment, ...]
    prices: tuple[PriceEntry, ...]
    context: DateContext
    warnings: tuple[str, ...] = ()
    header: str = ""
    line: Optional[int] = None

    node_type = "itmdEvent"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.node_type,
            "eventType": self.event_type,
            "baseType": self.base_type.value,
            "header": self.header,
            "time": self.time.to_dict(),
            "title": _inline_dict(self.title),
            "title_alt": _inline_dict(self.title_alt),
            "destination": self.destination.to_dict() if self.destination else None,
            "body": [segment.to_dict() for segment in self.body],
            "prices": [entry.to_dict() for entry in self.prices],
            "context": self.context.to_dict(),
            "warnings": list(self.warnings),
        }


# Documents

@dataclass(frozen=True)
class Frontmatter:
    """Document-level defaults from the YAML preamble."""
    title: Optional[str] = None
    timezone: Optional[str] = None
    currency: Optional[str] = None
    stay_mode: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "timezone": self.timezone,
            "currency": self.currency,
            "stayMode": self.stay_mode,
        }


@dataclass(frozen=True)
class Document:
    """Result of parsing one itinerary document."""
    frontmatter: Optional[Frontmatter]
    policy: Any
    nodes: tuple[Any, ...]
    warnings: tuple[str, ...] = ()

    def events(self) -> list[EventNode]:
        return [node for node in self.nodes if isinstance(node, EventNode)]

    def headings(self) -> list[HeadingNode]:
        return [node for node in self.nodes if isinstance(node, HeadingNode)]

    def alerts(self) -> list[AlertNode]:
        return [node for node in self.nodes if isinstance(node, AlertNode)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "root",
            "frontmatter": self.frontmatter.to_dict() if self.frontmatter else None,
            "policy": self.policy.to_dict(),
            "children": [node.to_dict() for node in self.nodes],
            "warnings": list(self.warnings),
        }
