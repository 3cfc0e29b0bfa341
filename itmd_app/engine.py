"""
Itinerary assembly engine.

Walks the block sequence of a parsed Markdown document once, top to bottom,
and turns it into typed itinerary nodes:

Markdown → Frontmatter/Policy → Alerts → Headings/Events → Document

Date headings set the current date/timezone context; quote blocks that start
with a time span and an event type become events resolved against that
context. Everything else passes through unchanged. A problem with one block
never aborts the document: it is logged and recorded as a warning.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import structlog

from .config.defaults import Policy
from .config.loader import ConfigLoader
from .data.frontmatter import load_frontmatter_yaml, normalize_itinerary_frontmatter, split_frontmatter
from .data.models import (
    AlertNode,
    BaseType,
    BodySegment,
    DateContext,
    Document,
    EventNode,
    EventTime,
    Frontmatter,
    HeadingNode,
    InlineSegment,
    ListSegment,
    MetaEntry,
    MetaSegment,
    PriceEntry,
    TimeKind,
    TimePoint,
)
from .data.parsers import ClockToken, MarkerToken, TimeSpan, parse_date_heading, parse_event_header, parse_meta_item
from .data.price import normalize_price_line
from .data.validators import EventValidator
from .errors import DataQualityError, FrontmatterError, InvalidDateError
from .logging.config import get_pipeline_logger, log_timezone_coercion
from .markdown.alerts import recognize_alerts
from .markdown.builder import parse_markdown
from .markdown.inline import split_first_line, trim_inline
from .markdown.nodes import Blockquote, Code, Heading, InlineCode, List, ListItem, Paragraph, Root
from .services import Services, make_services
from .utils.time import day_offset, shift_date

logger = structlog.get_logger(__name__)
pipeline_logger = get_pipeline_logger(__name__)

TRANSPORTATION_TYPES = frozenset({
    "flight", "train", "drive", "ferry", "bus", "taxi", "subway", "cablecar", "rocket", "spaceship",
})
STAY_TYPES = frozenset({"stay", "hotel", "ryokan", "hostel", "dormitory"})
PRICE_KEYS = ("cost", "price")


def base_type_for(event_type: str) -> BaseType:
    """Map an event type word to its category."""
    if event_type in TRANSPORTATION_TYPES:
        return BaseType.TRANSPORTATION
    if event_type in STAY_TYPES:
        return BaseType.STAY
    return BaseType.ACTIVITY


def _dedupe(warnings: Sequence[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(warnings))


@dataclass
class _Context:
    """Date/timezone context established by the latest date heading."""
    date_iso: Optional[str] = None
    timezone: Optional[str] = None
    tz_invalid: bool = False

    def reset(self) -> None:
        self.date_iso = None
        self.timezone = None
        self.tz_invalid = False


class ItineraryEngine:
    """
    Assembles itinerary nodes from a generic Markdown tree.

    The engine holds no per-document state; one instance can assemble any
    number of documents with the same services.
    """

    def __init__(self, services: Optional[Services] = None) -> None:
        self.services = services if services is not None else make_services()
        self.validator = EventValidator(self.services.policy.allow_url_schemes)
        self.logger = logger
        self.pipeline_logger = pipeline_logger

    @property
    def policy(self) -> Policy:
        return self.services.policy

    def assemble(self, root: Root, frontmatter: Optional[Frontmatter] = None,
                 warnings: Sequence[str] = ()) -> Document:
        """
        Assemble a document from a tree whose alerts are already recognized.

        Args:
            root: Generic Markdown tree
            frontmatter: Frontmatter the policy was seeded from, if any
            warnings: Document-level warnings collected before assembly

        Returns:
            Document with heading, event, alert and passthrough nodes
        """
        ctx = _Context()
        doc_warnings = list(warnings)
        nodes: list[Any] = []

        for block in root.children:
            if isinstance(block, Heading):
                nodes.append(self._assemble_heading(block, ctx, doc_warnings))
            elif isinstance(block, AlertNode):
                nodes.append(block)
            elif isinstance(block, Blockquote):
                nodes.append(self._assemble_quote(block, ctx))
            else:
                nodes.append(block)

        document = Document(
            frontmatter=frontmatter,
            policy=self.policy,
            nodes=tuple(nodes),
            warnings=tuple(doc_warnings),
        )
        self.logger.debug(
            "Document assembled",
            events=len(document.events()),
            headings=len(document.headings()),
            alerts=len(document.alerts()),
            warnings=len(document.warnings),
        )
        return document

    def _base_tz(self, ctx: _Context) -> Optional[str]:
        return ctx.timezone or self.policy.tz_fallback

    def _assemble_heading(self, heading: Heading, ctx: _Context, doc_warnings: list[str]) -> Any:
        if heading.depth == 1:
            ctx.reset()
            return heading
        if heading.depth != 2:
            return heading

        try:
            parsed = parse_date_heading(heading)
        except InvalidDateError as e:
            self.pipeline_logger.warning("Invalid date heading", text=e.text, line=heading.line)
            doc_warnings.append(f"Invalid date heading '{e.text}' at line {heading.line}")
            parsed = None

        if parsed is None:
            ctx.reset()
            return heading

        warnings: list[str] = []
        tz_invalid = False
        if parsed.timezone is not None:
            coercion = self.services.tz.coerce(parsed.timezone, self.policy.tz_fallback)
            timezone = coercion.tz
            if not coercion.valid:
                tz_invalid = True
                warnings.append("invalid-tz")
                log_timezone_coercion(self.pipeline_logger, "heading", parsed.timezone, timezone,
                                      context={"line": heading.line})
        else:
            timezone = ctx.timezone or self.policy.tz_fallback

        ctx.date_iso = parsed.date
        ctx.timezone = timezone
        ctx.tz_invalid = tz_invalid

        children = self.validator.sanitize_inline(heading.children, warnings)
        return HeadingNode(
            date_iso=parsed.date,
            timezone=timezone,
            day_of_week=parsed.day_of_week,
            children=children,
            warnings=_dedupe(warnings),
            line=heading.line,
        )

    def _assemble_quote(self, quote: Blockquote, ctx: _Context) -> Union[EventNode, Blockquote]:
        try:
            event = self._assemble_event(quote, ctx)
        except DataQualityError as e:
            self.logger.warning(
                "Event assembly failed, passing block through",
                error=str(e),
                error_type=type(e).__name__,
                line=quote.line,
                context=e.context,
            )
            return quote

        if event is None:
            self.pipeline_logger.debug("Quote block is not an event", line=quote.line)
            return quote
        return event

    def _assemble_event(self, quote: Blockquote, ctx: _Context) -> Optional[EventNode]:
        if not quote.children or not isinstance(quote.children[0], Paragraph):
            return None

        warnings: list[str] = []
        quote = self.validator.sanitize_block(quote, warnings)
        first = quote.children[0]
        header_nodes, rest_nodes, _ = split_first_line(first.children)

        parsed = parse_event_header(header_nodes)
        if parsed is None:
            return None

        time = self._resolve_time(parsed.span, ctx, warnings)
        if ctx.tz_invalid:
            warnings.append("invalid-tz")

        body = self._collect_body(rest_nodes, quote.children[1:])
        prices = self._collect_prices(body)

        event = EventNode(
            event_type=parsed.event_type,
            base_type=base_type_for(parsed.event_type),
            time=time,
            title=parsed.title,
            title_alt=parsed.title_alt,
            destination=parsed.destination,
            body=body,
            prices=prices,
            context=DateContext(date_iso=ctx.date_iso, timezone=self._base_tz(ctx)),
            warnings=_dedupe(warnings),
            header=parsed.text,
            line=quote.line,
        )
        self.pipeline_logger.debug(
            "Event assembled",
            event_type=event.event_type,
            time_kind=event.time.kind.value,
            line=quote.line,
            warnings=list(event.warnings),
        )
        return event

    # Time resolution

    def _resolve_time(self, span: TimeSpan, ctx: _Context, warnings: list[str]) -> EventTime:
        start, end = span.start, span.end
        if start is None and end is None:
            return EventTime.none()

        if isinstance(start, MarkerToken):
            return EventTime(
                kind=TimeKind.MARKER,
                marker=start.value,
                start=self._resolve_marker(start, ctx, warnings),
                approximate=True,
            )

        start_point = self._resolve_clock(start, ctx, None, warnings) if start is not None else None
        inherited_tz = start.tz if isinstance(start, ClockToken) else None

        if end is None:
            return EventTime(kind=TimeKind.POINT, start=start_point)

        if isinstance(end, MarkerToken):
            end_point = self._resolve_marker(end, ctx, warnings)
        else:
            end_point = self._resolve_clock(end, ctx, inherited_tz, warnings)

        if start_point is not None:
            warnings.extend(self.validator.validate_range(start_point.iso, end_point.iso))
        return EventTime(
            kind=TimeKind.RANGE,
            start=start_point,
            end=end_point,
            approximate=isinstance(end, MarkerToken),
        )

    def _resolve_marker(self, token: MarkerToken, ctx: _Context, warnings: list[str]) -> TimePoint:
        hour = self.policy.am_hour if token.value == "am" else self.policy.pm_hour
        if ctx.date_iso is None:
            warnings.append("no-date")
            return TimePoint(hour=hour, minute=0)
        iso = self.services.iso.to_iso(ctx.date_iso, hour, 0, self._base_tz(ctx))
        return TimePoint(hour=hour, minute=0, iso=iso, day_offset=0 if iso else None)

    def _resolve_clock(self, token: ClockToken, ctx: _Context, inherited_tz: Optional[str],
                       warnings: list[str]) -> TimePoint:
        problems = self.validator.validate_clock(token)
        warnings.extend(problems)

        base_tz = self._base_tz(ctx)
        tz = base_tz
        override = None
        tz_raw = token.tz or inherited_tz
        if tz_raw:
            coercion = self.services.tz.coerce(tz_raw, base_tz)
            tz = coercion.tz
            if coercion.valid:
                override = coercion.tz
            else:
                warnings.append("invalid-tz")
                log_timezone_coercion(self.pipeline_logger, "event", tz_raw, base_tz)

        iso = None
        offset = None
        if not problems:
            if ctx.date_iso is None:
                warnings.append("no-date")
            else:
                try:
                    date_iso = shift_date(ctx.date_iso, token.plus_days) if token.plus_days else ctx.date_iso
                    iso = self.services.iso.to_iso(date_iso, token.hour, token.minute, tz)
                    if iso is not None:
                        offset = day_offset(iso, ctx.date_iso, base_tz)
                except InvalidDateError as e:
                    self.pipeline_logger.warning("Event time out of range", time=token.text, date=ctx.date_iso, error=str(e))
                    warnings.append("invalid-time")
                    iso = offset = None

        return TimePoint(
            hour=token.hour,
            minute=token.minute,
            plus_days=token.plus_days,
            tz=override,
            iso=iso,
            day_offset=offset,
        )

    # Body

    def _collect_body(self, first_rest: Sequence[Any], blocks: Sequence[Any]) -> tuple[BodySegment, ...]:
        segments: list[BodySegment] = []

        rest = trim_inline(first_rest)
        if rest:
            segments.append(InlineSegment(content=rest))

        for block in blocks:
            if isinstance(block, Paragraph):
                segments.append(InlineSegment(content=block.children))
            elif isinstance(block, List):
                segments.extend(self._list_segments(block.children))
            elif isinstance(block, Code):
                segments.append(InlineSegment(content=(InlineCode(block.value),)))
            else:
                self.pipeline_logger.debug("Skipping unsupported event body block",
                                           block_type=getattr(block, "node_type", type(block).__name__))
        return tuple(segments)

    def _list_segments(self, items: Sequence[ListItem]) -> list[BodySegment]:
        segments: list[BodySegment] = []
        metas: list[MetaEntry] = []
        others: list[ListItem] = []

        def flush() -> None:
            if metas:
                segments.append(MetaSegment(entries=tuple(metas)))
                metas.clear()
            if others:
                segments.append(ListSegment(items=tuple(others)))
                others.clear()

        for item in items:
            meta = parse_meta_item(item)
            if meta is not None:
                if others:
                    flush()
                metas.append(meta)
            else:
                if metas:
                    flush()
                others.append(item)
        flush()
        return segments

    def _collect_prices(self, body: Sequence[BodySegment]) -> tuple[PriceEntry, ...]:
        prices = []
        for segment in body:
            if not isinstance(segment, MetaSegment):
                continue
            for entry in segment.entries:
                if entry.key in PRICE_KEYS:
                    price = normalize_price_line(entry.raw, self.policy.currency_fallback)
                    prices.append(PriceEntry(key=entry.key, raw=entry.raw, price=price))
        return tuple(prices)


def parse_document(text: str, policy: Optional[Policy] = None,
                   config_dir: Optional[Union[str, Path]] = None, **overrides: Any) -> Document:
    """
    Parse an itinerary document.

    Args:
        text: Full document source, frontmatter included
        policy: Base policy; when omitted it is loaded from ``config_dir``
        config_dir: Directory holding ``itmd.yaml``
        **overrides: Policy fields overriding the base policy

    Returns:
        Parsed Document

    Raises:
        ConfigurationError: If ``config_dir`` holds an unreadable config file
    """
    loader = ConfigLoader.create(Path(config_dir) if config_dir is not None else None)
    if policy is None:
        base = loader.load_policy(overrides or None)
    elif overrides:
        base = Policy.from_mapping(overrides, base=policy)
    else:
        base = policy

    doc_warnings: list[str] = []
    frontmatter = None
    yaml_text, body, line_offset = split_frontmatter(text)
    if yaml_text is not None:
        try:
            frontmatter = normalize_itinerary_frontmatter(load_frontmatter_yaml(yaml_text))
        except FrontmatterError as e:
            logger.warning("Ignoring invalid frontmatter", error=str(e))
            doc_warnings.append(f"Invalid frontmatter: {e}")

    resolved = loader.apply_frontmatter(base, frontmatter, on_warning=doc_warnings.append)

    root = recognize_alerts(parse_markdown(body, line_offset=line_offset))
    engine = ItineraryEngine(make_services(resolved))
    return engine.assemble(root, frontmatter=frontmatter, warnings=doc_warnings)
