"""
Parsers for itinerary blocks: event headers, time spans and metadata items.

An event header is the first line of a quote block:

    [08:00]-[09:15+1@Europe/Paris] flight AF 275^エールフランス :: NRT - CDG

It is read as a time span, an event type word and a rest. The rest is
scanned for separators outside inline code, ``[...]`` and ``(...)``:
``::``, the words ``at``, ``from``, ``to``, ``via`` and `` - ``. Everything
here works on inline node sequences so that formatting inside titles and
place names survives slicing.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from ..errors import InvalidDateError, MalformedEventError
from ..markdown.inline import slice_inline_nodes, split_rich_inline_by_caret, to_plain_text, trim_inline
from ..markdown.nodes import INLINE_PARENTS, Heading, InlineCode, InlineNode, ListItem, Paragraph, Text
from ..utils.time import DateHeadingText, is_valid_date, is_valid_iana_timezone, parse_date_text
from .models import Destination, DestinationKind, MetaEntry, NamePair

logger = logging.getLogger(__name__)

SPAN_RE = re.compile(r"^\[([^\[\]]*)\](?:\s*-\s*\[([^\[\]]*)\])?\s+(\w+)\s*")
CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?:\+(\d{1,3}))?(?:@([A-Za-z0-9_./+:-]+))?$")
MARKER_RE = re.compile(r"^(am|pm)$", re.IGNORECASE)
TRAILING_DAYS_RE = re.compile(r"^(.+)\+(\d{1,3})$")
META_RE = re.compile(r"^\s*([A-Za-z][\w-]*)\s*:(?!//)\s*")

ROUTE_WORDS = ("at", "from", "to", "via")


@dataclass(frozen=True)
class ClockToken:
    """``hh:mm[+N][@tz]`` as written; values are not range checked."""
    hour: int
    minute: int
    plus_days: int = 0
    tz: Optional[str] = None
    text: str = ""


@dataclass(frozen=True)
class MarkerToken:
    """``[am]`` / ``[pm]`` placeholder."""
    value: str
    text: str = ""


TimeToken = Union[ClockToken, MarkerToken]


@dataclass(frozen=True)
class TimeSpan:
    start: Optional[TimeToken]
    end: Optional[TimeToken]
    text: str


@dataclass(frozen=True)
class Separator:
    kind: str       # doublecolon, dash, at, from, to, via
    start: int
    end: int


@dataclass(frozen=True)
class ParsedHeader:
    """Structured event header."""
    span: TimeSpan
    event_type: str
    title: Optional[tuple[InlineNode, ...]]
    title_alt: Optional[tuple[InlineNode, ...]]
    destination: Optional[Destination]
    text: str


def parse_time_token(text: str) -> Optional[TimeToken]:
    """
    Parse the content of one time bracket.

    Raises:
        MalformedEventError: If the text is neither empty, a marker nor a clock
    """
    text = text.strip()
    if not text:
        return None

    marker = MARKER_RE.match(text)
    if marker:
        return MarkerToken(value=marker.group(1).lower(), text=text)

    clock = CLOCK_RE.match(text)
    if not clock:
        raise MalformedEventError(f"Not a time: {text!r}", line=text)

    plus_days = int(clock.group(3)) if clock.group(3) else 0
    tz = clock.group(4)

    # "08:00@Asia/Tokyo+1": the day offset was read as part of the zone name
    if tz and "/" in tz and not is_valid_iana_timezone(tz):
        trailing = TRAILING_DAYS_RE.match(tz)
        if trailing:
            tz = trailing.group(1)
            plus_days += int(trailing.group(2))

    return ClockToken(
        hour=int(clock.group(1)),
        minute=int(clock.group(2)),
        plus_days=plus_days,
        tz=tz,
        text=text,
    )


def match_event_line(text: str) -> Optional[tuple[TimeSpan, str, int]]:
    """
    Check whether ``text`` starts with a time span and an event type word.

    Returns:
        ``(span, event_type, rest_offset)`` or None when the line is not an
        event header
    """
    match = SPAN_RE.match(text)
    if not match:
        return None
    try:
        start = parse_time_token(match.group(1))
        end = parse_time_token(match.group(2)) if match.group(2) is not None else None
    except MalformedEventError as e:
        logger.debug(f"Not an event line {text!r}: {e}")
        return None

    span_text = text[:match.start(3)].strip()
    return TimeSpan(start=start, end=end, text=span_text), match.group(3).lower(), match.end()


def _code_ranges(nodes: Sequence[InlineNode], offset: int, ranges: list[tuple[int, int]]) -> int:
    for node in nodes:
        if isinstance(node, InlineCode):
            ranges.append((offset, offset + len(node.value)))
            offset += len(node.value)
        elif isinstance(node, INLINE_PARENTS):
            offset = _code_ranges(node.children, offset, ranges)
        else:
            offset += len(to_plain_text((node,)))
    return offset


def lex_separators(nodes: Sequence[InlineNode]) -> list[Separator]:
    """Find route separators outside inline code, brackets and parentheses."""
    text = to_plain_text(nodes)
    ranges: list[tuple[int, int]] = []
    _code_ranges(nodes, 0, ranges)
    protected = [False] * len(text)
    for start, end in ranges:
        for i in range(start, min(end, len(text))):
            protected[i] = True

    seps: list[Separator] = []
    square = paren = 0
    i = 0
    while i < len(text):
        if protected[i]:
            i += 1
            continue
        ch = text[i]
        if ch == "[":
            square += 1
        elif ch == "]":
            square = max(0, square - 1)
        elif ch == "(":
            paren += 1
        elif ch == ")":
            paren = max(0, paren - 1)
        elif square == 0 and paren == 0:
            if text.startswith("::", i):
                seps.append(Separator("doublecolon", i, i + 2))
                i += 2
                continue
            if text.startswith(" - ", i):
                seps.append(Separator("dash", i, i + 3))
                i += 2
                continue
            if ch.isalpha() and (i == 0 or text[i - 1].isspace()):
                j = i
                while j < len(text) and text[j].isalpha():
                    j += 1
                word = text[i:j]
                if word in ROUTE_WORDS and (j == len(text) or text[j].isspace()):
                    seps.append(Separator(word, i, j))
                i = j
                continue
        i += 1
    return seps


def _segment(nodes: Sequence[InlineNode], start: int, end: int) -> tuple[InlineNode, ...]:
    return trim_inline(slice_inline_nodes(nodes, start, end))


def _name_pair(segment: tuple[InlineNode, ...]) -> NamePair:
    split = split_rich_inline_by_caret(segment)
    alternate = trim_inline(split.right) if split.right is not None else None
    return NamePair(primary=trim_inline(split.left), alternate=alternate)


def _from_to(nodes: Sequence[InlineNode], seps: list[Separator], end: int) -> Optional[Destination]:
    from_sep = next((s for s in seps if s.kind == "from"), None)
    if from_sep is None:
        return None
    route = [s for s in seps if s.kind in ("from", "to", "via") and s.start >= from_sep.start]
    if not any(s.kind == "to" for s in route):
        return None

    origin = target = None
    via: list[NamePair] = []
    for i, sep in enumerate(route):
        stop = route[i + 1].start if i + 1 < len(route) else end
        segment = _segment(nodes, sep.end, stop)
        if not segment:
            continue
        if sep.kind == "from" and origin is None:
            origin = _name_pair(segment)
        elif sep.kind == "to" and target is None:
            target = _name_pair(segment)
        elif sep.kind == "via":
            via.append(_name_pair(segment))

    return Destination(kind=DestinationKind.FROM_TO, origin=origin, target=target, via=tuple(via))


def _dash_pair(nodes: Sequence[InlineNode], dashes: list[Separator], start: int, end: int) -> Optional[Destination]:
    bounds = [start] + [b for d in dashes for b in (d.start, d.end)] + [end]
    parts = [_segment(nodes, bounds[i], bounds[i + 1]) for i in range(0, len(bounds), 2)]
    parts = [p for p in parts if p]
    if not parts:
        return None
    if len(parts) == 1:
        return Destination(kind=DestinationKind.SINGLE, at=_name_pair(parts[0]))
    return Destination(
        kind=DestinationKind.DASH_PAIR,
        origin=_name_pair(parts[0]),
        target=_name_pair(parts[-1]),
        via=tuple(_name_pair(p) for p in parts[1:-1]),
    )


def _destination(nodes: Sequence[InlineNode], seps: list[Separator], start: int, end: int) -> Optional[Destination]:
    route = _from_to(nodes, seps, end)
    if route is not None:
        return route
    dashes = [s for s in seps if s.kind == "dash"]
    if dashes:
        return _dash_pair(nodes, dashes, start, end)
    at = _segment(nodes, start, end)
    if not at:
        return None
    return Destination(kind=DestinationKind.SINGLE, at=_name_pair(at))


def parse_header_rest(nodes: Sequence[InlineNode]) -> tuple[Optional[tuple[InlineNode, ...]], Optional[Destination]]:
    """
    Split the text after the event type into title and destination.

    Returns:
        ``(title, destination)``; title is None for a bare dash route
    """
    text_len = len(to_plain_text(nodes))
    seps = lex_separators(nodes)

    split = next((s for s in seps if s.kind in ("doublecolon", "at")), None)
    if split is not None:
        after = [s for s in seps if s.start >= split.end]
        return _segment(nodes, 0, split.start), _destination(nodes, after, split.end, text_len)

    from_sep = next((s for s in seps if s.kind == "from"), None)
    route = _from_to(nodes, seps, text_len) if from_sep is not None else None
    if route is not None:
        return _segment(nodes, 0, from_sep.start), route

    dashes = [s for s in seps if s.kind == "dash"]
    if dashes:
        return None, _dash_pair(nodes, dashes, 0, text_len)

    return _segment(nodes, 0, text_len), None


def parse_event_header(header: Sequence[InlineNode]) -> Optional[ParsedHeader]:
    """
    Parse the first line of a quote block as an event header.

    Returns:
        ParsedHeader, or None when the line is not an event
    """
    text = to_plain_text(header)
    matched = match_event_line(text)
    if matched is None:
        return None
    span, event_type, rest_offset = matched

    rest = trim_inline(slice_inline_nodes(header, rest_offset, len(text)))
    title, destination = parse_header_rest(rest)

    title_alt = None
    if title is not None:
        split = split_rich_inline_by_caret(title)
        title = trim_inline(split.left)
        title_alt = trim_inline(split.right) if split.right is not None else None
        if not title:
            title = (Text(event_type.capitalize()),)

    return ParsedHeader(
        span=span,
        event_type=event_type,
        title=title,
        title_alt=title_alt,
        destination=destination,
        text=text.strip(),
    )


def parse_meta_item(item: ListItem) -> Optional[MetaEntry]:
    """Read a ``key: value`` list item; other items return None."""
    if len(item.children) != 1 or not isinstance(item.children[0], Paragraph):
        return None
    nodes = item.children[0].children
    text = to_plain_text(nodes)
    match = META_RE.match(text)
    if not match:
        return None
    value = _segment(nodes, match.end(), len(text))
    return MetaEntry(key=match.group(1).lower(), value=value, raw=text[match.end():].strip())


def parse_date_heading(heading: Heading) -> Optional[DateHeadingText]:
    """
    Recognize an H2 ``YYYY-MM-DD [@tz]`` heading.

    Returns:
        Parsed heading text, or None for headings that are not dates

    Raises:
        InvalidDateError: If the heading looks like a date but is not a real one
    """
    if heading.depth != 2:
        return None
    parsed = parse_date_text(to_plain_text(heading.children).strip())
    if parsed is None:
        return None
    if not is_valid_date(parsed.date):
        raise InvalidDateError(f"Not a calendar date: {parsed.date}", text=parsed.original_text)
    return parsed
