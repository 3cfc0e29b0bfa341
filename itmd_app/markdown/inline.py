"""
Inline content helpers: flattening, offset slicing and caret splitting.

Offsets always refer to the flattened plain text of a sequence, as produced
by ``to_plain_text``. Text and inline code leaves can be cut at any offset;
containers are copied with re-sliced children; other leaves are atomic.
"""

from dataclasses import replace
from typing import Iterable, NamedTuple, Optional, Sequence

from .nodes import INLINE_PARENTS, Break, HtmlInline, Image, InlineCode, InlineNode, Text


class CaretSplit(NamedTuple):
    """Primary/alternate halves of an inline sequence split at ``^``."""
    left: tuple[InlineNode, ...]
    right: Optional[tuple[InlineNode, ...]]


def to_plain_text(nodes: Iterable[InlineNode]) -> str:
    """Flatten inline nodes to text; image alt counts, breaks do not."""
    parts = []
    for node in nodes:
        if isinstance(node, (Text, InlineCode, HtmlInline)):
            parts.append(node.value)
        elif isinstance(node, Image):
            parts.append(node.alt)
        elif isinstance(node, INLINE_PARENTS):
            parts.append(to_plain_text(node.children))
    return "".join(parts)


def _length_of(node: InlineNode) -> int:
    return len(to_plain_text((node,)))


def _slice_node(node: InlineNode, start: int, end: int, offset: list[int]) -> list[InlineNode]:
    node_start = offset[0]
    node_end = node_start + _length_of(node)

    if end <= node_start or start >= node_end:
        offset[0] = node_end
        return []

    rel_start = max(start, node_start) - node_start
    rel_end = min(end, node_end) - node_start
    results: list[InlineNode] = []

    if isinstance(node, Text):
        sliced = node.value[rel_start:rel_end]
        if sliced:
            results.append(Text(sliced))
    elif isinstance(node, InlineCode):
        sliced = node.value[rel_start:rel_end]
        if sliced:
            results.append(replace(node, value=sliced))
    elif isinstance(node, INLINE_PARENTS):
        children: list[InlineNode] = []
        for child in node.children:
            children.extend(_slice_node(child, start, end, offset))
        if children:
            results.append(replace(node, children=tuple(children)))
        # children advanced the offset already
        return results
    else:
        results.append(node)

    offset[0] = node_end
    return results


def slice_inline_nodes(nodes: Sequence[InlineNode], start: int, end: int) -> tuple[InlineNode, ...]:
    """
    Return the part of ``nodes`` covering plain-text range ``[start, end)``.

    Args:
        nodes: Inline sequence
        start: Inclusive start offset in the flattened text
        end: Exclusive end offset in the flattened text

    Returns:
        New inline sequence; empty when the range is empty or out of bounds
    """
    if end <= start:
        return ()
    offset = [0]
    out: list[InlineNode] = []
    for node in nodes:
        out.extend(_slice_node(node, start, end, offset))
    return tuple(out)


def split_rich_inline_by_caret(nodes: Sequence[InlineNode]) -> CaretSplit:
    """
    Split at the first ``^`` of the flattened text.

    Without a caret, ``left`` is the input unchanged and ``right`` is ``None``.
    """
    plain = to_plain_text(nodes)
    idx = plain.find("^")
    if idx < 0:
        return CaretSplit(left=tuple(nodes), right=None)
    return CaretSplit(
        left=slice_inline_nodes(nodes, 0, idx),
        right=slice_inline_nodes(nodes, idx + 1, len(plain)),
    )


def trim_inline(nodes: Sequence[InlineNode]) -> tuple[InlineNode, ...]:
    """Strip surrounding whitespace from the outermost text leaves."""
    items = list(nodes)

    while items and isinstance(items[0], Text):
        value = items[0].value.lstrip()
        if value:
            items[0] = Text(value)
            break
        items.pop(0)

    while items and isinstance(items[-1], Text):
        value = items[-1].value.rstrip()
        if value:
            items[-1] = Text(value)
            break
        items.pop()

    return tuple(items)


def _split_node_at_line(node: InlineNode) -> tuple[Optional[InlineNode], Optional[InlineNode], bool]:
    if isinstance(node, Break):
        return None, None, True
    if isinstance(node, Text) and "\n" in node.value:
        head, tail = node.value.split("\n", 1)
        return (Text(head) if head else None), (Text(tail) if tail else None), True
    if isinstance(node, INLINE_PARENTS):
        head, tail, found = split_first_line(node.children)
        if not found:
            return node, None, False
        return (
            replace(node, children=head) if head else None,
            replace(node, children=tail) if tail else None,
            True,
        )
    return node, None, False


def split_first_line(nodes: Sequence[InlineNode]) -> tuple[tuple[InlineNode, ...], tuple[InlineNode, ...], bool]:
    """
    Split an inline sequence at its first line break.

    Returns:
        ``(first_line, rest, found)``; the break itself is dropped
    """
    head: list[InlineNode] = []
    for i, node in enumerate(nodes):
        node_head, node_tail, found = _split_node_at_line(node)
        if not found:
            head.append(node)
            continue
        if node_head is not None:
            head.append(node_head)
        tail = ([node_tail] if node_tail is not None else []) + list(nodes[i + 1:])
        return tuple(head), tuple(tail), True
    return tuple(head), (), False
