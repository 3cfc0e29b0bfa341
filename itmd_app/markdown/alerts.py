"""
Alert recognizer for GitHub-style callouts.

Rewrites ``> [!NOTE]`` style blockquotes into ``AlertNode`` values. The tree is
rebuilt bottom-up: children are transformed first and each parent is copied
with its new child tuple, so the input tree is never modified.
"""

import logging
import re
from dataclasses import replace
from typing import Any, Optional

from ..data.models import AlertNode, AlertVariant
from .inline import split_first_line, trim_inline
from .nodes import BLOCK_PARENTS, Blockquote, Paragraph, Root, Text

logger = logging.getLogger(__name__)

ALERT_MARKER_RE = re.compile(r"^\s*\[!(NOTE|TIP|IMPORTANT|WARNING|CAUTION)\][ \t]*", re.IGNORECASE)


def _to_alert(quote: Blockquote) -> Optional[AlertNode]:
    if not quote.children or not isinstance(quote.children[0], Paragraph):
        return None
    first = quote.children[0]
    if not first.children or not isinstance(first.children[0], Text):
        return None
    match = ALERT_MARKER_RE.match(first.children[0].value)
    if not match:
        return None

    variant = AlertVariant(match.group(1).lower())
    rest = first.children[0].value[match.end():]
    remaining = ((Text(rest),) if rest else ()) + first.children[1:]

    # Only the marker line is the title; later lines of the paragraph are body
    title_nodes, body_nodes, _ = split_first_line(remaining)
    inline_title = trim_inline(title_nodes)

    children: list[Any] = []
    body = trim_inline(body_nodes)
    if body:
        children.append(Paragraph(children=body, line=first.line + 1 if first.line else None))
    children.extend(quote.children[1:])

    logger.debug(f"Recognized {variant.value} alert at line {quote.line}")
    return AlertNode(
        variant=variant,
        title=variant.value.upper(),
        inline_title=inline_title or None,
        children=tuple(children),
        line=quote.line,
    )


def _transform(node: Any) -> Any:
    if isinstance(node, BLOCK_PARENTS):
        node = replace(node, children=tuple(_transform(child) for child in node.children))
    if isinstance(node, Blockquote):
        alert = _to_alert(node)
        if alert is not None:
            return alert
    return node


def recognize_alerts(root: Root) -> Root:
    """Return a new tree with every alert blockquote replaced by an ``AlertNode``."""
    return replace(root, children=tuple(_transform(child) for child in root.children))
