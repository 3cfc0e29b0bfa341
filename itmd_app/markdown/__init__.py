"""
Markdown front end: generic block/inline tree and inline helpers.

The alert transform lives in ``markdown.alerts``; it builds itinerary nodes
and is imported from there directly.
"""

from .builder import build_tree, parse_markdown
from .inline import CaretSplit, slice_inline_nodes, split_rich_inline_by_caret, to_plain_text, trim_inline

__all__ = [
    "build_tree",
    "parse_markdown",
    "CaretSplit",
    "slice_inline_nodes",
    "split_rich_inline_by_caret",
    "to_plain_text",
    "trim_inline",
]
