"""
Build the generic Markdown tree from a markdown-it-py token stream.

markdown-it-py emits a flat list of block tokens with ``nesting`` markers and
an ``inline`` token whose ``children`` hold the inline stream. Both levels are
folded into the immutable node classes of ``markdown.nodes`` with an explicit
stack. Soft line breaks are kept as ``"\\n"`` inside text and adjacent text
leaves are merged, so a paragraph's first line can be read off its first
text leaf.
"""

import logging
from typing import Any, Optional, Sequence

from markdown_it import MarkdownIt
from markdown_it.token import Token

from .nodes import (
    Blockquote,
    Break,
    Code,
    Delete,
    Emphasis,
    Heading,
    Html,
    HtmlInline,
    Image,
    InlineCode,
    InlineNode,
    Link,
    List,
    ListItem,
    Paragraph,
    Root,
    Strong,
    Text,
    ThematicBreak,
)

logger = logging.getLogger(__name__)


def create_parser() -> MarkdownIt:
    """CommonMark parser with GFM strikethrough."""
    return MarkdownIt("commonmark").enable("strikethrough")


def _append_inline(out: list[InlineNode], node: InlineNode) -> None:
    if isinstance(node, Text) and out and isinstance(out[-1], Text):
        out[-1] = Text(out[-1].value + node.value)
    else:
        out.append(node)


def _close_inline(token: Token, children: list[InlineNode]) -> Optional[InlineNode]:
    if token.type == "em_open":
        return Emphasis(children=tuple(children))
    if token.type == "strong_open":
        return Strong(children=tuple(children))
    if token.type == "s_open":
        return Delete(children=tuple(children))
    if token.type == "link_open":
        return Link(
            url=str(token.attrGet("href") or ""),
            title=token.attrGet("title") or None,
            children=tuple(children),
        )
    logger.debug(f"Unwrapping unsupported inline container {token.type}")
    return None


def build_inline(tokens: Sequence[Token]) -> tuple[InlineNode, ...]:
    """Convert an inline token stream into inline nodes."""
    stack: list[tuple[Optional[Token], list[InlineNode]]] = [(None, [])]

    for token in tokens:
        out = stack[-1][1]
        if token.nesting == 1:
            stack.append((token, []))
        elif token.nesting == -1:
            opener, children = stack.pop()
            node = _close_inline(opener, children) if opener is not None else None
            if node is not None:
                _append_inline(stack[-1][1], node)
            else:
                for child in children:
                    _append_inline(stack[-1][1], child)
        elif token.type == "softbreak":
            _append_inline(out, Text("\n"))
        elif token.type == "hardbreak":
            out.append(Break())
        elif token.type == "code_inline":
            out.append(InlineCode(token.content))
        elif token.type == "image":
            out.append(Image(
                url=str(token.attrGet("src") or ""),
                alt=token.content,
                title=token.attrGet("title") or None,
            ))
        elif token.type == "html_inline":
            out.append(HtmlInline(token.content))
        elif token.content:
            _append_inline(out, Text(token.content))

    # Unbalanced openers keep their content
    while len(stack) > 1:
        _opener, children = stack.pop()
        for child in children:
            _append_inline(stack[-1][1], child)

    return tuple(stack[0][1])


def _line_of(token: Token, line_offset: int) -> Optional[int]:
    if token.map:
        return token.map[0] + 1 + line_offset
    return None


def _close_block(token: Token, children: list[Any], line_offset: int) -> Optional[Any]:
    line = _line_of(token, line_offset)
    if token.type == "paragraph_open":
        return Paragraph(children=tuple(children), line=line)
    if token.type == "heading_open":
        return Heading(depth=int(token.tag[1:]), children=tuple(children), line=line)
    if token.type == "blockquote_open":
        return Blockquote(children=tuple(children), line=line)
    if token.type == "bullet_list_open":
        return List(ordered=False, children=tuple(children), line=line)
    if token.type == "ordered_list_open":
        start = token.attrGet("start")
        return List(ordered=True, start=int(start) if start is not None else 1,
                    children=tuple(children), line=line)
    if token.type == "list_item_open":
        return ListItem(children=tuple(children), line=line)
    logger.debug(f"Dropping unsupported block container {token.type}")
    return None


def build_tree(tokens: Sequence[Token], line_offset: int = 0) -> Root:
    """
    Convert a markdown-it-py block token stream into a ``Root``.

    Args:
        tokens: Output of ``MarkdownIt.parse``
        line_offset: Lines removed before parsing (frontmatter), added to ``line``
    """
    stack: list[tuple[Optional[Token], list[Any]]] = [(None, [])]

    for token in tokens:
        out = stack[-1][1]
        if token.nesting == 1:
            stack.append((token, []))
        elif token.nesting == -1:
            opener, children = stack.pop()
            node = _close_block(opener, children, line_offset) if opener is not None else None
            if node is not None:
                stack[-1][1].append(node)
        elif token.type == "inline":
            out.extend(build_inline(token.children or []))
        elif token.type in ("fence", "code_block"):
            info = token.info.strip() if token.info else ""
            out.append(Code(value=token.content.rstrip("\n"), lang=info.split()[0] if info else None,
                            line=_line_of(token, line_offset)))
        elif token.type == "hr":
            out.append(ThematicBreak(line=_line_of(token, line_offset)))
        elif token.type == "html_block":
            out.append(Html(value=token.content.rstrip("\n"), line=_line_of(token, line_offset)))

    return Root(children=tuple(stack[0][1]))


def parse_markdown(text: str, line_offset: int = 0, parser: Optional[MarkdownIt] = None) -> Root:
    """Parse Markdown text into the generic tree."""
    parser = parser or create_parser()
    return build_tree(parser.parse(text), line_offset=line_offset)
