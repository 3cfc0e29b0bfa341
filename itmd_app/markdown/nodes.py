"""
Generic Markdown tree consumed by the itinerary pipeline.

A closed set of immutable node classes; block containers hold tuples of
children so that transforms build new trees instead of mutating old ones.
Every node serializes to an mdast-like mapping through ``to_dict``.
"""

from dataclasses import dataclass, fields
from typing import Any, ClassVar, Optional, Union


class Node:
    """Base class for tree nodes."""
    node_type: ClassVar[str] = "node"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.node_type}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if f.name == "children":
                result["children"] = [child.to_dict() for child in value]
            elif value is not None:
                result[f.name] = value
        return result


# Inline nodes

@dataclass(frozen=True)
class Text(Node):
    node_type: ClassVar[str] = "text"
    value: str


@dataclass(frozen=True)
class InlineCode(Node):
    node_type: ClassVar[str] = "inlineCode"
    value: str


@dataclass(frozen=True)
class Emphasis(Node):
    node_type: ClassVar[str] = "emphasis"
    children: tuple["InlineNode", ...] = ()


@dataclass(frozen=True)
class Strong(Node):
    node_type: ClassVar[str] = "strong"
    children: tuple["InlineNode", ...] = ()


@dataclass(frozen=True)
class Delete(Node):
    node_type: ClassVar[str] = "delete"
    children: tuple["InlineNode", ...] = ()


@dataclass(frozen=True)
class Link(Node):
    node_type: ClassVar[str] = "link"
    url: str
    title: Optional[str] = None
    children: tuple["InlineNode", ...] = ()


@dataclass(frozen=True)
class Image(Node):
    node_type: ClassVar[str] = "image"
    url: str
    alt: str = ""
    title: Optional[str] = None


@dataclass(frozen=True)
class Break(Node):
    node_type: ClassVar[str] = "break"


@dataclass(frozen=True)
class HtmlInline(Node):
    node_type: ClassVar[str] = "html"
    value: str


InlineNode = Union[Text, InlineCode, Emphasis, Strong, Delete, Link, Image, Break, HtmlInline]
InlineParent = Union[Emphasis, Strong, Delete, Link]


# Block nodes

@dataclass(frozen=True)
class Paragraph(Node):
    node_type: ClassVar[str] = "paragraph"
    children: tuple[InlineNode, ...] = ()
    line: Optional[int] = None


@dataclass(frozen=True)
class Heading(Node):
    node_type: ClassVar[str] = "heading"
    depth: int
    children: tuple[InlineNode, ...] = ()
    line: Optional[int] = None


@dataclass(frozen=True)
class Blockquote(Node):
    node_type: ClassVar[str] = "blockquote"
    children: tuple[Any, ...] = ()
    line: Optional[int] = None


@dataclass(frozen=True)
class ListItem(Node):
    node_type: ClassVar[str] = "listItem"
    children: tuple[Any, ...] = ()
    line: Optional[int] = None


@dataclass(frozen=True)
class List(Node):
    node_type: ClassVar[str] = "list"
    ordered: bool = False
    start: Optional[int] = None
    children: tuple[ListItem, ...] = ()
    line: Optional[int] = None


@dataclass(frozen=True)
class Code(Node):
    node_type: ClassVar[str] = "code"
    value: str
    lang: Optional[str] = None
    line: Optional[int] = None


@dataclass(frozen=True)
class ThematicBreak(Node):
    node_type: ClassVar[str] = "thematicBreak"
    line: Optional[int] = None


@dataclass(frozen=True)
class Html(Node):
    node_type: ClassVar[str] = "html"
    value: str
    line: Optional[int] = None


@dataclass(frozen=True)
class Root(Node):
    node_type: ClassVar[str] = "root"
    children: tuple[Any, ...] = ()


BlockNode = Union[Paragraph, Heading, Blockquote, List, ListItem, Code, ThematicBreak, Html]

INLINE_PARENTS = (Emphasis, Strong, Delete, Link)
BLOCK_PARENTS = (Blockquote, List, ListItem)
