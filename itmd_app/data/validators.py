"""
Validation rules for assembled events.

Each check returns warning codes instead of raising so the assembler can
attach them to the node it is building.
"""

import logging
import re
from dataclasses import replace
from datetime import datetime
from typing import Any, Optional, Sequence

from ..markdown.nodes import BLOCK_PARENTS, INLINE_PARENTS, Heading, InlineNode, Link, Paragraph
from .parsers import ClockToken

logger = logging.getLogger(__name__)

SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*):")


class EventValidator:
    """Checks event times and link targets against the parsing policy."""

    def __init__(self, allow_url_schemes: Sequence[str]):
        """
        Initialize validator.

        Args:
            allow_url_schemes: Link schemes that may stay clickable
        """
        self.allow_url_schemes = frozenset(s.lower() for s in allow_url_schemes)

    def validate_clock(self, token: ClockToken) -> list[str]:
        """Hour must be 0-23 and minute 0-59."""
        if 0 <= token.hour <= 23 and 0 <= token.minute <= 59:
            return []
        logger.debug(f"Clock value out of range: {token.text}")
        return ["invalid-time"]

    def validate_range(self, start_iso: Optional[str], end_iso: Optional[str]) -> list[str]:
        """A resolved range must not end before it starts."""
        if not start_iso or not end_iso:
            return []
        if datetime.fromisoformat(end_iso) < datetime.fromisoformat(start_iso):
            return ["end-before-start"]
        return []

    def is_allowed_url(self, url: str) -> bool:
        """Relative URLs are always allowed; absolute ones need a listed scheme."""
        match = SCHEME_RE.match(url.strip())
        if not match:
            return True
        return match.group(1).lower() in self.allow_url_schemes

    def sanitize_inline(self, nodes: Sequence[InlineNode], warnings: list[str]) -> tuple[InlineNode, ...]:
        """Unwrap links with disallowed schemes, keeping their content."""
        result: list[InlineNode] = []
        for node in nodes:
            if isinstance(node, INLINE_PARENTS):
                children = self.sanitize_inline(node.children, warnings)
                if isinstance(node, Link) and not self.is_allowed_url(node.url):
                    logger.info(f"Unwrapping link with disallowed scheme: {node.url}")
                    if "unsafe-url" not in warnings:
                        warnings.append("unsafe-url")
                    result.extend(children)
                    continue
                node = replace(node, children=children)
            result.append(node)
        return tuple(result)

    def sanitize_block(self, block: Any, warnings: list[str]) -> Any:
        """Apply ``sanitize_inline`` to every paragraph and heading in ``block``."""
        if isinstance(block, (Paragraph, Heading)):
            return replace(block, children=self.sanitize_inline(block.children, warnings))
        if isinstance(block, BLOCK_PARENTS):
            return replace(block, children=tuple(self.sanitize_block(child, warnings) for child in block.children))
        return block
