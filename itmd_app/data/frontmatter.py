"""
YAML frontmatter extraction for itinerary documents.

A document may start with a ``---`` fenced YAML mapping that seeds the
document defaults:

    ---
    title: Kyoto 2024
    timezone: Asia/Tokyo
    currency: JPY
    stayMode: header
    ---
"""

import logging
from typing import Any, Optional

import yaml

from ..errors import FrontmatterError
from .models import Frontmatter

logger = logging.getLogger(__name__)

FENCE = "---"
CLOSING_FENCES = ("---", "...")
STAY_MODES = ("default", "header")


def split_frontmatter(text: str) -> tuple[Optional[str], str, int]:
    """
    Split a leading frontmatter block from the Markdown body.

    Returns:
        ``(yaml_text, body, line_offset)`` where ``line_offset`` is the number
        of lines removed; ``(None, text, 0)`` when there is no closed block
    """
    source = text[1:] if text.startswith("\ufeff") else text
    lines = source.split("\n")
    if not lines or lines[0].rstrip() != FENCE:
        return None, text, 0

    for i in range(1, len(lines)):
        if lines[i].rstrip() in CLOSING_FENCES:
            yaml_text = "\n".join(lines[1:i])
            body = "\n".join(lines[i + 1:])
            return yaml_text, body, i + 1

    return None, text, 0


def load_frontmatter_yaml(yaml_text: str) -> dict[str, Any]:
    """
    Parse frontmatter YAML into a mapping.

    Raises:
        FrontmatterError: If the YAML is invalid or not a mapping
    """
    try:
        data = yaml.safe_load(yaml_text)
    except yaml.YAMLError as e:
        raise FrontmatterError(f"Invalid frontmatter YAML: {e}", raw=yaml_text)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontmatterError(f"Frontmatter must be a mapping, got {type(data).__name__}", raw=yaml_text)
    return data


def extract_frontmatter(text: str) -> Optional[dict[str, Any]]:
    """Return the frontmatter mapping of ``text``, or None if absent or invalid."""
    yaml_text, _body, _offset = split_frontmatter(text)
    if yaml_text is None:
        return None
    try:
        return load_frontmatter_yaml(yaml_text)
    except FrontmatterError as e:
        logger.warning(f"Ignoring frontmatter: {e}")
        return None


def _str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def normalize_itinerary_frontmatter(raw: dict[str, Any]) -> Frontmatter:
    """
    Pick the itinerary fields out of a raw frontmatter mapping.

    Aliases: ``name`` for title, ``tz`` for timezone, ``cur`` for currency and
    ``stay`` for stayMode. Blank strings and non-strings are ignored; stay mode
    must be ``default`` or ``header``.
    """
    stay = _str(raw.get("stayMode")) or _str(raw.get("stay_mode")) or _str(raw.get("stay"))
    stay = stay.lower() if stay else None

    return Frontmatter(
        title=_str(raw.get("title")) or _str(raw.get("name")),
        timezone=_str(raw.get("timezone")) or _str(raw.get("tz")),
        currency=_str(raw.get("currency")) or _str(raw.get("cur")),
        stay_mode=stay if stay in STAY_MODES else None,
    )


def parse_itinerary_frontmatter(text: str) -> Optional[Frontmatter]:
    """Extract and normalize the frontmatter of a document."""
    raw = extract_frontmatter(text)
    if raw is None:
        return None
    return normalize_itinerary_frontmatter(raw)
