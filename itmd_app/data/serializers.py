"""
JSON serialization of parsed documents.

Uses orjson so that output is compact and byte-for-byte stable: dictionaries
are emitted in insertion order, which ``to_dict`` fixes per node type.
"""

from typing import Any

import orjson

from .models import Document


def dumps(data: Any, indent: bool = False) -> bytes:
    """Serialize plain data produced by a ``to_dict`` method."""
    option = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(data, option=option)


def dumps_document(document: Document, indent: bool = False) -> bytes:
    """Serialize a parsed document."""
    return dumps(document.to_dict(), indent=indent)


def loads(raw: bytes) -> Any:
    """Inverse of ``dumps``; raises ``orjson.JSONDecodeError`` on bad input."""
    return orjson.loads(raw)
