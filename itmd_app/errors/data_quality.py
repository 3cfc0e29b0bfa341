"""
Data quality error classifications for itinerary text processing.

These exceptions categorize the problems found in hand-written itinerary
Markdown. None of them is fatal: callers record them as node warnings and keep
going with a best-effort result.
"""

from typing import Optional, Dict, Any


class DataQualityError(Exception):
    """Base class for input problems that can be handled gracefully."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class MalformedPriceError(DataQualityError):
    """A price line could not be tokenized into a money amount."""

    def __init__(self, message: str, raw_line: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_line = raw_line


class MathEvaluationError(DataQualityError):
    """A braced ``{...}`` expression is not valid arithmetic."""

    def __init__(self, message: str, expression: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.expression = expression


class InvalidTimezoneError(DataQualityError):
    """Timezone token is neither an offset nor a known IANA zone."""

    def __init__(self, message: str, value: Optional[str] = None,
                 fallback: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.value = value
        self.fallback = fallback


class MalformedEventError(DataQualityError):
    """Quote block looks like an event line but cannot be parsed as one."""

    def __init__(self, message: str, line: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.line = line


class InvalidDateError(DataQualityError):
    """Date heading text is not a real calendar date."""

    def __init__(self, message: str, text: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.text = text


class FrontmatterError(DataQualityError):
    """YAML preamble exists but is not a valid mapping."""

    def __init__(self, message: str, raw: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw = raw
