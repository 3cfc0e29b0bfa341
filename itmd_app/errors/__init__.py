"""
Error classification for the itinerary parsing pipeline.

Data quality errors describe problems in user-authored itinerary text. They are
raised by low-level helpers and always converted into ``warnings`` by the public
normalization and assembly functions. System failures describe problems with the
environment (configuration files, I/O) and may reach the caller.
"""

from .data_quality import (
    DataQualityError,
    MalformedPriceError,
    MathEvaluationError,
    InvalidTimezoneError,
    MalformedEventError,
    InvalidDateError,
    FrontmatterError,
)
from .system_failures import (
    SystemFailureError,
    ConfigurationError,
)

__all__ = [
    # Data Quality Errors
    "DataQualityError",
    "MalformedPriceError",
    "MathEvaluationError",
    "InvalidTimezoneError",
    "MalformedEventError",
    "InvalidDateError",
    "FrontmatterError",
    # System Failures
    "SystemFailureError",
    "ConfigurationError",
]
