"""Parsing policy and configuration loading."""

from .defaults import Policy, get_default_policy
from .loader import ConfigLoader, load_rate_table
from .validation import ConfigValidator, ValidationError

__all__ = [
    "Policy",
    "get_default_policy",
    "ConfigLoader",
    "load_rate_table",
    "ConfigValidator",
    "ValidationError",
]
