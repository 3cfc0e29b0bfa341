"""
System failure error classifications.

These exceptions represent environment problems (unreadable configuration,
bad command line input) that the parsing pipeline cannot work around.
"""

from typing import Optional, Dict, Any


class SystemFailureError(Exception):
    """Base class for unrecoverable failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class ConfigurationError(SystemFailureError):
    """Configuration file is missing, unreadable or has the wrong shape."""

    def __init__(self, message: str, config_path: Optional[str] = None,
                 field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.config_path = config_path
        self.field = field
