"""
Logging configuration and utilities for the itinerary parser.
"""
from .config import (
    LOG_LEVELS,
    build_processors,
    configure_logging,
    get_logger,
    get_pipeline_logger,
    log_timezone_coercion,
    select_renderer,
)

__all__ = [
    "LOG_LEVELS",
    "build_processors",
    "configure_logging",
    "get_logger",
    "get_pipeline_logger",
    "log_timezone_coercion",
    "select_renderer",
]
