"""
Centralized logging configuration for the itinerary parser.

The parsing pipeline itself never configures logging; applications (the CLI,
a preview server, tests) call ``configure_logging`` once at startup. Records
are rendered to stderr so JSON documents written to stdout stay parseable.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger, Processor

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def build_processors(
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list[Processor]] = None
) -> list[Processor]:
    """Processor chain shared by the console and JSON renderers."""
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.MODULE,
                        structlog.processors.CallsiteParameter.LINENO]
        ))
    processors.extend(extra_processors or ())
    return processors


def select_renderer(format_json: bool) -> Processor:
    """JSON lines for machines, plain key=value text for terminals."""
    if format_json:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=False)


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list[Processor]] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: One of ``LOG_LEVELS``, case-insensitive
        format_json: Render JSON lines (``--json-logs``) instead of text
        include_timestamp: Prefix records with a UTC ISO timestamp
        include_caller: Add module and line number (``--log-caller``)
        extra_processors: Processors inserted before the renderer

    Raises:
        ValueError: If ``level`` is not a known level name
    """
    name = level.upper()
    if name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level {level!r}")

    logging.basicConfig(level=getattr(logging, name), stream=sys.stderr, format="%(message)s")
    logging.getLogger().setLevel(getattr(logging, name))

    processors = build_processors(include_timestamp, include_caller, extra_processors)
    processors.append(select_renderer(format_json))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """Structlog logger for ``name``; resolved against the current configuration."""
    return structlog.get_logger(name)


def get_pipeline_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger bound to the document assembly subsystem.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger for assembly decisions
    """
    # Bound lazily so module-level loggers pick up configure_logging
    return structlog.get_logger(name, subsystem="pipeline")


def log_timezone_coercion(
    logger: FilteringBoundLogger,
    source: str,
    value: Any,
    fallback: Optional[str],
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a timezone coercion with standardized format.

    Args:
        logger: Structlog logger instance
        source: Label of where the value came from (frontmatter, heading, ...)
        value: The rejected timezone value
        fallback: The timezone used instead
        context: Additional context data
    """
    bound_logger = logger.bind(
        source=source,
        value=str(value),
        fallback=fallback,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.warning("timezone_coercion")
