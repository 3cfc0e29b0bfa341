"""
Command line interface.

    itmd trip.md --timezone Asia/Tokyo --indent
    itmd trip.md --stats --base-currency JPY --rates rates.yaml

Prints the parsed document (or its statistics) as JSON on stdout. Logs go to
stderr. Exit status is 0 on success and 2 on configuration or I/O errors.
"""

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

import structlog

from .data.serializers import dumps, dumps_document
from .engine import parse_document
from .errors import ConfigurationError
from .config.loader import ConfigLoader, load_rate_table
from .logging.config import LOG_LEVELS, configure_logging
from .metrics.calculator import StatisticsCalculator

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="itmd",
        description="Parse an itinerary Markdown document into JSON.",
    )
    parser.add_argument("path", help="Markdown file to parse, or - for stdin")
    parser.add_argument("--timezone", help="Fallback timezone for events without a dated heading zone")
    parser.add_argument("--currency", help="Fallback currency for bare price amounts")
    parser.add_argument("--config-dir", type=Path, help="Directory containing itmd.yaml")
    parser.add_argument("--stats", action="store_true", help="Print date span and cost totals instead")
    parser.add_argument("--base-currency", help="Currency for --stats totals (default: document currency or USD)")
    parser.add_argument("--rates", type=Path, help="YAML file with USD-based exchange rates for --stats")
    parser.add_argument("--indent", action="store_true", help="Pretty-print JSON output")
    parser.add_argument("--log-level", default="WARNING", choices=LOG_LEVELS)
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    parser.add_argument("--log-caller", action="store_true", help="Add module and line number to log records")
    parser.add_argument("--no-log-timestamps", dest="log_timestamps", action="store_false",
                        help="Omit timestamps from log records")
    return parser


def _read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(
        level=args.log_level,
        format_json=args.json_logs,
        include_timestamp=args.log_timestamps,
        include_caller=args.log_caller,
    )

    overrides = {}
    if args.timezone:
        overrides["tz_fallback"] = args.timezone
    if args.currency:
        overrides["currency_fallback"] = args.currency

    try:
        text = _read_source(args.path)
        document = parse_document(text, config_dir=args.config_dir, **overrides)

        if args.stats:
            if args.rates is not None:
                rates = load_rate_table(args.rates)
            else:
                rates = ConfigLoader.create(args.config_dir).load_file_rates()
            base_currency = args.base_currency or document.policy.currency_fallback or "USD"
            statistics = StatisticsCalculator(base_currency, rates).analyze(document)
            output = dumps(statistics.to_dict(), indent=args.indent)
        else:
            output = dumps_document(document, indent=args.indent)

    except ConfigurationError as e:
        logger.error("Configuration error", error=str(e), config_path=e.config_path, field=e.field)
        print(f"itmd: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    except (OSError, UnicodeDecodeError) as e:
        logger.error("Cannot read input", error=str(e), path=args.path)
        print(f"itmd: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    sys.stdout.buffer.write(output + b"\n")
    sys.stdout.flush()
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
