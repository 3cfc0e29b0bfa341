"""
Timezone normalization and date arithmetic for itinerary documents.

This module is the single place where user-written timezone tokens are turned
into something a ``datetime`` can use. Invalid input never raises out of the
public helpers: it yields ``None`` or the caller-supplied fallback.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Any, Callable, NamedTuple, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

from ..errors import InvalidDateError, InvalidTimezoneError
from ..logging.config import get_logger, log_timezone_coercion

logger = get_logger(__name__)

# Offsets such as "+9", "+09", "+0900", "+09:00", optionally prefixed by UTC/GMT
_OFFSET_RE = re.compile(r"^(?:\s*(?:UTC|GMT)\s*)?([+-])(\d{1,2})(?::?(\d{1,2}))?$", re.IGNORECASE)
_BARE_UTC_RE = re.compile(r"^(?:UTC|GMT)$", re.IGNORECASE)
_CANONICAL_OFFSET_RE = re.compile(r"^UTC([+-])(\d{2}):(\d{2})$")
_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DATE_HEADING_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})(?:\s*@([A-Za-z0-9_./+:-]+))?")

MAX_OFFSET_HOURS = 14
DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
NON_ZONE_KEYS = frozenset({"localtime", "posixrules", "Factory"})


class TimezoneCoercion(NamedTuple):
    """Outcome of coercing a timezone token against a fallback."""
    tz: Optional[str]
    valid: bool


@dataclass(frozen=True)
class DateHeadingText:
    """Date heading text split into its parts."""
    date: str
    day_of_week: str
    timezone: Optional[str]
    original_text: str


@lru_cache(maxsize=1)
def _zone_names() -> frozenset[str]:
    return frozenset(available_timezones())


def is_valid_iana_timezone(tz: Any) -> bool:
    """
    Check that ``tz`` is a real IANA zone name.

    The name must be listed in the zone database and round-trip exactly:
    loading the zone and reading back its key has to give the input string
    unchanged. Database files that are not zones (``localtime``,
    ``posixrules``, ``Factory``) are rejected.
    """
    if not isinstance(tz, str) or not tz.strip():
        return False
    if tz in NON_ZONE_KEYS or tz not in _zone_names():
        return False
    try:
        return ZoneInfo(tz).key == tz
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False


def normalize_timezone(tz: Any) -> Optional[str]:
    """
    Normalize a timezone token.

    Args:
        tz: Raw token, e.g. ``"Asia/Tokyo"``, ``"UTC+9"``, ``"-0530"``, ``"gmt"``

    Returns:
        ``UTC±HH:MM`` for offsets and bare UTC/GMT, the IANA name unchanged for
        valid zone names, ``None`` for anything else
    """
    if not isinstance(tz, str):
        return None
    raw = tz.strip()
    if not raw:
        return None

    if _BARE_UTC_RE.match(raw):
        return "UTC+00:00"

    match = _OFFSET_RE.match(raw)
    if match:
        sign, hours, minutes = match.group(1), int(match.group(2)), int(match.group(3) or 0)
        if 0 <= hours <= MAX_OFFSET_HOURS and 0 <= minutes < 60:
            return f"UTC{sign}{hours:02d}:{minutes:02d}"
        return None

    if is_valid_iana_timezone(raw):
        return raw

    return None


def is_valid_timezone(tz: Any) -> bool:
    """True if ``tz`` normalizes to an offset or IANA zone."""
    return normalize_timezone(tz) is not None


def coerce_timezone(tz: Any, fallback: Any = None) -> TimezoneCoercion:
    """
    Normalize ``tz``, falling back to the normalized ``fallback``.

    ``valid`` reports whether ``tz`` itself was usable; a missing ``tz`` is not
    valid, so callers that treat "absent" differently from "wrong" should check
    for ``None`` first.
    """
    primary = normalize_timezone(tz)
    if primary is not None:
        return TimezoneCoercion(tz=primary, valid=True)
    return TimezoneCoercion(tz=normalize_timezone(fallback), valid=False)


def coerce_timezone_with_warning(tz: Any, fallback: str, source: str,
                                 on_warning: Optional[Callable[[str], None]] = None) -> str:
    """
    Return a usable timezone, reporting a user-visible warning on coercion.

    Args:
        tz: Timezone value to check
        fallback: Timezone returned when ``tz`` is invalid
        source: Label of where ``tz`` came from (e.g. ``"frontmatter"``)
        on_warning: Optional callback receiving the warning message

    Returns:
        The normalized ``tz`` when valid, otherwise ``fallback``
    """
    normalized = normalize_timezone(tz)
    if normalized is not None:
        return normalized

    message = f"Invalid timezone '{tz}' in {source}; using '{fallback}' instead"
    log_timezone_coercion(logger, source, tz, fallback)
    if on_warning is not None:
        on_warning(message)
    return fallback


def resolve_zone(tz: str) -> tzinfo:
    """
    Turn a normalized timezone string into a ``tzinfo``.

    Raises:
        InvalidTimezoneError: If ``tz`` is not a normalized timezone
    """
    normalized = normalize_timezone(tz)
    if normalized is None:
        raise InvalidTimezoneError(f"Unknown timezone: {tz!r}", value=tz)

    match = _CANONICAL_OFFSET_RE.match(normalized)
    if match:
        delta = timedelta(hours=int(match.group(2)), minutes=int(match.group(3)))
        if match.group(1) == "-":
            delta = -delta
        return timezone(delta)

    return ZoneInfo(normalized)


def parse_iso_date(date_iso: str) -> date:
    """
    Parse a strict ``YYYY-MM-DD`` string.

    Raises:
        InvalidDateError: If the text is not a real calendar date
    """
    match = _DATE_RE.match(date_iso or "")
    if not match:
        raise InvalidDateError(f"Not a YYYY-MM-DD date: {date_iso!r}", text=date_iso)
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError as e:
        raise InvalidDateError(f"Invalid calendar date {date_iso!r}: {e}", text=date_iso)


def is_valid_date(date_iso: str) -> bool:
    """True if ``date_iso`` is a real ``YYYY-MM-DD`` calendar date."""
    try:
        parse_iso_date(date_iso)
    except InvalidDateError:
        return False
    return True


def day_of_week(date_iso: str) -> str:
    """Short English day name (``Mon`` .. ``Sun``), empty for invalid dates."""
    try:
        return DAY_NAMES[parse_iso_date(date_iso).weekday()]
    except InvalidDateError:
        return ""


def shift_date(date_iso: str, days: int) -> str:
    """
    Add ``days`` to a ``YYYY-MM-DD`` date.

    Raises:
        InvalidDateError: If the date is invalid or the result leaves years 1..9999
    """
    day = parse_iso_date(date_iso)
    try:
        return (day + timedelta(days=days)).isoformat()
    except OverflowError:
        raise InvalidDateError(f"{date_iso} {days:+d} days is out of range", text=date_iso)


def parse_date_text(text: str, base_tz: Optional[str] = None) -> Optional[DateHeadingText]:
    """
    Split date heading text such as ``2024-03-01 @Asia/Tokyo``.

    The timezone token is returned raw; validation is up to the caller.
    """
    match = _DATE_HEADING_RE.match(text or "")
    if not match:
        return None
    date_str, tz = match.group(1), match.group(2)
    return DateHeadingText(
        date=date_str,
        day_of_week=day_of_week(date_str),
        timezone=tz or base_tz,
        original_text=text,
    )


def to_iso(date_iso: Optional[str], hour: Optional[int], minute: Optional[int],
           tz: Optional[str]) -> Optional[str]:
    """
    Convert a wall-clock date and time in ``tz`` into an ISO 8601 instant.

    Args:
        date_iso: ``YYYY-MM-DD`` date
        hour: Hour of day (0-23)
        minute: Minute (0-59)
        tz: Timezone token; ``None`` means UTC

    Returns:
        ISO string with minute precision and explicit offset, e.g.
        ``2024-03-01T08:00+09:00``; ``None`` if any part is missing or invalid
    """
    if not date_iso or hour is None or minute is None:
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None

    try:
        day = parse_iso_date(date_iso)
        zone = timezone.utc if tz is None else resolve_zone(tz)
    except (InvalidDateError, InvalidTimezoneError) as e:
        logger.debug("to_iso rejected input", date=date_iso, tz=tz, reason=str(e))
        return None

    try:
        return datetime(day.year, day.month, day.day, hour, minute, tzinfo=zone).isoformat(timespec="minutes")
    except OverflowError as e:
        logger.debug("to_iso out of range", date=date_iso, tz=tz, reason=str(e))
        return None


def day_offset(instant_iso: str, base_date: str, tz: Optional[str]) -> int:
    """
    Count calendar days between ``base_date`` and the local date of an instant.

    Used to label overnight arrivals (``+1``) relative to the date heading when
    the instant is viewed in the heading's timezone.

    Raises:
        InvalidDateError: If the local date falls outside years 1..9999
    """
    instant = datetime.fromisoformat(instant_iso)
    zone = timezone.utc if tz is None else resolve_zone(tz)
    try:
        local = instant.astimezone(zone)
    except OverflowError:
        raise InvalidDateError(f"{instant_iso} is out of range in {tz}", text=instant_iso)
    return (local.date() - parse_iso_date(base_date)).days
