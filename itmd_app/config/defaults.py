"""Default parsing policy for itinerary documents."""

import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional

from ..utils.time import normalize_timezone
from .validation import ConfigValidator

logger = logging.getLogger(__name__)

# Serialized (camelCase) names accepted alongside the attribute names
POLICY_KEY_ALIASES = {
    "amHour": "am_hour",
    "pmHour": "pm_hour",
    "allowUrlSchemes": "allow_url_schemes",
    "tzFallback": "tz_fallback",
    "currencyFallback": "currency_fallback",
}


@dataclass(frozen=True)
class Policy:
    """Fallback defaults threaded through a parse run."""
    # Marker times
    am_hour: int = 9                                 # Hour used for [am] placeholders
    pm_hour: int = 15                                # Hour used for [pm] placeholders

    # Links
    allow_url_schemes: tuple[str, ...] = ("http", "https", "mailto")

    # Fallbacks
    tz_fallback: Optional[str] = None                # Zone for events without heading tz
    currency_fallback: Optional[str] = None          # Currency for bare price numbers

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]], base: Optional["Policy"] = None) -> "Policy":
        """
        Build a policy from a plain mapping on top of ``base``.

        Unknown keys and invalid values are logged and ignored so that the
        corresponding ``base`` value is kept.
        """
        base = base or cls()
        values = normalize_policy_keys(mapping or {})

        rejected = set()
        for error in ConfigValidator.validate_policy(values):
            logger.warning(f"Ignoring policy field {error.field}={error.value!r}: {error.message}")
            rejected.add(error.field)

        changes = {key: value for key, value in values.items() if key not in rejected}
        if "allow_url_schemes" in changes:
            changes["allow_url_schemes"] = tuple(s.lower() for s in changes["allow_url_schemes"])
        if changes.get("tz_fallback") is not None:
            changes["tz_fallback"] = normalize_timezone(changes["tz_fallback"])
        if changes.get("currency_fallback") is not None:
            changes["currency_fallback"] = changes["currency_fallback"].upper()

        return replace(base, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "amHour": self.am_hour,
            "pmHour": self.pm_hour,
            "allowUrlSchemes": list(self.allow_url_schemes),
            "tzFallback": self.tz_fallback,
            "currencyFallback": self.currency_fallback,
        }


def normalize_policy_keys(mapping: Mapping[str, Any]) -> dict[str, Any]:
    """Map camelCase keys to attribute names and drop unknown keys."""
    known = {f.name for f in fields(Policy)}
    result = {}
    for key, value in mapping.items():
        name = POLICY_KEY_ALIASES.get(key, key)
        if name not in known:
            logger.warning(f"Ignoring unknown policy field {key!r}")
            continue
        result[name] = value
    return result


def get_default_policy() -> Policy:
    """Get the default policy instance."""
    return Policy()
