"""
Services container passed explicitly through a parse run.

A ``Services`` value bundles the parsing policy with the timezone and ISO
helpers. It is immutable; derive variants with ``with_policy`` instead of
mutating shared state.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from .config.defaults import Policy, get_default_policy
from .utils.time import TimezoneCoercion, coerce_timezone, is_valid_timezone, normalize_timezone, to_iso


@dataclass(frozen=True)
class TimezoneService:
    """Timezone normalization bound to the service container."""

    def normalize(self, tz: Any) -> Optional[str]:
        return normalize_timezone(tz)

    def coerce(self, tz: Any, fallback: Any = None) -> TimezoneCoercion:
        return coerce_timezone(tz, fallback)

    def is_valid(self, tz: Any) -> bool:
        return is_valid_timezone(tz)


@dataclass(frozen=True)
class IsoService:
    """Wall-clock to instant conversion."""

    def to_iso(self, date_iso: Optional[str], hour: Optional[int], minute: Optional[int],
               tz: Optional[str]) -> Optional[str]:
        return to_iso(date_iso, hour, minute, tz)


@dataclass(frozen=True)
class Services:
    """Policy plus helper services for one or more parse runs."""
    policy: Policy
    tz: TimezoneService = field(default_factory=TimezoneService)
    iso: IsoService = field(default_factory=IsoService)

    def with_policy(self, **changes: Any) -> "Services":
        """Return a copy whose policy has ``changes`` applied (validated)."""
        return replace(self, policy=Policy.from_mapping(changes, base=self.policy))


def make_services(policy: Optional[Policy] = None, **overrides: Any) -> Services:
    """
    Build a Services container.

    Args:
        policy: Base policy; built-in defaults when omitted
        **overrides: Policy fields to override (snake_case or camelCase)
    """
    base = policy if policy is not None else get_default_policy()
    if overrides:
        base = Policy.from_mapping(overrides, base=base)
    return Services(policy=base)
