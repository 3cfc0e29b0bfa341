"""Configuration validation utilities."""

import re
from dataclasses import dataclass
from typing import Any

from ..utils.time import is_valid_timezone

_CURRENCY_CODE_RE = re.compile(r"^[A-Za-z]{3}$")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_policy(params: dict[str, Any]) -> list[ValidationError]:
        """Validate policy parameters keyed by attribute name."""
        errors = []

        # Validate marker hours
        for name in ("am_hour", "pm_hour"):
            if name in params:
                value = params[name]
                if not _is_int(value) or value < 0 or value > 23:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be an integer hour between 0 and 23",
                        value=value
                    ))

        # Validate allow_url_schemes
        if "allow_url_schemes" in params:
            value = params["allow_url_schemes"]
            if (not isinstance(value, (list, tuple))
                    or not all(isinstance(s, str) and s.strip() for s in value)):
                errors.append(ValidationError(
                    field="allow_url_schemes",
                    message="Must be a list of non-empty scheme names",
                    value=value
                ))

        # Validate tz_fallback
        if "tz_fallback" in params:
            value = params["tz_fallback"]
            if value is not None and not is_valid_timezone(value):
                errors.append(ValidationError(
                    field="tz_fallback",
                    message="Must be a UTC offset or an IANA timezone name",
                    value=value
                ))

        # Validate currency_fallback
        if "currency_fallback" in params:
            value = params["currency_fallback"]
            if value is not None and (not isinstance(value, str) or not _CURRENCY_CODE_RE.match(value)):
                errors.append(ValidationError(
                    field="currency_fallback",
                    message="Must be a 3-letter currency code",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_rate_table(rates: dict[str, Any]) -> list[ValidationError]:
        """Validate a USD-based exchange rate table."""
        errors = []

        for code, rate in rates.items():
            if not isinstance(code, str) or not _CURRENCY_CODE_RE.match(code):
                errors.append(ValidationError(
                    field=str(code),
                    message="Rate keys must be 3-letter currency codes",
                    value=code
                ))
                continue
            if isinstance(rate, bool) or not isinstance(rate, (int, float, str)):
                errors.append(ValidationError(
                    field=code,
                    message="Rate must be a positive number",
                    value=rate
                ))
                continue
            try:
                positive = float(rate) > 0
            except ValueError:
                positive = False
            if not positive:
                errors.append(ValidationError(
                    field=code,
                    message="Rate must be a positive number",
                    value=rate
                ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate a complete ``itmd.yaml`` mapping."""
        errors = []

        # Policy values are checked field by field when the Policy is built
        if "policy" in config:
            if not isinstance(config["policy"], dict):
                errors.append(ValidationError(
                    field="policy",
                    message="Must be a mapping",
                    value=config["policy"]
                ))

        if "rates" in config:
            if isinstance(config["rates"], dict):
                errors.extend(ConfigValidator.validate_rate_table(config["rates"]))
            else:
                errors.append(ValidationError(
                    field="rates",
                    message="Must be a mapping of currency code to USD rate",
                    value=config["rates"]
                ))

        return errors
