"""Configuration loader with layered policy precedence."""

import logging
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from ..errors import ConfigurationError
from ..utils.time import coerce_timezone_with_warning
from .defaults import Policy, get_default_policy, normalize_policy_keys
from .validation import ConfigValidator

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "itmd.yaml"


def _read_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}", config_path=str(path))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}", config_path=str(path))

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping", config_path=str(path))
    return data


def load_rate_table(path: Path) -> dict[str, Decimal]:
    """
    Load a USD-based exchange rate table.

    The file is either a flat ``CODE: rate`` mapping or an ``itmd.yaml`` style
    file with a ``rates:`` section.

    Raises:
        ConfigurationError: If the file is unreadable or a rate is invalid
    """
    data = _read_yaml_mapping(Path(path))
    rates = data.get("rates", data)
    if not isinstance(rates, dict):
        raise ConfigurationError(f"{path}: rates must be a mapping", config_path=str(path), field="rates")

    errors = ConfigValidator.validate_rate_table(rates)
    if errors:
        first = errors[0]
        raise ConfigurationError(f"{path}: {first.field}: {first.message}",
                                 config_path=str(path), field=first.field)

    try:
        return {code.upper(): Decimal(str(rate)) for code, rate in rates.items()}
    except InvalidOperation as e:
        raise ConfigurationError(f"{path}: invalid rate: {e}", config_path=str(path), field="rates")


@dataclass(frozen=True)
class ConfigLoader:
    """
    Manages policy loading with layered precedence.

    Priority order (highest first):
    1. Document frontmatter (timezone, currency)
    2. Caller overrides
    3. ``<config_dir>/itmd.yaml`` ``policy:`` section
    4. Built-in defaults
    """

    config_dir: Optional[Path]
    defaults: Policy

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance; without ``config_dir`` no file is read."""
        return cls(
            config_dir=Path(config_dir) if config_dir is not None else None,
            defaults=get_default_policy(),
        )

    @property
    def config_file(self) -> Optional[Path]:
        if self.config_dir is None:
            return None
        return self.config_dir / CONFIG_FILENAME

    def load_file(self) -> dict[str, Any]:
        """
        Load the ``itmd.yaml`` mapping.

        Returns an empty mapping when there is no config directory or file.

        Raises:
            ConfigurationError: If the file is unreadable or malformed
        """
        path = self.config_file
        if path is None or not path.exists():
            return {}

        config = _read_yaml_mapping(path)
        errors = ConfigValidator.validate_config(config)
        if errors:
            first = errors[0]
            raise ConfigurationError(f"{path}: {first.field}: {first.message}",
                                     config_path=str(path), field=first.field)
        return config

    def load_file_policy(self) -> dict[str, Any]:
        """``policy:`` section of the config file, or an empty mapping."""
        return self.load_file().get("policy") or {}

    def load_file_rates(self) -> dict[str, Decimal]:
        """``rates:`` section of the config file, or an empty mapping."""
        path = self.config_file
        if path is None or not path.exists() or "rates" not in self.load_file():
            return {}
        return load_rate_table(path)

    def merge_config(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Merge defaults, the config file and caller overrides into one mapping."""
        # Start with global defaults
        config = self._dataclass_to_dict(self.defaults)

        # Apply file overrides
        config = self._deep_merge(config, normalize_policy_keys(self.load_file_policy()))

        # Apply caller overrides
        if overrides:
            config = self._deep_merge(config, normalize_policy_keys(overrides))

        return config

    def load_policy(self, overrides: Optional[dict[str, Any]] = None) -> Policy:
        """Build the policy for a parse run before frontmatter is applied."""
        return Policy.from_mapping(self.merge_config(overrides), base=self.defaults)

    def apply_frontmatter(self, policy: Policy, frontmatter: Any,
                          on_warning: Optional[Callable[[str], None]] = None) -> Policy:
        """
        Seed ``policy`` with document frontmatter defaults.

        An invalid frontmatter timezone keeps the current fallback and reports
        the coercion through ``on_warning``.
        """
        if frontmatter is None:
            return policy

        changes: dict[str, Any] = {}
        if frontmatter.timezone is not None:
            changes["tz_fallback"] = coerce_timezone_with_warning(
                frontmatter.timezone, policy.tz_fallback, "frontmatter", on_warning
            )
        if frontmatter.currency is not None:
            changes["currency_fallback"] = frontmatter.currency

        if not changes:
            return policy
        return Policy.from_mapping(changes, base=policy)

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, "__dataclass_fields__"):
            result = {}
            for field in fields(obj):
                value = getattr(obj, field.name)
                if hasattr(value, "__dataclass_fields__"):
                    result[field.name] = self._dataclass_to_dict(value)
                else:
                    result[field.name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
