"""Configuration management for dns-promoter.

This module handles YAML configuration loading, validation, and
environment variable and command-line override support. Settings can
come entirely from the command line; the YAML file is optional.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import yaml

from .errors import PromoterError


DEFAULT_CONFIG_PATHS = ("dns-promoter.yaml", "config/dns-promoter.yaml")

DEFAULTS: Dict[str, Any] = {
    "dry_run": False,
    "once": False,
    "interval_seconds": 300,
    "discovery_backoff": [60, 300],
    "environment_tag": "environment",
    "session_name": "dns-promoter",
    "log_level": "INFO",
}

# Environment variable -> (key path, kind)
ENVIRONMENT_OVERRIDES = {
    "DNS_PROMOTER_ROOT_DOMAIN": ("root_domain", "str"),
    "DNS_PROMOTER_ROOT_ROLE": ("root_role", "str"),
    "DNS_PROMOTER_DISCOVER_ROLE": ("discover_role", "str"),
    "DNS_PROMOTER_SUB_ROLES": ("sub_roles", "list"),
    "DNS_PROMOTER_REGIONS": ("regions", "list"),
    "DNS_PROMOTER_DRY_RUN": ("dry_run", "bool"),
    "DNS_PROMOTER_LOG_LEVEL": ("log_level", "str"),
    "AWS_PROFILE": ("aws.profile_name", "str"),
}


class ConfigurationError(PromoterError):
    """Raised when configuration is invalid or missing."""

    pass


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Configuration:
    """Configuration management with YAML loading and validation.

    This class handles loading configuration from YAML files,
    validating the structure, and supporting environment variable
    and explicit (command-line) overrides.
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize configuration manager.

        Args:
            config_path: Optional path to configuration file.
                        If None, auto-detects dns-promoter.yaml.
            overrides: Dot-path keyed values applied last (e.g. from CLI)

        Raises:
            ConfigurationError: When configuration is invalid
        """
        self._config: Dict[str, Any] = {}
        self._config_path = self._resolve_config_path(config_path)
        if self._config_path is not None:
            self._load_configuration()
        self._apply_environment_overrides()
        for key_path, value in (overrides or {}).items():
            if value is not None:
                self._set_nested_value(key_path, value)
        self._validate_configuration()

    @property
    def config_path(self) -> Optional[Path]:
        """Path of the loaded configuration file, if any."""
        return self._config_path

    def _resolve_config_path(self, config_path: Optional[str]) -> Optional[Path]:
        """Resolve configuration file path.

        Args:
            config_path: Optional path to configuration file

        Returns:
            Resolved Path, or None when no file is used

        Raises:
            ConfigurationError: When an explicit file is not found
        """
        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise ConfigurationError(
                    f"Configuration file not found: {path}. "
                    "Please create a configuration file or specify a valid path."
                )
            return path

        for candidate in DEFAULT_CONFIG_PATHS:
            path = Path(candidate)
            if path.exists():
                return path
        return None

    def _load_configuration(self) -> None:
        """Load configuration from YAML file.

        Raises:
            ConfigurationError: When YAML file is invalid
        """
        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file {self._config_path}: {e}"
            )
        except IOError as e:
            raise ConfigurationError(
                f"Unable to read configuration file {self._config_path}: {e}"
            )

        if not isinstance(loaded, dict):
            raise ConfigurationError(
                f"Configuration file {self._config_path} must contain a mapping"
            )
        self._config = loaded

    def _apply_environment_overrides(self) -> None:
        """Apply environment variable overrides to configuration."""
        for variable, (key_path, kind) in ENVIRONMENT_OVERRIDES.items():
            if variable not in os.environ:
                continue
            raw = os.environ[variable]
            if kind == "bool":
                value: Any = _parse_bool(raw)
            elif kind == "list":
                value = _parse_list(raw)
            else:
                value = raw
            self._set_nested_value(key_path, value)

    def _validate_configuration(self) -> None:
        """Validate configuration and fill in defaults.

        Raises:
            ConfigurationError: When required fields are missing or malformed
        """
        for key, value in DEFAULTS.items():
            if self._config.get(key) is None:
                self._config[key] = list(value) if isinstance(value, list) else value

        root_domain = self._config.get("root_domain")
        if not root_domain:
            raise ConfigurationError("Required field 'root_domain' is missing")
        if not isinstance(root_domain, str):
            raise ConfigurationError("Field 'root_domain' must be a non-empty string")
        self._config["root_domain"] = root_domain.strip().rstrip(".").lower()

        sub_roles = self._config.get("sub_roles") or []
        discover_role = self._config.get("discover_role")
        if sub_roles and discover_role:
            raise ConfigurationError(
                "Fields 'sub_roles' and 'discover_role' are mutually exclusive"
            )
        if not sub_roles and not discover_role:
            raise ConfigurationError(
                "Either 'sub_roles' or 'discover_role' must be configured"
            )
        if sub_roles:
            if not isinstance(sub_roles, list) or not all(
                isinstance(role, str) and role for role in sub_roles
            ):
                raise ConfigurationError("Field 'sub_roles' must be a list of role ARNs")
        elif not isinstance(discover_role, str):
            raise ConfigurationError("Field 'discover_role' must be a non-empty string")

        regions = self._config.get("regions")
        if regions is not None:
            if not isinstance(regions, list) or not all(
                isinstance(region, str) and region for region in regions
            ):
                raise ConfigurationError("Field 'regions' must be a list of region names")

        interval = self._config["interval_seconds"]
        if not isinstance(interval, int) or isinstance(interval, bool) or interval <= 0:
            raise ConfigurationError("Field 'interval_seconds' must be a positive integer")

        backoff = self._config["discovery_backoff"]
        if (
            not isinstance(backoff, (list, tuple))
            or len(backoff) != 2
            or not all(isinstance(b, (int, float)) and b >= 0 for b in backoff)
            or backoff[0] > backoff[1]
        ):
            raise ConfigurationError(
                "Field 'discovery_backoff' must be [min, max] seconds with min <= max"
            )

        for key in ("dry_run", "once"):
            if not isinstance(self._config[key], bool):
                raise ConfigurationError(f"Field '{key}' must be a boolean")

    def _set_nested_value(self, key_path: str, value: Any) -> None:
        """Set nested configuration value using dot notation.

        Args:
            key_path: Dot-separated key path (e.g., 'aws.profile_name')
            value: Value to set
        """
        keys = key_path.split(".")
        current = self._config

        for key in keys[:-1]:
            if key not in current or not isinstance(current[key], dict):
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Args:
            key_path: Dot-separated key path (e.g., 'aws.profile_name')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        current = self._config

        try:
            for key in keys:
                current = current[key]
            return current
        except (KeyError, TypeError):
            return default

    def get_root_domain(self) -> str:
        """Get the root domain, lowercased and without trailing dot."""
        return self._config["root_domain"]

    def get_root_role(self) -> Optional[str]:
        """Get the role to assume for root zone access, if any."""
        return self._config.get("root_role") or None

    def get_sub_roles(self) -> List[str]:
        """Get explicitly configured subordinate roles."""
        return list(self._config.get("sub_roles") or [])

    def get_discover_role(self) -> Optional[str]:
        """Get the role name (or ARN template) used for discovered accounts."""
        return self._config.get("discover_role") or None

    def is_discovery_mode(self) -> bool:
        """Whether accounts are discovered from the organization."""
        return self.get_discover_role() is not None

    def get_regions(self) -> List[str]:
        """Get configured certificate regions (empty means default region)."""
        return list(self._config.get("regions") or [])

    def get_interval_seconds(self) -> int:
        """Get the sleep between reconciliation cycles."""
        return self._config["interval_seconds"]

    def get_discovery_backoff(self) -> Tuple[float, float]:
        """Get the randomized backoff range used after discovery failures."""
        low, high = self._config["discovery_backoff"]
        return float(low), float(high)

    def get_environment_tag(self) -> str:
        """Get the account tag key holding the environment label."""
        return self._config["environment_tag"]

    def get_session_name(self) -> str:
        """Get the RoleSessionName used when assuming roles."""
        return self._config["session_name"]

    def is_dry_run(self) -> bool:
        return self._config["dry_run"]

    def is_once(self) -> bool:
        return self._config["once"]

    def get_profile_name(self) -> Optional[str]:
        return self.get("aws.profile_name")

    def get_log_level(self) -> str:
        return str(self._config["log_level"]).upper()

    def to_dict(self) -> Dict[str, Any]:
        """Get complete configuration as dictionary.

        Returns:
            Complete configuration dictionary
        """
        return self._config.copy()
