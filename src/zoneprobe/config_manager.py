"""Configuration management module.

This module loads zoneprobe configuration from a TOML file. Everything that
varies per deployment lives here rather than in code: group sizes, network
ranges, timeouts, and the per-provider tables (images, regions without
zonal placement, fault-domain overrides).

Configuration is optional. A missing file yields the defaults below.

Example config.toml:

    default_provider = "azure"
    instance_timeout = 1800

    [azure]
    zoneless_regions = ["westus", "northcentralus"]
    default_fault_domain_count = 3

    [azure.fault_domain_overrides]
    uksouth = 2
"""

import logging
import os
import tempfile
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from zoneprobe.errors import ConfigError

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("azure", "gcp")


@dataclass
class ProviderSettings:
    """Settings for a single cloud provider back end."""

    image: str
    admin_username: str = "probe"
    zoneless_regions: list[str] = field(default_factory=list)
    default_fault_domain_count: int = 3
    fault_domain_overrides: dict[str, int] = field(default_factory=dict)
    update_domain_count: int = 20
    local_ssd_count: int = 4

    def fault_domain_count(self, region: str) -> int:
        """Fault-domain count for a region (override table, else default)."""
        return self.fault_domain_overrides.get(region.lower(), self.default_fault_domain_count)

    def is_zoneless(self, region: str) -> bool:
        """True if the region has no zonal placement."""
        return region.lower() in self.zoneless_regions


def _default_provider_settings() -> dict[str, ProviderSettings]:
    return {
        "azure": ProviderSettings(
            image="Debian:debian-12:12-gen2:latest",
            admin_username="probe",
            zoneless_regions=["westus", "northcentralus"],
            default_fault_domain_count=3,
            fault_domain_overrides={"uksouth": 2},
            update_domain_count=20,
        ),
        "gcp": ProviderSettings(
            image="debian-cloud/debian-12",
            # Availability domains of a group-placement policy
            default_fault_domain_count=8,
            local_ssd_count=4,
        ),
    }


@dataclass
class ProbeConfig:
    """zoneprobe configuration data."""

    default_provider: str = "azure"
    results_dir: str | None = None
    instance_timeout: int = 1800
    command_timeout: int = 300
    discovery_max_attempts: int = 3
    large_group_size: int = 16
    small_group_size: int = 8
    vnet_cidr: str = "10.0.0.0/16"
    subnet_cidr: str = "10.0.1.0/24"
    providers: dict[str, ProviderSettings] = field(default_factory=_default_provider_settings)

    def provider_settings(self, provider: str) -> ProviderSettings:
        """Settings table for a provider.

        Raises:
            ConfigError: If the provider is unknown
        """
        try:
            return self.providers[provider]
        except KeyError as e:
            raise ConfigError(f"No settings for provider: {provider}") from e

    def get_results_dir(self) -> Path:
        """Directory the results ledger is created in."""
        return Path(self.results_dir) if self.results_dir else Path(tempfile.gettempdir())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProbeConfig":
        """Create from a parsed TOML document.

        Raises:
            ConfigError: If a value has the wrong type or is out of range
        """
        config = cls()
        scalar_fields = {f.name for f in fields(cls)} - {"providers"}

        for key, value in data.items():
            if key in SUPPORTED_PROVIDERS:
                continue
            if key not in scalar_fields:
                logger.debug(f"Ignoring unknown config key: {key}")
                continue
            expected = type(getattr(config, key)) if getattr(config, key) is not None else str
            if not isinstance(value, expected) or isinstance(value, bool):
                raise ConfigError(
                    f"Invalid value for '{key}': expected {expected.__name__}, "
                    f"got {type(value).__name__}"
                )
            setattr(config, key, value)

        for provider in SUPPORTED_PROVIDERS:
            table = data.get(provider)
            if table is None:
                continue
            if not isinstance(table, dict):
                raise ConfigError(f"[{provider}] must be a table")
            config.providers[provider] = _merge_provider_settings(
                config.providers[provider], table, provider
            )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate value ranges.

        Raises:
            ConfigError: If any value is out of range
        """
        if self.default_provider not in SUPPORTED_PROVIDERS:
            raise ConfigError(
                f"Invalid default_provider: {self.default_provider}. "
                f"Supported: {', '.join(SUPPORTED_PROVIDERS)}"
            )
        for name in (
            "instance_timeout",
            "command_timeout",
            "discovery_max_attempts",
            "large_group_size",
            "small_group_size",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"'{name}' must be a positive integer")


def _merge_provider_settings(
    base: ProviderSettings, table: dict[str, Any], provider: str
) -> ProviderSettings:
    """Overlay a provider table from the config file on the defaults."""
    known = {f.name for f in fields(ProviderSettings)}
    values: dict[str, Any] = {}

    for key, value in table.items():
        if key not in known:
            logger.debug(f"Ignoring unknown config key: {provider}.{key}")
            continue
        values[key] = value

    if "zoneless_regions" in values:
        regions = values["zoneless_regions"]
        if not isinstance(regions, list) or not all(isinstance(r, str) for r in regions):
            raise ConfigError(f"{provider}.zoneless_regions must be a list of region names")
        values["zoneless_regions"] = [r.lower() for r in regions]

    if "fault_domain_overrides" in values:
        overrides = values["fault_domain_overrides"]
        if not isinstance(overrides, dict):
            raise ConfigError(f"{provider}.fault_domain_overrides must be a table")
        for region, count in overrides.items():
            if not isinstance(count, int) or isinstance(count, bool) or count <= 0:
                raise ConfigError(
                    f"{provider}.fault_domain_overrides.{region} must be a positive integer"
                )
        values["fault_domain_overrides"] = {r.lower(): c for r, c in overrides.items()}

    for key in ("default_fault_domain_count", "update_domain_count", "local_ssd_count"):
        if key in values:
            value = values[key]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ConfigError(f"{provider}.{key} must be a non-negative integer")

    for key in ("image", "admin_username"):
        if key in values and not isinstance(values[key], str):
            raise ConfigError(f"{provider}.{key} must be a string")

    merged = {f.name: getattr(base, f.name) for f in fields(ProviderSettings)}
    merged.update(values)
    return ProviderSettings(**merged)


class ConfigManager:
    """Locate and load the zoneprobe configuration file.

    Configuration is stored at ~/.zoneprobe/config.toml unless a path is
    passed explicitly or ZONEPROBE_CONFIG is set.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".zoneprobe"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Resolve the configuration file path.

        Args:
            custom_path: Explicit path from the command line

        Returns:
            Path to the configuration file (may not exist)
        """
        if custom_path:
            return Path(custom_path).expanduser()
        env_path = os.getenv("ZONEPROBE_CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> ProbeConfig:
        """Load configuration from file, applying environment overrides.

        Args:
            custom_path: Explicit path from the command line

        Returns:
            ProbeConfig (defaults if no file exists)

        Raises:
            ConfigError: If an explicit file is missing, unreadable or invalid
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            if custom_path:
                raise ConfigError(f"Config file not found: {config_path}")
            logger.debug(f"No config file at {config_path}, using defaults")
            config = ProbeConfig()
        else:
            try:
                with open(config_path, "rb") as f:
                    data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"Failed to parse config file {config_path}: {e}") from e
            except OSError as e:
                raise ConfigError(f"Failed to read config file {config_path}: {e}") from e
            logger.debug(f"Loaded config from {config_path}")
            config = ProbeConfig.from_dict(data)

        cls._apply_environment(config)
        return config

    @classmethod
    def _apply_environment(cls, config: ProbeConfig) -> None:
        """Apply ZONEPROBE_* environment overrides."""
        results_dir = os.getenv("ZONEPROBE_RESULTS_DIR")
        if results_dir:
            config.results_dir = results_dir

        timeout = os.getenv("ZONEPROBE_INSTANCE_TIMEOUT")
        if timeout:
            try:
                config.instance_timeout = int(timeout)
            except ValueError as e:
                raise ConfigError(
                    f"ZONEPROBE_INSTANCE_TIMEOUT must be an integer, got '{timeout}'"
                ) from e
            config.validate()


__all__ = ["ConfigManager", "ProbeConfig", "ProviderSettings", "SUPPORTED_PROVIDERS"]
