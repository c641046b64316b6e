"""Main configuration aggregator for the memberlock engine."""

import json
from pathlib import Path
from typing import Any

import yaml

from memberlock.core.exceptions import ConfigurationError
from memberlock.core.logging import setup_logging
from memberlock.core.types.locking import GlobalConfig

from .locker import LockerSettings, LoggingSettings


class Config:
    """
    Configuration aggregator.

    Collects the domain settings sections and builds the validated
    ``GlobalConfig`` records handed to the engines.
    """

    def __init__(self, config_file: str | None = None):
        """
        Initialize configuration from environment and optional config file.

        Args:
            config_file: Optional path to YAML/JSON config file
        """
        self.locker = LockerSettings()
        self.logging = LoggingSettings()

        if config_file:
            self.load_from_file(config_file)

    def load_from_file(self, config_file: str) -> None:
        """Load configuration from YAML or JSON file."""
        config_path = Path(config_file)
        self._validate_config_file(config_path)

        config_data = self._parse_config_file(config_path) or {}
        self._apply_config_data(config_data)

    def _validate_config_file(self, config_path: Path) -> None:
        """Validate config file exists and has supported format."""
        if not config_path.exists():
            raise ConfigurationError(
                f"Config file not found: {config_path}", config_file=str(config_path)
            )

        if config_path.suffix not in [".yaml", ".yml", ".json"]:
            raise ConfigurationError(
                f"Unsupported config file format: {config_path.suffix}",
                config_file=str(config_path),
            )

    def _parse_config_file(self, config_path: Path) -> dict[str, Any]:
        """Parse config file based on format."""
        try:
            with open(config_path) as file_handle:
                if config_path.suffix in [".yaml", ".yml"]:
                    return yaml.safe_load(file_handle)
                return json.load(file_handle)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to parse config file {config_path}: {e!s}",
                config_file=str(config_path),
            ) from e

    def _apply_config_data(self, config_data: dict[str, Any]) -> None:
        """Apply configuration data to domain configs."""
        config_mappings = {
            "locker": self.locker,
            "logging": self.logging,
        }

        for section_name, config_obj in config_mappings.items():
            self._update_config_section(config_data, section_name, config_obj)

    def _update_config_section(
        self, config_data: dict[str, Any], section_name: str, config_obj: Any
    ) -> None:
        """Update a single config section if it exists in the data."""
        if section_name not in config_data:
            return

        for key, value in config_data[section_name].items():
            if not hasattr(config_obj, key):
                raise ConfigurationError(
                    f"Unknown setting {section_name}.{key}", config_section=section_name
                )
            try:
                setattr(config_obj, key, value)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for {section_name}.{key}: {e!s}",
                    config_section=section_name,
                ) from e

    def setup_logging(self) -> None:
        """Configure structlog from the logging section."""
        setup_logging(
            environment=self.logging.environment,
            log_level=self.logging.level,
            log_file=self.logging.file,
        )

    def build_global_config(
        self,
        deposit_asset: str,
        credit_asset: str,
        lp_asset: str | None = None,
        stable_asset: str | None = None,
        stable_path: list[str] | None = None,
        **overrides: Any,
    ) -> GlobalConfig:
        """Build the engine ``GlobalConfig`` from settings plus deployment addresses."""
        values: dict[str, Any] = self.locker.model_dump()
        values.update(
            deposit_asset=deposit_asset,
            credit_asset=credit_asset,
            lp_asset=lp_asset,
            stable_asset=stable_asset,
            stable_path=stable_path or [],
        )
        values.update(overrides)
        try:
            return GlobalConfig(**values)
        except ValueError as e:
            raise ConfigurationError(f"Invalid engine configuration: {e!s}") from e


_config_instance: Config | None = None


def get_config(config_file: str | None = None, reload: bool = False) -> Config:
    """
    Get or create the global configuration instance.

    Args:
        config_file: Optional path to config file
        reload: Force reload of configuration

    Returns:
        Global Config instance
    """
    global _config_instance

    if _config_instance is None or reload:
        _config_instance = Config(config_file=config_file)

    return _config_instance
