"""
Configuration management for softusb.

Loads logging settings from YAML.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


VALID_LOG_LEVELS = {"debug", "info", "warn", "warning", "error"}
VALID_LOG_FORMATS = {"text", "json"}


class ConfigError(Exception):
    """Error in configuration file structure."""

    pass


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "info"
    format: str = "text"
    output: str = "stderr"  # "stderr", "stdout" or a file path


@dataclass
class SoftUSBConfig:
    """Main configuration container."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SoftUSBConfig:
        """Create configuration from dictionary."""
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping")
        section = data.get("logging") or {}
        if not isinstance(section, dict):
            raise ConfigError("'logging' section must be a mapping")
        try:
            return cls(logging=LoggingConfig(**section))
        except TypeError as e:
            raise ConfigError(f"Invalid logging section: {e}") from e


def load_config(path: str | Path | None = None) -> SoftUSBConfig:
    """
    Load configuration from a YAML file, or defaults when path is None.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the config file is invalid YAML.
        ConfigError: If the file has the wrong structure.
    """
    if path is None:
        return SoftUSBConfig()

    text = Path(path).read_text()
    return SoftUSBConfig.from_dict(yaml.safe_load(text) or {})


def validate_config(config: SoftUSBConfig) -> list[str]:
    """
    Validate configuration and return list of errors.

    Args:
        config: Configuration to validate.

    Returns:
        List of error messages. Empty list if valid.
    """
    errors: list[str] = []

    if str(config.logging.level).lower() not in VALID_LOG_LEVELS:
        errors.append(f"Invalid log level: {config.logging.level}")

    if config.logging.format not in VALID_LOG_FORMATS:
        errors.append(f"Invalid log format: {config.logging.format}")

    if not config.logging.output:
        errors.append("Log output must not be empty")

    return errors
