"""Configuration loader with Pydantic validation and environment variable interpolation."""

from __future__ import annotations

import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables at module level
load_dotenv(find_dotenv(usecwd=True))

from tradesign.constants import (
    DEFAULT_LATE_REPORT_LAG_SECONDS,
    DEFAULT_MAX_WORKERS,
    LogFormat,
    LogLevel,
)


def interpolate_env_vars(value: Any) -> Any:
    """
    Interpolate environment variables in string values.

    Supports formats:
    - ${VAR_NAME} - replaced by the variable, empty string if unset
    - ${VAR_NAME:default} - optional with default value
    """
    if not isinstance(value, str):
        return value

    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)

        env_value = os.environ.get(var_name)

        if env_value is not None:
            return env_value
        elif default is not None:
            return default
        else:
            return ""

    return re.sub(pattern, replacer, value)


def process_config_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively process config dict to interpolate env vars."""
    result = {}
    for key, value in data.items():
        if isinstance(value, dict):
            result[key] = process_config_dict(value)
        elif isinstance(value, list):
            result[key] = [
                process_config_dict(item) if isinstance(item, dict) else interpolate_env_vars(item)
                for item in value
            ]
        else:
            result[key] = interpolate_env_vars(value)
    return result


# ============================================
# Pydantic Configuration Models
# ============================================


class EnvironmentConfig(BaseModel):
    """Runtime settings."""

    log_level: LogLevel = LogLevel.INFO
    log_format: LogFormat = LogFormat.TEXT


class ClassificationConfig(BaseModel):
    """Trade classification settings."""

    # Trade prints lag the quote book; quotes are looked up this far before the print
    late_report_lag_seconds: float = DEFAULT_LATE_REPORT_LAG_SECONDS
    max_workers: int = DEFAULT_MAX_WORKERS

    @field_validator("late_report_lag_seconds")
    @classmethod
    def validate_lag(cls, v: float) -> float:
        """Validate lag is non-negative."""
        if v < 0:
            raise ValueError(f"Late-report lag must be non-negative, got: {v}")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        """Validate at least one worker."""
        if v < 1:
            raise ValueError(f"max_workers must be at least 1, got: {v}")
        return v

    @property
    def late_report_lag(self) -> timedelta:
        return timedelta(seconds=self.late_report_lag_seconds)

    @property
    def is_parallel(self) -> bool:
        """Check if partitions run on a worker pool."""
        return self.max_workers > 1


class AppConfig(BaseModel):
    """Root application configuration."""

    environment: EnvironmentConfig = Field(default_factory=EnvironmentConfig)
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)


# ============================================
# Configuration Loader
# ============================================


class ConfigLoader:
    """Load and validate configuration from YAML files with env var interpolation."""

    def __init__(self, config_path: str | Path) -> None:
        """
        Initialize config loader.

        Args:
            config_path: Path to the YAML configuration file.
        """
        self.config_path = Path(config_path)
        self._config: AppConfig | None = None

    def load(self) -> AppConfig:
        """
        Load and validate configuration.

        Returns:
            Validated AppConfig instance.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            yaml.YAMLError: If YAML is invalid.
            pydantic.ValidationError: If config validation fails.
        """
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)

        if raw_config is None:
            raw_config = {}

        processed_config = process_config_dict(raw_config)

        self._config = AppConfig.model_validate(processed_config)

        return self._config

    @property
    def config(self) -> AppConfig:
        """Get loaded config, loading if necessary."""
        if self._config is None:
            return self.load()
        return self._config

    def reload(self) -> AppConfig:
        """Force reload configuration from disk."""
        self._config = None
        return self.load()


def load_config(config_path: str | Path) -> AppConfig:
    """
    Convenience function to load configuration.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Validated AppConfig instance.
    """
    loader = ConfigLoader(config_path)
    return loader.load()


def load_config_with_overrides(
    config_path: str | Path,
    *,
    lag_seconds: float | None = None,
    max_workers: int | None = None,
    log_level: str | None = None,
) -> AppConfig:
    """
    Load configuration with caller overrides.

    Overridden values go through the same validation as file values.

    Args:
        config_path: Path to the YAML configuration file.
        lag_seconds: Override the late-report lag.
        max_workers: Override the partition worker count.
        log_level: Override the log level.

    Returns:
        Validated AppConfig instance with overrides applied.
    """
    config = load_config(config_path)

    classification_updates: dict[str, Any] = {}
    if lag_seconds is not None:
        classification_updates["late_report_lag_seconds"] = lag_seconds
    if max_workers is not None:
        classification_updates["max_workers"] = max_workers

    updates: dict[str, Any] = {}

    if classification_updates:
        updates["classification"] = ClassificationConfig.model_validate(
            {**config.classification.model_dump(), **classification_updates}
        )

    if log_level is not None:
        updates["environment"] = config.environment.model_copy(
            update={"log_level": LogLevel(log_level.upper())}
        )

    if updates:
        return config.model_copy(update=updates)

    return config
