"""Logging setup."""

from __future__ import annotations

import logging

from tradesign.config_loader import EnvironmentConfig
from tradesign.constants import LOG_FORMAT, LOG_FORMAT_JSON, LogFormat


def setup_logging(config: EnvironmentConfig | None = None) -> None:
    """Configure root logging from the environment config."""
    config = config or EnvironmentConfig()
    fmt = LOG_FORMAT_JSON if config.log_format == LogFormat.JSON else LOG_FORMAT
    logging.basicConfig(level=getattr(logging, config.log_level.value), format=fmt)
