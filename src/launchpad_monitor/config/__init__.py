"""Configuration management for Launchpad Monitor."""

from launchpad_monitor.config.loader import ConfigurationError, load_config
from launchpad_monitor.config.settings import MonitorSettings

__all__ = [
    "ConfigurationError",
    "MonitorSettings",
    "load_config",
]
