"""
Configuration loading, persistence and change notification.
"""

from rebrand_tool.config.store import (
    DEFAULT_CONFIG_FILE,
    ENV_OVERRIDES,
    ConfigurationStore,
)
from rebrand_tool.config.service import ConfigChannel, ConfigurationService

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "ENV_OVERRIDES",
    "ConfigurationStore",
    "ConfigChannel",
    "ConfigurationService",
]
