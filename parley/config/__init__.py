"""Configuration for the Parley server."""

from .defaults import get_default_config
from .manager import ConfigChange, ConfigManager, create_config_manager
from .providers import ConfigProvider, LocalFileConfigProvider
from .schema import ConfigValidationError, deep_merge, validate_config
from .settings import Settings, settings

__all__ = [
    "settings",
    "Settings",
    "ConfigChange",
    "ConfigManager",
    "ConfigValidationError",
    "create_config_manager",
    "ConfigProvider",
    "LocalFileConfigProvider",
    "deep_merge",
    "validate_config",
    "get_default_config",
]
