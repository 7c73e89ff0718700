"""Configuration package."""

from factmastery.config.settings import (
    Settings,
    get_settings,
    load_yaml_config,
    settings,
    yaml_config,
)

__all__ = [
    "Settings",
    "get_settings",
    "load_yaml_config",
    "settings",
    "yaml_config",
]
