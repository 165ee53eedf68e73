"""Configuration management for DeskPilot."""

from deskpilot.config.loader import (
    Config,
    get_default_config,
    load_config,
)
from deskpilot.config.secrets import load_environment_secrets

__all__ = [
    "Config",
    "get_default_config",
    "load_config",
    "load_environment_secrets",
]
