"""Configuration loader for DeskPilot.

Loads configuration from YAML files and environment variables.
Environment variables override YAML values using the DESKPILOT_ prefix.
Nested keys use double underscores: DESKPILOT_AGENT__MAX_ITERATIONS=20

DESKPILOT_MODEL is a shorthand for DESKPILOT_LLM__MODEL.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ENV_PREFIX = "DESKPILOT_"
MODEL_ENV_VAR = "DESKPILOT_MODEL"


class AgentSettings(BaseModel):
    """Agent loop and executor settings."""

    max_iterations: int = Field(default=100, ge=1, le=10000, description="Iteration budget per run")
    stabilization_ms: int = Field(default=500, ge=0, le=60000, description="Pause after each action")
    click_settle_ms: int = Field(default=50, ge=0, le=5000, description="Delay between move and click")
    require_absolute_paths: bool = Field(default=True, description="Reject relative file paths")


class LLMConfig(BaseModel):
    """LLM provider settings."""

    provider: str = Field(default="anthropic", pattern="^(anthropic|openai)$")
    model: str = Field(default="claude-sonnet-4-20250514")
    max_tokens: int = Field(default=1024, ge=1, le=100000)
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)


class CaptureConfig(BaseModel):
    """Screen capture settings."""

    quality: int = Field(default=80, ge=1, le=100, description="JPEG quality")
    max_width: int | None = Field(default=None, ge=320, description="Downscale wider captures")


class ObserverConfig(BaseModel):
    """Observer/web UI settings."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8080, ge=1, le=65535)


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = Field(default="readable", pattern="^(readable|json)$")


class Config(BaseModel):
    """Root configuration model."""

    agent: AgentSettings = Field(default_factory=AgentSettings)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    observer: ObserverConfig = Field(default_factory=ObserverConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _get_env_value(key: str) -> str | None:
    """Get environment variable with DESKPILOT_ prefix."""
    env_key = f"{ENV_PREFIX}{key.upper()}"
    return os.environ.get(env_key)


def _convert(env_value: str, current: Any) -> Any:
    """Convert an environment string to the type of the current value."""
    if isinstance(current, bool):
        return env_value.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        return int(env_value)
    if isinstance(current, float):
        return float(env_value)
    return env_value


def _apply_env_overrides(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Apply environment variable overrides to config data.

    Environment variables use DESKPILOT_ prefix with double underscores for nesting.
    Example: DESKPILOT_AGENT__MAX_ITERATIONS=20 sets agent.max_iterations to 20
    """
    result = data.copy()

    for key, value in result.items():
        env_key = f"{prefix}__{key}" if prefix else key

        if isinstance(value, dict):
            result[key] = _apply_env_overrides(value, env_key)
        else:
            env_value = _get_env_value(env_key)
            if env_value is not None:
                result[key] = _convert(env_value, value)

    return result


def _deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Deep merge updates into a copy of base."""
    result = base.copy()

    for key, value in updates.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def default_config_path() -> Path:
    """Path of the bundled ``configs/default.yaml``."""
    project_root = Path(__file__).parent.parent.parent
    return project_root / "configs" / "default.yaml"


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None, uses default.yaml
            when present and built-in defaults otherwise.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist.
        ValidationError: If config values are invalid.
    """
    if config_path is None:
        path = default_config_path()
        explicit = False
    else:
        path = Path(config_path)
        explicit = True

    file_data: dict[str, Any] = {}
    if path.exists():
        with open(path) as f:
            file_data = yaml.safe_load(f) or {}
        logger.debug(f"Loaded config file {path}")
    elif explicit:
        raise FileNotFoundError(f"Config file not found: {path}")

    # Start from defaults so every key can be overridden from the environment
    data = _deep_merge(Config().model_dump(), file_data)
    data = _apply_env_overrides(data)

    model_override = os.environ.get(MODEL_ENV_VAR)
    if model_override:
        data["llm"]["model"] = model_override

    return Config.model_validate(data)


def get_default_config() -> Config:
    """Get default configuration without loading from file."""
    return Config()

