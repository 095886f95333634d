"""Configuration management for the wheel detection engine.

Settings come from three layers, highest precedence first:

1. Environment variables (``WHEEL_`` prefix, e.g. ``WHEEL_CACHE_TTL_SECONDS``)
2. An optional YAML file (``~/.wheel_engine/config.yaml`` by default)
3. Built-in defaults

Example:
    >>> from src.config import load_settings
    >>> settings = load_settings()
    >>> settings.cache_ttl_seconds
    300
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import constants

logger = logging.getLogger(__name__)

ENV_PREFIX = "WHEEL_"
VALID_RISK_TOLERANCES = ("conservative", "moderate", "aggressive")


class ConfigurationError(Exception):
    """Exception raised for configuration errors."""

    pass


class EngineSettings(BaseSettings):
    """Tunable settings for the detector, ledger and position cache.

    Attributes:
        cache_ttl_seconds: Position cache time-to-live
        risk_tolerance: Default risk tolerance when callers give none
        near_expiry_days: Expiry window treated as high assignment risk
        moderate_expiry_days: Expiry window treated as moderate assignment risk
        long_horizon_days: Average DTE above which the horizon bonus applies
        concentration_threshold_pct: Portfolio share that flags concentration
        elevated_volatility: Implied volatility considered elevated
        default_lot_shares: Shares assumed for lots with missing history
    """

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, case_sensitive=False)

    cache_ttl_seconds: int = 300
    risk_tolerance: str = "moderate"
    near_expiry_days: int = constants.NEAR_EXPIRY_DAYS
    moderate_expiry_days: int = constants.MODERATE_EXPIRY_DAYS
    long_horizon_days: int = constants.LONG_HORIZON_DAYS
    concentration_threshold_pct: float = constants.CONCENTRATION_THRESHOLD_PCT
    elevated_volatility: float = constants.ELEVATED_VOLATILITY
    default_lot_shares: int = constants.DEFAULT_LOT_SHARES

    @field_validator("cache_ttl_seconds", "default_lot_shares")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("risk_tolerance")
    @classmethod
    def _known_tolerance(cls, value: str) -> str:
        value = value.lower()
        if value not in VALID_RISK_TOLERANCES:
            raise ValueError(
                f"must be one of: {', '.join(VALID_RISK_TOLERANCES)}"
            )
        return value

    @field_validator("concentration_threshold_pct")
    @classmethod
    def _percentage(cls, value: float) -> float:
        if not 0 < value <= 100:
            raise ValueError("must be between 0 and 100")
        return value


def get_default_config_path() -> Path:
    """Get default configuration file path (~/.wheel_engine/config.yaml)."""
    return Path.home() / ".wheel_engine" / "config.yaml"


def _read_yaml(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path) as f:
            file_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to load configuration file: {e}") from e

    if file_config is None:
        return {}
    if not isinstance(file_config, dict):
        raise ConfigurationError(
            f"Configuration file {config_path} must contain a mapping"
        )
    # Accept both a flat file and one nested under an "engine" key
    return dict(file_config.get("engine", file_config))


def load_settings(path: Optional[Path] = None) -> EngineSettings:
    """Load settings from file, environment variables and defaults.

    Args:
        path: Optional path to a YAML config file

    Returns:
        EngineSettings instance

    Raises:
        ConfigurationError: If the file or any value is invalid
    """
    config_path = path or get_default_config_path()
    file_config: dict[str, Any] = {}

    if config_path.exists():
        file_config = _read_yaml(config_path)
        logger.debug(f"Loaded configuration from {config_path}")
    else:
        logger.debug(f"Configuration file not found at {config_path}, using defaults")

    # Constructor kwargs outrank env vars in pydantic-settings; drop file
    # keys the environment already sets so env keeps precedence.
    for key in list(file_config):
        if os.getenv(f"{ENV_PREFIX}{key.upper()}") is not None:
            file_config.pop(key)

    try:
        return EngineSettings(**file_config)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def save_settings(settings: EngineSettings, path: Optional[Path] = None) -> Path:
    """Save settings to a YAML file.

    Args:
        settings: Settings to persist
        path: Optional destination (default: ~/.wheel_engine/config.yaml)

    Returns:
        The path written

    Raises:
        ConfigurationError: If the file cannot be written
    """
    config_path = path or get_default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(config_path, "w") as f:
            yaml.safe_dump({"engine": settings.model_dump()}, f, default_flow_style=False)
    except OSError as e:
        raise ConfigurationError(f"Failed to save configuration: {e}") from e
    logger.info(f"Configuration saved to {config_path}")
    return config_path
