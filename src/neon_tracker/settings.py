"""
Settings Management Module

Process-level defaults for every tracker created in this process:
- Environment variable overrides (NEON_TRACKER_*)
- Optional YAML settings file
- YAML option files for per-player options
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_TRACK_URL = "http://tracker.neon-images.com/v2/track"


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries, values from ``override`` win."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class TrackerSettings(BaseSettings):
    """
    Process-wide tracker settings.

    Configuration hierarchy (lowest to highest precedence):
    1. Field defaults
    2. YAML settings file passed to ``load_from_yaml``
    3. Environment variables (NEON_TRACKER_*)

    Examples:
        >>> settings = get_settings()
        >>> settings.track_url
        'http://tracker.neon-images.com/v2/track'
    """

    model_config = SettingsConfigDict(
        env_prefix="NEON_TRACKER_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    track_url: str = DEFAULT_TRACK_URL
    tracking_type: str = "BRIGHTCOVE"
    wait_for_parent_millis: int = 5000
    time_update_interval: int = 25
    show_console_logging: bool = False

    http: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def load_from_yaml(cls, config_path: Path | None = None) -> "TrackerSettings":
        """
        Load settings from a YAML file.

        Environment variables still take precedence over file values.

        Args:
            config_path: Path to settings file; defaults are used when missing

        Returns:
            TrackerSettings instance
        """
        if config_path is None or not Path(config_path).exists():
            return cls()

        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}

        env_settings = cls()
        explicit_env = env_settings.model_dump(exclude_unset=True)
        return cls(**deep_merge(config_data, explicit_env))


@lru_cache
def get_settings(config_path: Path | None = None) -> TrackerSettings:
    """
    Get cached settings instance.

    Args:
        config_path: Optional path to a YAML settings file

    Returns:
        TrackerSettings instance
    """
    return TrackerSettings.load_from_yaml(config_path)


def reload_settings() -> TrackerSettings:
    """Reload settings by clearing cache."""
    get_settings.cache_clear()
    return get_settings()


def load_options(path: str | Path) -> dict[str, Any]:
    """Read a YAML file of per-player options.

    The file holds the same nested mapping accepted by
    ``TrackerConfig.from_options`` (``publisher``, ``tracking``, ``dev``).

    Args:
        path: Path to the YAML file

    Returns:
        Options dictionary (empty for an empty file)
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Options file must contain a mapping, got {type(data).__name__}")
    return data


__all__ = [
    "DEFAULT_TRACK_URL",
    "TrackerSettings",
    "deep_merge",
    "get_settings",
    "reload_settings",
    "load_options",
]
