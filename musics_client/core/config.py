"""
Configuration management for musics-client.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml, with environment
variable overrides (a .env file in the working directory is honored).

The configuration contains:
    - Backend base URL and request timeout
    - Freshness windows for the catalog and users caches
    - Directory for the local state database and log files
    - Default player volume
    - Toast auto-dismiss duration

Configuration File Location:
    config.yaml is looked up in the current working directory. Unlike the
    credentials of an OAuth client, every value here has a usable default,
    so a missing file is not an error unless a path was given explicitly.

Example config.yaml:
    api:
      base_url: "https://musics-system-2.onrender.com"
      timeout: 30

    cache:
      catalog_ttl: 300    # seconds
      users_ttl: 600

    storage:
      directory: "~/.musics-client"

    player:
      default_volume: 0.7

    notifications:
      toast_duration: 5.0

    logging:
      level: "INFO"
      directory: null     # null disables log files

Environment Overrides:
    MUSICS_API_BASE      -> api.base_url
    MUSICS_STATE_DIR     -> storage.directory
    MUSICS_LOG_LEVEL     -> logging.level
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from musics_client.core.exceptions import ConfigError


CONFIG_FILENAME = "config.yaml"

DEFAULT_API_BASE = "https://musics-system-2.onrender.com"
DEFAULT_TIMEOUT = 30.0
DEFAULT_CATALOG_TTL = 5 * 60
DEFAULT_USERS_TTL = 10 * 60
DEFAULT_STATE_DIR = "~/.musics-client"
DEFAULT_VOLUME = 0.7
DEFAULT_TOAST_DURATION = 5.0
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ApiConfig:
    """
    Backend connection settings.

    Attributes:
        base_url: Root URL of the REST backend, without trailing slash.
        timeout: Seconds passed to requests as the per-request timeout.
    """
    base_url: str
    timeout: float


@dataclass(frozen=True)
class CacheConfig:
    """
    Freshness windows, in seconds, for the gateway snapshots.

    Attributes:
        catalog_ttl: Window for GET /musics. Default 300.
        users_ttl: Window for GET /users. Default 600.
    """
    catalog_ttl: float
    users_ttl: float


@dataclass(frozen=True)
class StorageConfig:
    """
    Attributes:
        directory: Expanded absolute path holding state.db.
    """
    directory: Path

    @property
    def database_path(self) -> Path:
        return self.directory / "state.db"


@dataclass(frozen=True)
class PlayerConfig:
    default_volume: float


@dataclass(frozen=True)
class NotificationsConfig:
    toast_duration: float


@dataclass(frozen=True)
class LoggingConfig:
    """
    Attributes:
        level: Console log level name.
        directory: Where log files go, or None for console only.
    """
    level: str
    directory: Path | None


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable.

    Example:
        config = load_config()
        print(f"Backend: {config.api.base_url}")
        print(f"Catalog cached for {config.cache.catalog_ttl}s")
    """
    api: ApiConfig
    cache: CacheConfig
    storage: StorageConfig
    player: PlayerConfig
    notifications: NotificationsConfig
    logging: LoggingConfig


def load_config(config_path: Path | None = None, use_env: bool = True) -> Config:
    """
    Load and validate configuration.

    Args:
        config_path: Optional explicit path to a config file. When given the
                     file must exist. When None, CWD/config.yaml is used if
                     present and defaults apply otherwise.
        use_env: Apply .env and MUSICS_* environment overrides. Tests pass
                 False to stay independent of the host environment.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit file is missing, the YAML is invalid,
                     or a value fails validation.
    """
    raw_config: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(
                f"Configuration file not found: {config_path}",
                details={"file_path": str(config_path)}
            )
        raw_config = _read_yaml(config_path)
    else:
        default_path = Path.cwd() / CONFIG_FILENAME
        if default_path.exists():
            raw_config = _read_yaml(default_path)

    if use_env:
        load_dotenv()
        raw_config = _apply_environment(raw_config)

    return Config(
        api=_parse_api_config(_section(raw_config, "api")),
        cache=_parse_cache_config(_section(raw_config, "cache")),
        storage=_parse_storage_config(_section(raw_config, "storage")),
        player=_parse_player_config(_section(raw_config, "player")),
        notifications=_parse_notifications_config(_section(raw_config, "notifications")),
        logging=_parse_logging_config(_section(raw_config, "logging")),
    )


def _read_yaml(config_path: Path) -> dict[str, Any]:
    """Read and parse a YAML file into a dictionary."""
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # An empty file parses to None
    if raw_config is None:
        return {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return raw_config


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a section dictionary, {} when absent."""
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _apply_environment(raw_config: dict[str, Any]) -> dict[str, Any]:
    """
    Overlay MUSICS_* environment variables on the raw configuration.

    Environment values take precedence over file values so a deployment
    can point at another backend without editing config.yaml.
    """
    env_mappings = {
        "MUSICS_API_BASE": ("api", "base_url"),
        "MUSICS_STATE_DIR": ("storage", "directory"),
        "MUSICS_LOG_LEVEL": ("logging", "level"),
    }

    merged = {key: dict(value) if isinstance(value, dict) else value
              for key, value in raw_config.items()}

    for env_var, (section, field_name) in env_mappings.items():
        value = os.getenv(env_var)
        if value:
            target = merged.get(section)
            if not isinstance(target, dict):
                target = {}
                merged[section] = target
            target[field_name] = value

    return merged


def _positive_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(
            f"'{field_name}' must be a positive number",
            details={"field": field_name, "value": value}
        )
    return float(value)


def _parse_api_config(section: dict[str, Any]) -> ApiConfig:
    base_url = section.get("base_url", DEFAULT_API_BASE)

    if not isinstance(base_url, str) or not base_url.strip():
        raise ConfigError(
            "'api.base_url' must be a non-empty string",
            details={"field": "api.base_url"}
        )

    base_url = base_url.strip()
    if not base_url.startswith(("http://", "https://")):
        raise ConfigError(
            "'api.base_url' must start with http:// or https://",
            details={"field": "api.base_url", "value": base_url}
        )

    timeout = _positive_number(section.get("timeout", DEFAULT_TIMEOUT), "api.timeout")

    return ApiConfig(base_url=base_url.rstrip("/"), timeout=timeout)


def _parse_cache_config(section: dict[str, Any]) -> CacheConfig:
    return CacheConfig(
        catalog_ttl=_positive_number(
            section.get("catalog_ttl", DEFAULT_CATALOG_TTL), "cache.catalog_ttl"
        ),
        users_ttl=_positive_number(
            section.get("users_ttl", DEFAULT_USERS_TTL), "cache.users_ttl"
        ),
    )


def _parse_storage_config(section: dict[str, Any]) -> StorageConfig:
    directory = section.get("directory", DEFAULT_STATE_DIR)

    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'storage.directory' must be a non-empty string",
            details={"field": "storage.directory"}
        )

    # Expand ~ and make absolute; the directory is created on first open
    return StorageConfig(directory=Path(directory.strip()).expanduser().resolve())


def _parse_player_config(section: dict[str, Any]) -> PlayerConfig:
    volume = section.get("default_volume", DEFAULT_VOLUME)

    if isinstance(volume, bool) or not isinstance(volume, (int, float)) or not 0 <= volume <= 1:
        raise ConfigError(
            "'player.default_volume' must be a number between 0 and 1",
            details={"field": "player.default_volume", "value": volume}
        )

    return PlayerConfig(default_volume=float(volume))


def _parse_notifications_config(section: dict[str, Any]) -> NotificationsConfig:
    return NotificationsConfig(
        toast_duration=_positive_number(
            section.get("toast_duration", DEFAULT_TOAST_DURATION),
            "notifications.toast_duration"
        )
    )


def _parse_logging_config(section: dict[str, Any]) -> LoggingConfig:
    level = section.get("level", "INFO")

    if not isinstance(level, str) or level.upper() not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"'logging.level' must be one of {', '.join(VALID_LOG_LEVELS)}",
            details={"field": "logging.level", "value": level}
        )

    directory = section.get("directory")
    log_dir = None
    if directory is not None:
        if not isinstance(directory, str) or not directory.strip():
            raise ConfigError(
                "'logging.directory' must be a non-empty string or null",
                details={"field": "logging.directory"}
            )
        log_dir = Path(directory.strip()).expanduser().resolve()

    return LoggingConfig(level=level.upper(), directory=log_dir)
