"""
Core module for musics-client.

This module provides the foundational components used throughout the package:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - storage: Durable key/value storage (the client's localStorage)
    - cache: Time-boxed snapshot cache for gateway collections
    - notifications: Auto-dismissing toast queue
    - logger: Logging system with multiple outputs

Usage:
    from musics_client.core import (
        Config, load_config,
        SQLiteStorage, TTLCache,
        setup_logging, get_logger,
        MusicsClientError, NetworkError, ServerError
    )
"""

from musics_client.core.cache import CATALOG_KEY, USERS_KEY, TTLCache
from musics_client.core.config import (
    ApiConfig,
    CacheConfig,
    Config,
    LoggingConfig,
    NotificationsConfig,
    PlayerConfig,
    StorageConfig,
    load_config,
)
from musics_client.core.exceptions import (
    AuthError,
    ConfigError,
    MusicsClientError,
    NetworkError,
    PlaybackError,
    ServerError,
    StorageError,
    ValidationError,
)
from musics_client.core.logger import (
    get_logger,
    log_sync_failure,
    setup_logging,
    shutdown_logging,
)
from musics_client.core.notifications import Severity, Toast, ToastQueue
from musics_client.core.storage import MemoryStorage, SQLiteStorage, Storage

__all__ = [
    # Config
    "Config",
    "ApiConfig",
    "CacheConfig",
    "StorageConfig",
    "PlayerConfig",
    "NotificationsConfig",
    "LoggingConfig",
    "load_config",
    # Storage
    "Storage",
    "SQLiteStorage",
    "MemoryStorage",
    # Cache
    "TTLCache",
    "CATALOG_KEY",
    "USERS_KEY",
    # Notifications
    "Severity",
    "Toast",
    "ToastQueue",
    # Exceptions
    "MusicsClientError",
    "ConfigError",
    "StorageError",
    "NetworkError",
    "PlaybackError",
    "ServerError",
    "AuthError",
    "ValidationError",
    # Logging
    "setup_logging",
    "get_logger",
    "log_sync_failure",
    "shutdown_logging",
]
