"""
Durable local key/value storage for musics-client.

This is the client's equivalent of a browser's localStorage: a flat
namespace of string keys holding string values, surviving restarts.

Keys in use:
    user        JSON object of the signed-in user (id, email, name)
    token       Bearer token of the signed-in user
    adminUser   JSON object of the admin-area user (separate namespace)
    adminToken  Bearer token of the admin-area user
    deviceId    Anonymous guest handle

Implementations:
    SQLiteStorage   Thread-safe, single persistent connection, WAL journal.
    MemoryStorage   Dictionary-backed, for tests and throwaway sessions.

Usage:
    storage = SQLiteStorage(config.storage.database_path)
    storage.set_json("user", {"id": "u1", "email": "a@b.c"})
    storage.get_json("user")   # {"id": "u1", ...}
"""

import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from musics_client.core.exceptions import StorageError
from musics_client.core.logger import get_logger

logger = get_logger(__name__)


USER_KEY = "user"
TOKEN_KEY = "token"
ADMIN_USER_KEY = "adminUser"
ADMIN_TOKEN_KEY = "adminToken"
DEVICE_ID_KEY = "deviceId"

STORAGE_VERSION = 1


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS local_storage (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT
);
"""


class Storage(ABC):
    """
    Interface shared by all storage backends.

    Only get_item/set_item/remove_item/clear are backend-specific; the JSON
    helpers are built on top of them.
    """

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the stored string, or None when absent."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store a string value, replacing any previous one."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete a key. Missing keys are ignored."""

    @abstractmethod
    def clear(self) -> None:
        """Delete every key."""

    def get_json(self, key: str) -> Any | None:
        """
        Return the decoded JSON value for key.

        Malformed JSON is reported as missing (None) and logged, because
        every reader of stored session data must tolerate corruption.
        """
        raw = self.get_item(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Ignoring malformed stored value for '{key}': {e}")
            return None

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value))


class MemoryStorage(Storage):
    """Dictionary-backed storage. Nothing survives the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def keys(self) -> list[str]:
        return sorted(self._items)


class SQLiteStorage(Storage):
    """
    Thread-safe SQLite key/value store.

    Uses a single persistent connection with a lock around every statement.
    The parent directory is created when missing.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Cannot create state directory: {db_path.parent}",
                details={"path": str(db_path.parent), "original_error": str(e)}
            ) from e

        try:
            self._init_database()
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to initialize local storage: {e}",
                details={"path": str(db_path)}
            ) from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Yield the persistent connection, creating it on first use.

        The connection is not closed on exit; close() does that.
        """
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False  # We handle thread safety with _lock
            )
            self._conn.execute("PRAGMA journal_mode = WAL")
        yield self._conn

    def _init_database(self) -> None:
        with self._get_connection() as conn:
            conn.executescript(_SCHEMA_SQL)

            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()

            if row is None:
                conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)", (STORAGE_VERSION,)
                )
            elif row[0] != STORAGE_VERSION:
                raise StorageError(
                    f"Storage version mismatch: expected {STORAGE_VERSION}, got {row[0]}",
                    details={"expected": STORAGE_VERSION, "actual": row[0]}
                )
            conn.commit()

    def _execute(self, sql: str, params: tuple = ()) -> list[tuple]:
        with self._lock:
            try:
                with self._get_connection() as conn:
                    rows = conn.execute(sql, params).fetchall()
                    conn.commit()
                    return rows
            except sqlite3.Error as e:
                raise StorageError(
                    f"Local storage operation failed: {e}",
                    details={"path": str(self.db_path)}
                ) from e

    def get_item(self, key: str) -> str | None:
        rows = self._execute("SELECT value FROM local_storage WHERE key = ?", (key,))
        return rows[0][0] if rows else None

    def set_item(self, key: str, value: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        self._execute(
            """
            INSERT INTO local_storage (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                           updated_at = excluded.updated_at
            """,
            (key, value, now)
        )

    def remove_item(self, key: str) -> None:
        self._execute("DELETE FROM local_storage WHERE key = ?", (key,))

    def clear(self) -> None:
        self._execute("DELETE FROM local_storage")

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __del__(self) -> None:
        if getattr(self, "_conn", None) is not None:
            try:
                self._conn.close()
            except sqlite3.Error:
                pass
