"""
Time-boxed snapshot cache for gateway collections.

One TTLCache is created by the composition root and handed to the
RemoteGateway; nothing in the package keeps cache state at module level.
The clock is injectable so tests can advance time explicitly.

Usage:
    cache = TTLCache()
    cache.configure(CATALOG_KEY, ttl=300)
    cache.set(CATALOG_KEY, tracks)
    cache.get(CATALOG_KEY)        # same list object while fresh, else None
    cache.invalidate(CATALOG_KEY)
"""

import time
from dataclasses import dataclass
from typing import Any, Callable

from musics_client.core.logger import get_logger

logger = get_logger(__name__)


CATALOG_KEY = "musics"
USERS_KEY = "users"

DEFAULT_TTL = 5 * 60


@dataclass
class CacheEntry:
    """A cached snapshot and the clock reading at which it was stored."""
    value: Any
    stored_at: float


class TTLCache:
    """
    Per-key time-to-live cache.

    Attributes:
        default_ttl: Window in seconds for keys without a configured TTL.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._ttls: dict[str, float] = {}
        self._entries: dict[str, CacheEntry] = {}

    def configure(self, key: str, ttl: float) -> None:
        """Set the freshness window for one key."""
        self._ttls[key] = ttl

    def ttl_for(self, key: str) -> float:
        return self._ttls.get(key, self.default_ttl)

    def is_fresh(self, key: str) -> bool:
        """True when key holds a value younger than its window."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        return (self._clock() - entry.stored_at) < self.ttl_for(key)

    def get(self, key: str) -> Any | None:
        """
        Return the cached value if still fresh.

        The stored object itself is returned, not a copy, so two reads
        inside the window yield the identical object.
        """
        if not self.is_fresh(key):
            return None
        return self._entries[key].value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock())

    def invalidate(self, key: str | None = None) -> None:
        """
        Drop one snapshot, or every snapshot when key is None.

        Configured TTLs are kept.
        """
        if key is None:
            self._entries.clear()
            logger.debug("Cache cleared")
        elif self._entries.pop(key, None) is not None:
            logger.debug(f"Cache invalidated: {key}")
