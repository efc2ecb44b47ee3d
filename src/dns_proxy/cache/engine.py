"""
DNS Cache Engine

In-memory name cache with insertion-time expiry. Expired entries are only
removed by an explicit garbage-collection sweep, never on read.
"""

import time
from typing import Callable, Dict, Optional

from ..dns_logging import QueryLog, get_logger
from .entry import CacheEntry


class DNSCache:
    """Name → resolved value cache swept by gc()."""

    def __init__(
        self,
        query_log: Optional[QueryLog] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache

        Args:
            query_log: Sink receiving one line per expired entry
            clock: Source of the current time in seconds
        """
        self.query_log = query_log
        self._clock = clock
        self._cache: Dict[str, CacheEntry] = {}
        self._last_gc: Optional[int] = None

        self.logger = get_logger(__name__)

    def _now(self) -> int:
        return int(self._clock())

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    def lookup(self, key: str) -> Optional[str]:
        """Return the cached value for key, or None on a miss."""
        entry = self._cache.get(key)
        return entry.value if entry else None

    def add(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous entry."""
        self._cache[key] = CacheEntry(key=key, value=value, inserted_at=self._now())

    def gc(self, ttl: int) -> int:
        """Evict entries older than ttl seconds.

        At most one sweep runs per whole second; further calls within the same
        second do nothing. Returns the number of evicted entries.
        """
        now = self._now()
        if now == self._last_gc:
            return 0
        self._last_gc = now

        limit = now - ttl
        expired = [key for key, entry in self._cache.items() if entry.is_expired(limit)]

        for key in expired:
            del self._cache[key]
            if self.query_log:
                self.query_log.record(f"{key} => expired.")

        if expired:
            self.logger.debug(
                "Cleaned up expired cache entries", count=len(expired), remaining=len(self)
            )

        return len(expired)

    def get_stats(self) -> Dict[str, object]:
        """Get cache statistics"""
        return {
            "entries": len(self._cache),
            "last_gc": self._last_gc,
            "status": "available",
        }
