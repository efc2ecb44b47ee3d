"""
DNS Cache Entry
"""

from dataclasses import dataclass


@dataclass
class CacheEntry:
    """A resolved value and the whole second it was stored.

    ``key`` is the original query name, for forward and reverse lookups alike.
    ``value`` is an IPv4 address (A) or a hostname (PTR).
    """

    key: str
    value: str
    inserted_at: int

    def is_expired(self, limit: int) -> bool:
        """Entries stored exactly at the limit are still fresh."""
        return self.inserted_at < limit
