"""
DNS Cache Module

Name cache with insertion-time expiry and rate-limited garbage collection.
"""

from .engine import DNSCache
from .entry import CacheEntry

__all__ = [
    "DNSCache",
    "CacheEntry",
]
