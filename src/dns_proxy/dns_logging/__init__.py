"""
DNS Proxy Logging Module

This module provides structured diagnostic logging for the DNS proxy and the
rotating query log that records answers and cache evictions.
"""

from .logger import (
    StructuredLogger,
    get_logger,
    log_exception,
    setup_logging,
)
from .query_log import QueryLog

__all__ = [
    # Core logging
    "StructuredLogger",
    "setup_logging",
    "get_logger",
    "log_exception",
    # Query log
    "QueryLog",
]
