"""
Service Context

Everything a request cycle reads or mutates, owned by the service loop and
handed to the dispatcher explicitly.
"""

from collections import Counter
from dataclasses import dataclass, field

from ..cache import DNSCache
from ..config.schema import DEFAULT_CACHE_TTL, DEFAULT_LOG_MAX_BYTES, DNSProxyConfig
from ..dns_logging import QueryLog
from .resolver import ResolverChain


@dataclass
class ServiceContext:
    """Cache, resolver chain and query log for one proxy process."""

    cache: DNSCache
    resolvers: ResolverChain
    query_log: QueryLog
    cache_ttl: int = DEFAULT_CACHE_TTL
    log_max_bytes: int = DEFAULT_LOG_MAX_BYTES
    stats: Counter = field(default_factory=Counter)

    @classmethod
    def from_config(cls, config: DNSProxyConfig) -> "ServiceContext":
        query_log = QueryLog(config.logging.file)
        return cls(
            cache=DNSCache(query_log=query_log),
            resolvers=ResolverChain.from_config(
                config.resolvers, timeout=config.server.receive_timeout
            ),
            query_log=query_log,
            cache_ttl=config.cache.ttl,
            log_max_bytes=config.logging.max_bytes,
        )

    def housekeeping(self) -> None:
        """Post-cycle maintenance: cache sweep, then log rotation."""
        self.cache.gc(self.cache_ttl)
        self.query_log.rotate_if_oversize(self.log_max_bytes)
