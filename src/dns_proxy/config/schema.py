"""
DNS Proxy Configuration Schema

Configuration schema for the listening socket, the ordered upstream resolver
list, the cache and the logging outputs.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from .validators import (
    resolve_port,
    validate_bind_address,
    validate_domain,
    validate_file_path,
    validate_log_level,
    validate_port,
    validate_positive_float,
    validate_positive_int,
    validate_server_address,
)

DEFAULT_CACHE_TTL = 86400
DEFAULT_LOG_MAX_BYTES = 131072
DEFAULT_RECEIVE_TIMEOUT = 10.0
DEFAULT_QUEUE_SIZE = 1024


@dataclass
class ServerConfig:
    """Server configuration section."""

    bind_address: str = "0.0.0.0"
    port: Union[int, str] = "domain"
    receive_timeout: float = DEFAULT_RECEIVE_TIMEOUT
    queue_size: int = DEFAULT_QUEUE_SIZE

    def __post_init__(self) -> None:
        """Validate server configuration."""
        if not validate_bind_address(self.bind_address):
            raise ValueError(f"Invalid bind address: {self.bind_address}")

        if not validate_port(self.port):
            raise ValueError(f"Invalid port: {self.port}")

        if not validate_positive_float(self.receive_timeout):
            raise ValueError(
                f"Receive timeout must be positive: {self.receive_timeout}"
            )

        if not validate_positive_int(self.queue_size):
            raise ValueError(f"Queue size must be a positive integer: {self.queue_size}")

    def udp_port(self) -> int:
        """Port number to bind, looking up service names."""
        return resolve_port(self.port)


@dataclass
class ResolverConfig:
    """One upstream resolver; list position is its fallback priority."""

    server: str
    domain: Optional[str] = None

    def __post_init__(self) -> None:
        if not validate_server_address(self.server):
            raise ValueError(f"Invalid resolver address: {self.server}")

        if self.domain is not None and not validate_domain(self.domain):
            raise ValueError(f"Invalid resolver domain: {self.domain}")


@dataclass
class CacheConfig:
    """Cache configuration section."""

    ttl: int = DEFAULT_CACHE_TTL

    def __post_init__(self) -> None:
        if not validate_positive_int(self.ttl):
            raise ValueError(f"Cache TTL must be positive: {self.ttl}")


@dataclass
class LoggingConfig:
    """Logging configuration section."""

    level: str = "INFO"
    format: str = "console"
    file: str = "logs/dns-proxy.log"
    max_bytes: int = DEFAULT_LOG_MAX_BYTES

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        if not validate_log_level(self.level):
            raise ValueError(f"Invalid log level: {self.level}")

        if self.format not in ["console", "json"]:
            raise ValueError(f"Invalid log format: {self.format}")

        if not validate_file_path(self.file):
            raise ValueError(f"Invalid log file path: {self.file}")

        if not validate_positive_int(self.max_bytes):
            raise ValueError(f"Max bytes must be positive: {self.max_bytes}")


def _default_resolvers() -> List[ResolverConfig]:
    return [ResolverConfig("8.8.8.8"), ResolverConfig("1.1.1.1")]


@dataclass
class DNSProxyConfig:
    """Main DNS proxy configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    resolvers: List[ResolverConfig] = field(default_factory=_default_resolvers)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self) -> None:
        """Validate the entire configuration."""
        if not isinstance(self.resolvers, list) or not self.resolvers:
            raise ValueError("At least one upstream resolver is required")

        for resolver in self.resolvers:
            if not isinstance(resolver, ResolverConfig):
                raise ValueError(f"Invalid resolver entry: {resolver!r}")


def create_default_config() -> DNSProxyConfig:
    """Create a default configuration instance."""
    return DNSProxyConfig()
