"""
DNS Resolver Chain

This module implements upstream resolution for the proxy:
- classification of query types into the kinds the proxy handles
- single-server forward (A) and reverse (PTR) lookups through dnspython
- ordered fallback across the configured upstream servers
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import dns.asyncresolver
import dns.exception
import dns.name

from ..config.schema import DEFAULT_RECEIVE_TIMEOUT, ResolverConfig
from ..dns_logging import get_logger
from .message import DNSRecordType

logger = get_logger(__name__)


class QueryKind(Enum):
    """The closed set of query kinds the dispatcher distinguishes."""

    A = "A"
    PTR = "PTR"
    AAAA = "AAAA"
    OTHER = "OTHER"

    @classmethod
    def classify(cls, qtype: int) -> "QueryKind":
        if qtype == DNSRecordType.A:
            return cls.A
        if qtype == DNSRecordType.PTR:
            return cls.PTR
        if qtype == DNSRecordType.AAAA:
            return cls.AAAA
        return cls.OTHER

    @property
    def resolvable(self) -> bool:
        return self in (QueryKind.A, QueryKind.PTR)


@dataclass(frozen=True)
class Attempt:
    """Outcome of asking one upstream server."""

    value: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return bool(self.value)

    @classmethod
    def success(cls, value: str) -> "Attempt":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "Attempt":
        return cls(error=error)


@dataclass(frozen=True)
class Resolution:
    """Outcome of the whole chain: the answer and the server that gave it."""

    value: Optional[str] = None
    server: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.value is not None


def reverse_lookup_key(name: str) -> Optional[str]:
    """Turn a reverse-zone name into the dotted-quad address it encodes.

    "4.3.2.1.in-addr.arpa" -> "1.2.3.4". Returns None if the name does not
    start with four decimal octets.
    """
    labels = name.rstrip(".").split(".")
    if len(labels) < 4:
        return None

    octets = labels[:4]
    if not all(o.isdigit() and int(o) <= 255 for o in octets):
        return None

    return ".".join(reversed(octets))


class UpstreamResolver:
    """Lookups against a single upstream server."""

    def __init__(self, config: ResolverConfig, timeout: float = DEFAULT_RECEIVE_TIMEOUT):
        self.address = config.server
        self.domain = config.domain

        self._resolver = dns.asyncresolver.Resolver(configure=False)
        # configure=False still derives a default domain from the hostname
        self._resolver.domain = dns.name.root
        self._resolver.nameservers = [self.address]
        self._resolver.search = [dns.name.from_text(self.domain)] if self.domain else []
        self._resolver.timeout = timeout
        self._resolver.lifetime = timeout

    def __repr__(self) -> str:
        return f"UpstreamResolver({self.address!r}, domain={self.domain!r})"

    async def lookup_address(self, hostname: str) -> Attempt:
        """Forward lookup: first IPv4 address for hostname."""
        try:
            answer = await self._resolver.resolve(
                hostname, "A", search=bool(self.domain)
            )
        except (dns.exception.DNSException, OSError) as e:
            return Attempt.failure(f"{type(e).__name__}: {e}")

        for rdata in answer:
            return Attempt.success(rdata.address)
        return Attempt.failure("empty answer")

    async def lookup_name(self, address: str) -> Attempt:
        """Reverse lookup: first PTR target for address."""
        try:
            answer = await self._resolver.resolve_address(address)
        except (dns.exception.DNSException, OSError, ValueError) as e:
            return Attempt.failure(f"{type(e).__name__}: {e}")

        for rdata in answer:
            return Attempt.success(rdata.target.to_text(omit_final_dot=True))
        return Attempt.failure("empty answer")

    async def lookup(self, kind: QueryKind, key: str) -> Attempt:
        if kind is QueryKind.A:
            return await self.lookup_address(key)
        if kind is QueryKind.PTR:
            return await self.lookup_name(key)
        return Attempt.failure(f"unsupported query kind {kind.value}")


class ResolverChain:
    """Tries each upstream server in configured order until one answers."""

    def __init__(self, upstreams: List[UpstreamResolver]):
        self.upstreams = list(upstreams)

    @classmethod
    def from_config(
        cls, resolvers: List[ResolverConfig], timeout: float = DEFAULT_RECEIVE_TIMEOUT
    ) -> "ResolverChain":
        return cls([UpstreamResolver(r, timeout) for r in resolvers])

    @property
    def servers(self) -> List[str]:
        return [u.address for u in self.upstreams]

    async def resolve(self, kind: QueryKind, key: str) -> Resolution:
        """Resolve key, returning the first successful answer and its server.

        For PTR queries key is the reverse-zone name; the address it encodes is
        what gets looked up. Failed servers are logged and skipped.
        """
        if kind is QueryKind.PTR:
            lookup_key = reverse_lookup_key(key)
            if lookup_key is None:
                logger.warning("Malformed reverse lookup name", name=key)
                return Resolution()
        else:
            lookup_key = key

        for upstream in self.upstreams:
            attempt = await upstream.lookup(kind, lookup_key)
            if attempt.ok:
                return Resolution(value=attempt.value, server=upstream.address)

            logger.warning(
                "Upstream lookup failed",
                server=upstream.address,
                kind=kind.value,
                name=lookup_key,
                error=attempt.error,
            )

        return Resolution()
