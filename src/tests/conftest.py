"""Shared fixtures for the DNS proxy tests."""

from unittest.mock import AsyncMock, Mock

import pytest

from dns_proxy.cache import DNSCache
from dns_proxy.core.context import ServiceContext
from dns_proxy.core.message import (
    DNSClass,
    DNSHeader,
    DNSMessage,
    DNSQuestion,
    DNSRecordType,
)
from dns_proxy.core.resolver import Attempt, ResolverChain
from dns_proxy.dns_logging import QueryLog

CLIENT = ("127.0.0.1", 40000)


class FakeClock:
    """Settable replacement for time.time"""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_upstream(address: str, *results: Attempt) -> Mock:
    """Upstream double answering lookups with the given attempts in turn."""
    upstream = Mock()
    upstream.address = address
    upstream.lookup = AsyncMock(side_effect=list(results))
    return upstream


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def query_log(tmp_path):
    log = QueryLog(str(tmp_path / "dns-proxy.log"))
    yield log
    log.close()


@pytest.fixture
def cache(query_log, clock):
    return DNSCache(query_log=query_log, clock=clock)


@pytest.fixture
def context(cache, query_log):
    """Service context with an empty resolver chain; tests add upstreams."""
    return ServiceContext(
        cache=cache,
        resolvers=ResolverChain([]),
        query_log=query_log,
        cache_ttl=86400,
        log_max_bytes=131072,
    )


@pytest.fixture
def make_query():
    """Build the wire bytes of a single-question query."""

    def _make(
        name: str,
        qtype: int = DNSRecordType.A,
        qclass: int = DNSClass.IN,
        transaction_id: int = 0xBEEF,
        **flags,
    ) -> bytes:
        header = DNSHeader(transaction_id=transaction_id, **flags)
        message = DNSMessage(header=header, questions=[DNSQuestion(name, qtype, qclass)])
        return message.to_bytes()

    return _make


@pytest.fixture(name="make_upstream")
def make_upstream_fixture():
    return make_upstream


@pytest.fixture
def client():
    return CLIENT
