"""
Request Dispatcher Tests

Tests for the state machine that turns one datagram into zero or one response.
"""

import pytest

from dns_proxy.core.dispatcher import CACHE_SOURCE, RequestDispatcher
from dns_proxy.core.message import (
    DNSClass,
    DNSMessage,
    DNSOpcode,
    DNSRecordType,
    DNSResponseCode,
)
from dns_proxy.core.resolver import Attempt, QueryKind


def decode(outcome) -> DNSMessage:
    return DNSMessage.from_bytes(outcome.to_bytes())


class TestCachedResolve:
    """A and PTR queries"""

    @pytest.mark.asyncio
    async def test_end_to_end_with_cache(self, context, make_query, make_upstream, client):
        """First query goes upstream, the second is served from the cache"""
        upstream = make_upstream("8.8.8.8", Attempt.success("93.184.216.34"))
        context.resolvers.upstreams.append(upstream)
        dispatcher = RequestDispatcher(context)

        first = await dispatcher.handle(make_query("example.com"), client)

        response = decode(first)
        assert response.header.rcode == DNSResponseCode.NOERROR
        assert len(response.answers) == 1
        assert response.answers[0].rtype == DNSRecordType.A
        assert response.answers[0].get_readable_rdata() == "93.184.216.34"
        assert first.source == "8.8.8.8"

        second = await dispatcher.handle(make_query("example.com"), client)

        response = decode(second)
        assert response.header.rcode == DNSResponseCode.NOERROR
        assert response.answers[0].get_readable_rdata() == "93.184.216.34"
        assert second.source == CACHE_SOURCE == "local-cache"
        assert upstream.lookup.await_count == 1
        assert context.stats["cache_hits"] == 1
        assert context.stats["cache_misses"] == 1

    @pytest.mark.asyncio
    async def test_response_mirrors_request(self, context, make_query, make_upstream, client):
        """Transaction id, question name, type and class are echoed"""
        context.resolvers.upstreams.append(
            make_upstream("8.8.8.8", Attempt.success("1.2.3.4"))
        )
        dispatcher = RequestDispatcher(context)

        outcome = await dispatcher.handle(
            make_query("Host.Example", qclass=DNSClass.ANY, transaction_id=0x1234), client
        )

        response = decode(outcome)
        assert response.header.transaction_id == 0x1234
        assert response.header.qr is True
        assert response.header.opcode == DNSOpcode.QUERY
        assert len(response.questions) == 1
        assert response.questions[0].name == "Host.Example"
        assert response.questions[0].qtype == DNSRecordType.A
        assert response.questions[0].qclass == DNSClass.ANY
        assert response.answers[0].rclass == DNSClass.IN
        assert response.answers[0].ttl == context.cache_ttl

    @pytest.mark.asyncio
    async def test_total_failure_is_name_error(self, context, make_query, make_upstream, client):
        context.resolvers.upstreams.extend(
            [
                make_upstream("10.0.0.1", Attempt.failure("Timeout")),
                make_upstream("10.0.0.2", Attempt.failure("NXDOMAIN")),
            ]
        )
        dispatcher = RequestDispatcher(context)

        outcome = await dispatcher.handle(make_query("nonexistent.test"), client)

        response = decode(outcome)
        assert response.header.rcode == DNSResponseCode.NXDOMAIN
        assert response.answers == []
        assert outcome.source is None
        assert context.cache.lookup("nonexistent.test") is None
        assert context.stats["resolution_failures"] == 1

    @pytest.mark.asyncio
    async def test_ptr_query(self, context, make_query, make_upstream, client):
        upstream = make_upstream("8.8.8.8", Attempt.success("host.example"))
        context.resolvers.upstreams.append(upstream)
        dispatcher = RequestDispatcher(context)

        outcome = await dispatcher.handle(
            make_query("4.3.2.1.in-addr.arpa", qtype=DNSRecordType.PTR), client
        )

        response = decode(outcome)
        assert response.header.rcode == DNSResponseCode.NOERROR
        assert response.answers[0].rtype == DNSRecordType.PTR
        assert response.answers[0].get_readable_rdata() == "host.example"
        upstream.lookup.assert_awaited_once_with(QueryKind.PTR, "1.2.3.4")
        # Cached under the query name, not the address
        assert context.cache.lookup("4.3.2.1.in-addr.arpa") == "host.example"
        assert context.cache.lookup("1.2.3.4") is None

    @pytest.mark.asyncio
    async def test_forward_and_reverse_share_one_keyspace(
        self, context, make_query, make_upstream, client
    ):
        """A PTR answer cached under a name is returned to an A query for that name.

        The hostname is not an address, so building the A answer fails; the
        service loop catches this and sends nothing.
        """
        upstream = make_upstream("8.8.8.8", Attempt.success("host.example"))
        context.resolvers.upstreams.append(upstream)
        dispatcher = RequestDispatcher(context)
        name = "4.3.2.1.in-addr.arpa"

        await dispatcher.handle(make_query(name, qtype=DNSRecordType.PTR), client)

        with pytest.raises(OSError):
            await dispatcher.handle(make_query(name, qtype=DNSRecordType.A), client)
        assert upstream.lookup.await_count == 1
        assert context.stats["cache_hits"] == 1

    @pytest.mark.asyncio
    async def test_answers_are_recorded(self, context, make_query, make_upstream, client):
        context.resolvers.upstreams.append(
            make_upstream("8.8.8.8", Attempt.success("93.184.216.34"))
        )
        dispatcher = RequestDispatcher(context)

        await dispatcher.handle(make_query("example.com"), client)
        await dispatcher.handle(make_query("example.com"), client)

        lines = context.query_log.log_file_path.read_text().splitlines()
        assert lines[0].endswith(" example.com => 93.184.216.34 (8.8.8.8)")
        assert lines[1].endswith(" example.com => 93.184.216.34 (local-cache)")


class TestNotImplemented:
    @pytest.mark.asyncio
    async def test_aaaa_is_not_implemented_even_when_cached(
        self, context, make_query, make_upstream, client
    ):
        """AAAA never consults the cache or the resolvers"""
        upstream = make_upstream("8.8.8.8")
        context.resolvers.upstreams.append(upstream)
        context.cache.add("example.com", "93.184.216.34")
        dispatcher = RequestDispatcher(context)

        outcome = await dispatcher.handle(
            make_query("example.com", qtype=DNSRecordType.AAAA), client
        )

        response = decode(outcome)
        assert response.header.rcode == DNSResponseCode.NOTIMP
        assert response.answers == []
        assert response.header.transaction_id == 0xBEEF
        assert outcome.kind is QueryKind.AAAA
        upstream.lookup.assert_not_awaited()
        assert context.stats["cache_hits"] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("qtype", [DNSRecordType.MX, DNSRecordType.TXT, 999])
    async def test_other_types(self, context, make_query, client, qtype):
        dispatcher = RequestDispatcher(context)

        outcome = await dispatcher.handle(make_query("example.com", qtype=qtype), client)

        assert outcome.rcode == DNSResponseCode.NOTIMP
        assert outcome.kind is QueryKind.OTHER

    @pytest.mark.asyncio
    async def test_not_implemented_is_recorded(self, context, make_query, client):
        dispatcher = RequestDispatcher(context)

        await dispatcher.handle(make_query("example.com", qtype=DNSRecordType.AAAA), client)

        text = context.query_log.log_file_path.read_text()
        assert "example.com (AAAA) => not implemented." in text
        assert context.stats["not_implemented"] == 1


class TestDroppedRequests:
    """Requests that get no response at all"""

    @pytest.mark.asyncio
    async def test_unsupported_class(self, context, make_query, make_upstream, client):
        upstream = make_upstream("8.8.8.8")
        context.resolvers.upstreams.append(upstream)
        dispatcher = RequestDispatcher(context)

        outcome = await dispatcher.handle(make_query("version.bind", qclass=DNSClass.CH), client)

        assert outcome is None
        upstream.lookup.assert_not_awaited()
        assert context.stats["dropped"] == 1

    @pytest.mark.asyncio
    async def test_malformed_packet(self, context, client):
        dispatcher = RequestDispatcher(context)

        assert await dispatcher.handle(b"invalid", client) is None
        assert await dispatcher.handle(b"\xbe\xef\x01\x00\x00\x01\x00\x00\x00\x00\x00\x00\x07exa", client) is None
        assert context.stats["dropped"] == 2

    @pytest.mark.asyncio
    async def test_response_packets_are_dropped(self, context, make_query, client):
        dispatcher = RequestDispatcher(context)

        assert await dispatcher.handle(make_query("example.com", qr=True), client) is None

    @pytest.mark.asyncio
    async def test_non_query_opcode(self, context, make_query, client):
        dispatcher = RequestDispatcher(context)

        outcome = await dispatcher.handle(
            make_query("example.com", opcode=DNSOpcode.STATUS), client
        )

        assert outcome is None
        assert "dropped." in context.query_log.log_file_path.read_text()
