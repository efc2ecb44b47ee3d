"""
Request Dispatcher

Decodes one inbound datagram and decides what, if anything, goes back:
- malformed packets, non-queries and unsupported classes are dropped
- A and PTR queries are answered from the cache or the resolver chain
- every other type gets a not-implemented response
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..dns_logging import get_logger
from .context import ServiceContext
from .message import (
    DNSClass,
    DNSMessage,
    DNSResponseCode,
    MessageFormatError,
    class_name,
    type_name,
)
from .resolver import QueryKind
from .response import ResponseBuilder

logger = get_logger(__name__)

CACHE_SOURCE = "local-cache"
ACCEPTED_CLASSES = (DNSClass.IN, DNSClass.ANY)


@dataclass
class Outcome:
    """A response ready to send, plus what produced it."""

    response: DNSMessage
    kind: QueryKind
    name: str
    value: Optional[str] = None
    source: Optional[str] = None

    @property
    def rcode(self) -> int:
        return self.response.header.rcode

    def to_bytes(self) -> bytes:
        return self.response.to_bytes()


class RequestDispatcher:
    """Routes parsed queries to the cached-lookup or not-implemented path."""

    def __init__(self, context: ServiceContext):
        self.context = context
        self.builder = ResponseBuilder(answer_ttl=context.cache_ttl)

    def drop(self, client: Tuple[str, int], reason: str, **details) -> None:
        self.context.stats["dropped"] += 1
        self.context.query_log.record(f"{client[0]}:{client[1]} {reason}, dropped.")
        logger.info("Request dropped", client=client[0], reason=reason, **details)

    async def handle(self, data: bytes, client: Tuple[str, int]) -> Optional[Outcome]:
        """Process one datagram; None means nothing is sent back."""
        try:
            query = DNSMessage.from_bytes(data)
        except MessageFormatError as e:
            self.drop(client, "sent a malformed packet", error=str(e))
            return None

        if not query.is_query():
            self.drop(
                client,
                f"sent opcode {query.header.opcode} qr={int(query.header.qr)}",
            )
            return None

        if not query.questions:
            self.drop(client, "sent a query without questions")
            return None

        question = query.questions[0]
        if question.qclass not in ACCEPTED_CLASSES:
            self.drop(
                client,
                f"asked {question.name} in class {class_name(question.qclass)}",
            )
            return None

        self.context.stats["queries"] += 1
        kind = QueryKind.classify(question.qtype)

        if kind.resolvable:
            return await self._cached_resolve(query, kind)
        return self._not_implemented(query, kind)

    async def _cached_resolve(self, query: DNSMessage, kind: QueryKind) -> Outcome:
        name = query.questions[0].name
        cache = self.context.cache

        value = cache.lookup(name)
        if value is not None:
            self.context.stats["cache_hits"] += 1
            source = CACHE_SOURCE
        else:
            self.context.stats["cache_misses"] += 1
            resolution = await self.context.resolvers.resolve(kind, name)
            if not resolution.ok:
                self.context.stats["resolution_failures"] += 1
                self.context.query_log.record(f"{name} => not found.")
                return Outcome(self.builder.name_error(query), kind, name)

            value, source = resolution.value, resolution.server
            cache.add(name, value)

        self.context.query_log.record(f"{name} => {value} ({source})")
        return Outcome(
            self.builder.success(query, kind, value), kind, name, value=value, source=source
        )

    def _not_implemented(self, query: DNSMessage, kind: QueryKind) -> Outcome:
        question = query.questions[0]
        self.context.stats["not_implemented"] += 1
        self.context.query_log.record(
            f"{question.name} ({type_name(question.qtype)}) => not implemented."
        )
        return Outcome(self.builder.not_implemented(query), kind, question.name)


def response_code_name(rcode: int) -> str:
    """Get human-readable name for DNS response code"""
    try:
        return DNSResponseCode(rcode).name
    except ValueError:
        return f"RCODE{rcode}"
