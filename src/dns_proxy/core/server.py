"""
DNS Proxy Service Loop

This module owns the UDP socket and drives request handling:
- datagrams are queued by an asyncio.DatagramProtocol, up to a fixed backlog
- one request is taken, answered and finished before the next is received
- the receive wait is bounded so housekeeping runs even without traffic
- no single request can stop the loop
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union

from ..config.schema import DEFAULT_QUEUE_SIZE
from ..dns_logging import get_logger, log_exception
from .context import ServiceContext
from .dispatcher import RequestDispatcher, response_code_name

logger = get_logger(__name__)


@dataclass(frozen=True)
class Datagram:
    """One received packet and where it came from."""

    data: bytes
    addr: Tuple[str, int]


@dataclass(frozen=True)
class ReceiveTimeout:
    """The receive wait elapsed without a packet."""

    waited: float


ReceiveResult = Union[Datagram, ReceiveTimeout]


class DNSUDPProtocol(asyncio.DatagramProtocol):
    """Queues incoming UDP datagrams for the service loop"""

    def __init__(
        self,
        queue: "asyncio.Queue[Datagram]",
        on_overflow: Optional[Callable[[Tuple[str, int]], None]] = None,
    ):
        self.queue = queue
        self.on_overflow = on_overflow
        self.transport = None

    def connection_made(self, transport):
        """Called when UDP socket is ready"""
        self.transport = transport
        logger.info(
            "DNS proxy listening", sockname=str(transport.get_extra_info("sockname"))
        )

    def datagram_received(self, data: bytes, addr: Tuple[str, int]):
        try:
            self.queue.put_nowait(Datagram(data, addr))
        except asyncio.QueueFull:
            if self.on_overflow is not None:
                self.on_overflow(addr)
            else:
                logger.warning("Receive queue full, datagram dropped", client=addr[0])

    def error_received(self, exc):
        """Handle UDP errors"""
        logger.error("DNS UDP protocol error", error=str(exc))


class DNSProxyServer:
    """Single-consumer UDP service loop"""

    def __init__(
        self,
        context: ServiceContext,
        bind_address: str = "0.0.0.0",
        port: int = 53,
        receive_timeout: float = 10.0,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        self.context = context
        self.dispatcher = RequestDispatcher(context)
        self.bind_address = bind_address
        self.port = port
        self.receive_timeout = receive_timeout

        self.transport: Optional[asyncio.DatagramTransport] = None
        self._queue: "asyncio.Queue[Datagram]" = asyncio.Queue(maxsize=queue_size)
        self._is_running = False
        self._start_time = 0.0

    @classmethod
    def from_config(cls, config, context: Optional[ServiceContext] = None):
        return cls(
            context or ServiceContext.from_config(config),
            bind_address=config.server.bind_address,
            port=config.server.udp_port(),
            receive_timeout=config.server.receive_timeout,
            queue_size=config.server.queue_size,
        )

    async def start(self) -> None:
        """Bind the UDP socket"""
        if self.transport is not None:
            logger.warning("Server is already bound")
            return

        loop = asyncio.get_running_loop()
        try:
            self.transport, _ = await loop.create_datagram_endpoint(
                lambda: DNSUDPProtocol(self._queue, self._overflow),
                local_addr=(self.bind_address, self.port),
            )
        except OSError as e:
            log_exception(
                logger, f"Failed to bind {self.bind_address}:{self.port}", e
            )
            raise

        self._start_time = time.time()
        logger.info(
            "DNS proxy started",
            bind_address=self.bind_address,
            port=self.port,
            resolvers=self.context.resolvers.servers,
        )

    def _overflow(self, addr: Tuple[str, int]) -> None:
        self.dispatcher.drop(addr, "overflowed the receive queue", backlog=self._queue.maxsize)

    async def receive(self) -> ReceiveResult:
        """Wait for the next datagram, at most receive_timeout seconds."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=self.receive_timeout)
        except asyncio.TimeoutError:
            return ReceiveTimeout(self.receive_timeout)

    async def run_cycle(self) -> None:
        """One receive/respond cycle followed by housekeeping."""
        try:
            received = await self.receive()
            if isinstance(received, Datagram):
                await self._respond(received)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.context.stats["errors"] += 1
            log_exception(logger, "Unexpected error handling request", e)
        finally:
            self._housekeeping()

    async def _respond(self, datagram: Datagram) -> None:
        started = time.time()
        outcome = await self.dispatcher.handle(datagram.data, datagram.addr)
        if outcome is None:
            return

        self.transport.sendto(outcome.to_bytes(), datagram.addr)
        logger.debug(
            "DNS query processed",
            client_ip=datagram.addr[0],
            query_type=outcome.kind.value,
            domain=outcome.name,
            response_code=response_code_name(outcome.rcode),
            response_data=outcome.value,
            source=outcome.source,
            response_time_ms=round((time.time() - started) * 1000, 2),
        )

    def _housekeeping(self) -> None:
        try:
            self.context.housekeeping()
        except Exception as e:
            self.context.stats["errors"] += 1
            log_exception(logger, "Housekeeping failed", e)

    async def serve_forever(self) -> None:
        """Run cycles until stop() is called."""
        if self.transport is None:
            await self.start()

        self._is_running = True
        while self._is_running:
            await self.run_cycle()

    def stop(self) -> None:
        """Stop after the cycle in progress."""
        self._is_running = False

    def close(self) -> None:
        """Release the socket and the query log."""
        self._is_running = False
        if self.transport is not None:
            self.transport.close()
            self.transport = None
        self.context.query_log.close()
        logger.info("DNS proxy stopped", **self.get_stats())

    def get_stats(self) -> Dict[str, Any]:
        """Get server statistics"""
        stats = self.context.stats
        uptime = time.time() - self._start_time if self._start_time else 0
        lookups = stats["cache_hits"] + stats["cache_misses"]

        return {
            "uptime_seconds": round(uptime, 2),
            "queries": stats["queries"],
            "cache_hits": stats["cache_hits"],
            "cache_misses": stats["cache_misses"],
            "cache_hit_ratio": stats["cache_hits"] / max(1, lookups),
            "cache": self.context.cache.get_stats(),
            "queued": self._queue.qsize(),
            "resolution_failures": stats["resolution_failures"],
            "not_implemented": stats["not_implemented"],
            "dropped": stats["dropped"],
            "errors": stats["errors"],
            "is_running": self._is_running,
        }
