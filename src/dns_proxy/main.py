"""
DNS Proxy Main Entry Point

This script provides the main entry point for running the DNS proxy.
"""

import argparse
import asyncio
import platform
import signal
import sys
from typing import Optional

from dns_proxy.config.loader import ConfigLoader
from dns_proxy.config.schema import DNSProxyConfig
from dns_proxy.core import DNSProxyServer
from dns_proxy.dns_logging import get_logger, log_exception, setup_logging


class DNSProxyApp:
    """DNS Proxy Application"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path
        self.config: Optional[DNSProxyConfig] = None
        self.server: Optional[DNSProxyServer] = None
        self.logger = get_logger("dns_proxy_app")
        self._serve_task: Optional[asyncio.Task] = None

    def initialize(self) -> None:
        """Load configuration, set up logging and build the service."""
        self.config = ConfigLoader(self.config_path).load_config()

        setup_logging(self.config.logging)

        self.server = DNSProxyServer.from_config(self.config)

        self.logger.info(
            "DNS proxy application initialized",
            port=self.server.port,
            resolvers=[
                f"{r.server}/{r.domain}" if r.domain else r.server
                for r in self.config.resolvers
            ],
            cache_ttl=self.config.cache.ttl,
            query_log=self.config.logging.file,
        )

    async def run(self) -> None:
        """Serve until SIGINT or SIGTERM."""
        if self.server is None:
            self.initialize()

        await self.server.start()

        loop = asyncio.get_running_loop()
        for sig in [signal.SIGTERM, signal.SIGINT]:
            loop.add_signal_handler(sig, self._signal_handler)

        self._serve_task = asyncio.create_task(self.server.serve_forever())
        try:
            await self._serve_task
        except asyncio.CancelledError:
            pass
        finally:
            self.server.close()

    def _signal_handler(self) -> None:
        """Handle shutdown signals"""
        self.logger.info("Received shutdown signal")
        self.server.stop()
        if self._serve_task:
            self._serve_task.cancel()


def _use_uvloop() -> None:
    # Try to use uvloop for better performance on Unix systems
    if platform.system() == "Windows":
        return
    try:
        import uvloop
    except ImportError:
        return
    asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())


def main(argv=None) -> int:
    """Main function"""
    parser = argparse.ArgumentParser(description="Caching DNS forwarding proxy")
    parser.add_argument("--config", "-c", default=None, help="Configuration file path")
    parser.add_argument(
        "--check-config",
        action="store_true",
        help="Validate the configuration, print the resolver chain and exit",
    )
    args = parser.parse_args(argv)

    app = DNSProxyApp(args.config)

    try:
        if args.check_config:
            config = ConfigLoader(args.config).load_config()
            print(f"Listening on {config.server.bind_address}:{config.server.udp_port()}")
            for position, resolver in enumerate(config.resolvers, 1):
                suffix = f" (search {resolver.domain})" if resolver.domain else ""
                print(f"  {position}. {resolver.server}{suffix}")
            return 0

        app.initialize()
    except Exception as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    _use_uvloop()
    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        print("\nDNS proxy interrupted")
    except Exception as e:
        log_exception(app.logger, "DNS proxy failed", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
