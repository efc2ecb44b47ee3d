"""
Structured Logging Framework

This module provides the diagnostic logging infrastructure using structlog on
top of the standard library logging handlers.
"""

import logging
import sys
import traceback
from typing import List, Optional

import structlog

from ..config.schema import LoggingConfig


class DetailedConsoleFormatter(logging.Formatter):
    """Custom formatter for console output with detailed error tracebacks."""

    def format(self, record):
        formatted = super().format(record)

        if record.exc_info and not record.exc_text:
            tb_lines = traceback.format_exception(*record.exc_info)
            formatted += "\n" + "".join(tb_lines)

        return formatted


class StructuredLogger:
    """Structured logger using structlog with console or JSON rendering."""

    def __init__(self, config: LoggingConfig):
        """Initialize structured logger.

        Args:
            config: Logging configuration
        """
        self.config = config
        self._configured = False
        self.logger = None

    def _get_processors(self) -> List:
        """Build the structlog processor chain for the configured format."""
        processors = [
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
        ]

        if self.config.format == "json":
            processors.append(structlog.processors.JSONRenderer())
        else:
            processors.append(structlog.dev.ConsoleRenderer(colors=False))

        return processors

    def configure(self) -> None:
        """Configure the root handler and structlog."""
        if self._configured:
            return

        root_logger = logging.getLogger()
        root_logger.handlers.clear()

        log_level = getattr(logging, self.config.level.upper())
        root_logger.setLevel(log_level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(DetailedConsoleFormatter(fmt="%(message)s"))
        root_logger.addHandler(console_handler)

        structlog.configure(
            processors=self._get_processors(),
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        self._configured = True
        self.logger = structlog.get_logger("dns_proxy")

    def get_logger(self, name: str = "dns_proxy") -> structlog.BoundLogger:
        """Get a structured logger instance."""
        if not self._configured:
            self.configure()

        return structlog.get_logger(name)


# Global logger instance
_logger_instance: Optional[StructuredLogger] = None


def setup_logging(config: LoggingConfig) -> None:
    """Setup global logging configuration.

    Args:
        config: Logging configuration
    """
    global _logger_instance
    _logger_instance = StructuredLogger(config)
    _logger_instance.configure()


def get_logger(name: str = "dns_proxy") -> structlog.BoundLogger:
    """Get a logger instance.

    Loggers are lazy proxies, so module-level loggers created before
    setup_logging() pick up the configuration once it is applied.
    """
    return structlog.get_logger(name)


def log_exception(
    logger: structlog.BoundLogger, message: str, exc: Optional[Exception] = None
) -> None:
    """Log an exception with detailed traceback information.

    Args:
        logger: Logger instance
        message: Log message
        exc: Exception instance (optional, will use current exception if None)
    """
    if exc is None:
        exc = sys.exc_info()[1]

    if exc is None:
        logger.error(message)
        return

    logger.error(
        message,
        exception_type=type(exc).__name__,
        exception_message=str(exc),
        exc_info=(type(exc), exc, exc.__traceback__),
    )
