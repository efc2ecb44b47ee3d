"""
Query Log

Append-only, human-readable record of what the proxy answered and evicted,
one timestamped line per event, with size-based rotation to a single ``.old``
file.
"""

import itertools
import logging
import logging.handlers
from pathlib import Path

from .logger import get_logger

logger = get_logger(__name__)

_instance_ids = itertools.count()


class QueryLogHandler(logging.handlers.RotatingFileHandler):
    """Rotating file handler that keeps one backup named ``<file>.old``.

    maxBytes stays 0 so writes never roll over by themselves; rollover happens
    only when the owner asks for it between requests.
    """

    def __init__(self, filename: str):
        super().__init__(filename, maxBytes=0, backupCount=1, encoding="utf-8")
        self.namer = self._old_name

    def _old_name(self, default_name: str) -> str:
        return self.baseFilename + ".old"


class QueryLog:
    """Timestamped line sink backed by a dedicated file logger."""

    def __init__(self, log_file_path: str = "logs/dns-proxy.log"):
        """Initialize the query log.

        Args:
            log_file_path: Path to the query log file
        """
        self.log_file_path = Path(log_file_path)
        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)

        # One stdlib logger per sink so several sinks (tests) never share handlers
        self.file_logger = logging.getLogger(f"dns_proxy.query_log.{next(_instance_ids)}")
        self.file_logger.setLevel(logging.INFO)
        self.file_logger.propagate = False

        self.handler = QueryLogHandler(str(self.log_file_path))
        self.handler.setFormatter(
            logging.Formatter(fmt="%(asctime)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        )
        self.file_logger.addHandler(self.handler)

    @property
    def old_file_path(self) -> Path:
        return self.log_file_path.with_name(self.log_file_path.name + ".old")

    def record(self, line: str) -> None:
        """Append one timestamped line."""
        self.file_logger.info(line)

    def size(self) -> int:
        """Current size of the log file in bytes."""
        try:
            return self.log_file_path.stat().st_size
        except FileNotFoundError:
            return 0

    def rotate_if_oversize(self, max_bytes: int) -> bool:
        """Move the log aside to ``<file>.old`` once it exceeds max_bytes.

        Any previous ``.old`` file is replaced. Returns True if rotated.
        """
        size = self.size()
        if size <= max_bytes:
            return False

        self.handler.doRollover()

        logger.info(
            "Query log rotated",
            file=str(self.log_file_path),
            backup=str(self.old_file_path),
            size=size,
        )
        return True

    def close(self) -> None:
        """Release the file handle."""
        self.file_logger.removeHandler(self.handler)
        self.handler.close()
