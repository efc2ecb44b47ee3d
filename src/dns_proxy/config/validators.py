"""
Configuration Validators

This module provides validation functions for DNS proxy configuration parameters.
"""

import ipaddress
import re
import socket
from pathlib import Path
from typing import Union


def validate_bind_address(address: str) -> bool:
    """Validate bind address format."""
    if not address:
        return False

    try:
        ipaddress.IPv4Address(address)
        return True
    except ValueError:
        return False


def validate_file_path(path: str) -> bool:
    """Validate file path format."""
    if not path:
        return False

    try:
        Path(path)
        return True
    except (TypeError, ValueError):
        return False


def validate_log_level(level: str) -> bool:
    """Validate log level."""
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    return isinstance(level, str) and level.upper() in valid_levels


def validate_positive_float(value: float) -> bool:
    """Validate positive float."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and value > 0
    )


def validate_positive_int(value: int) -> bool:
    """Validate positive integer."""
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_port(port: Union[int, str]) -> bool:
    """Validate a port number or a service name."""
    if isinstance(port, bool):
        return False
    if isinstance(port, int):
        return 1 <= port <= 65535
    if isinstance(port, str) and port:
        if port.isdigit():
            return 1 <= int(port) <= 65535
        return bool(re.match(r"^[a-zA-Z0-9-]+$", port))
    return False


def validate_server_address(address: str) -> bool:
    """Validate an upstream resolver address (IPv4 only)."""
    if not isinstance(address, str) or not address:
        return False

    try:
        ipaddress.IPv4Address(address)
        return True
    except ValueError:
        return False


def validate_domain(domain: str) -> bool:
    """Validate a search domain suffix."""
    if not isinstance(domain, str) or not domain:
        return False
    return bool(re.match(r"^[a-zA-Z0-9_-]+(\.[a-zA-Z0-9_-]+)*\.?$", domain))


def resolve_port(port: Union[int, str]) -> int:
    """Resolve a port number or a service name to a UDP port number.

    Raises:
        ValueError: If the service name is unknown
    """
    if isinstance(port, int):
        return port
    if port.isdigit():
        return int(port)

    try:
        return socket.getservbyname(port, "udp")
    except OSError as e:
        raise ValueError(f"Unknown service name: {port}") from e
