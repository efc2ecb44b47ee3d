"""
DNS Proxy Core Module

This module exports the request loop, dispatcher, resolver chain and wire
codec components.
"""

from .context import ServiceContext
from .dispatcher import CACHE_SOURCE, Outcome, RequestDispatcher
from .message import (
    DNSClass,
    DNSHeader,
    DNSMessage,
    DNSOpcode,
    DNSQuestion,
    DNSRecordType,
    DNSResourceRecord,
    DNSResponseCode,
    MessageFormatError,
    create_a_record,
    create_ptr_record,
)
from .resolver import (
    Attempt,
    QueryKind,
    Resolution,
    ResolverChain,
    UpstreamResolver,
    reverse_lookup_key,
)
from .response import ResponseBuilder
from .server import Datagram, DNSProxyServer, ReceiveTimeout

__all__ = [
    # Service loop
    "DNSProxyServer",
    "ServiceContext",
    "Datagram",
    "ReceiveTimeout",
    # Request handling
    "RequestDispatcher",
    "ResponseBuilder",
    "Outcome",
    "CACHE_SOURCE",
    # Resolvers
    "ResolverChain",
    "UpstreamResolver",
    "QueryKind",
    "Attempt",
    "Resolution",
    "reverse_lookup_key",
    # Message components
    "DNSMessage",
    "DNSQuestion",
    "DNSResourceRecord",
    "DNSHeader",
    "MessageFormatError",
    # Enums
    "DNSRecordType",
    "DNSClass",
    "DNSResponseCode",
    "DNSOpcode",
    # Helper functions
    "create_a_record",
    "create_ptr_record",
]
