"""
DNS Message Codec

RFC 1035 message handling for the proxy:
- header parsing/construction
- question section handling
- answer records for A and PTR
- name compression on decode

Names are carried in presentation form without the trailing root dot
("example.com"); the root itself is the empty string.
"""

import socket
import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Tuple, Union

HEADER_LENGTH = 12
MAX_POINTER_JUMPS = 64


class MessageFormatError(ValueError):
    """Raised when bytes cannot be decoded as a DNS message."""


class DNSOpcode(IntEnum):
    """DNS Operation Codes"""

    QUERY = 0
    IQUERY = 1
    STATUS = 2
    NOTIFY = 4
    UPDATE = 5


class DNSResponseCode(IntEnum):
    """DNS Response Codes"""

    NOERROR = 0
    FORMERR = 1
    SERVFAIL = 2
    NXDOMAIN = 3
    NOTIMP = 4
    REFUSED = 5


class DNSRecordType(IntEnum):
    """DNS Record Types"""

    A = 1
    NS = 2
    CNAME = 5
    SOA = 6
    PTR = 12
    MX = 15
    TXT = 16
    AAAA = 28
    ANY = 255


class DNSClass(IntEnum):
    """DNS Classes"""

    IN = 1
    CS = 2
    CH = 3
    HS = 4
    ANY = 255


def type_name(rtype: int) -> str:
    """Mnemonic for a record type, TYPEnnn for unknown values."""
    try:
        return DNSRecordType(rtype).name
    except ValueError:
        return f"TYPE{rtype}"


def class_name(rclass: int) -> str:
    try:
        return DNSClass(rclass).name
    except ValueError:
        return f"CLASS{rclass}"


def encode_name(name: str) -> bytes:
    """Encode a domain name using DNS label encoding (no compression)."""
    name = name.rstrip(".")
    if not name:
        return b"\x00"

    result = b""
    for label in name.split("."):
        label_bytes = label.encode("ascii")
        if not label_bytes or len(label_bytes) > 63:
            raise ValueError(f"Invalid label length in name: {name}")
        result += struct.pack("!B", len(label_bytes)) + label_bytes
    return result + b"\x00"


def decode_name(data: bytes, offset: int) -> Tuple[str, int]:
    """Decode a possibly compressed name at offset.

    Returns the name and the offset just past it in the original stream.
    """
    labels = []
    end_offset = None
    jumps = 0

    while True:
        if offset >= len(data):
            raise MessageFormatError("Invalid name: offset out of bounds")

        length = data[offset]

        if length == 0:
            offset += 1
            break
        elif (length & 0xC0) == 0xC0:
            if offset + 1 >= len(data):
                raise MessageFormatError("Invalid compression pointer")
            jumps += 1
            if jumps > MAX_POINTER_JUMPS:
                raise MessageFormatError("Compression pointer loop")
            if end_offset is None:
                end_offset = offset + 2
            offset = ((length & 0x3F) << 8) | data[offset + 1]
        elif length & 0xC0:
            raise MessageFormatError(f"Unsupported label type: {length:#x}")
        else:
            if offset + length + 1 > len(data):
                raise MessageFormatError("Invalid label: length exceeds data")
            try:
                labels.append(data[offset + 1 : offset + 1 + length].decode("ascii"))
            except UnicodeDecodeError as e:
                raise MessageFormatError(f"Non-ASCII label: {e}") from e
            offset += length + 1

    return ".".join(labels), end_offset if end_offset is not None else offset


@dataclass
class DNSHeader:
    """DNS Message Header"""

    transaction_id: int
    flags: int = 0
    question_count: int = 0
    answer_count: int = 0
    authority_count: int = 0
    additional_count: int = 0

    # Flag field components
    qr: bool = False
    opcode: int = DNSOpcode.QUERY
    aa: bool = False
    tc: bool = False
    rd: bool = True
    ra: bool = False
    z: int = 0
    rcode: int = DNSResponseCode.NOERROR

    def __post_init__(self):
        self.flags = self.pack_flags()

    def pack_flags(self) -> int:
        return (
            (int(self.qr) << 15)
            | (self.opcode << 11)
            | (int(self.aa) << 10)
            | (int(self.tc) << 9)
            | (int(self.rd) << 8)
            | (int(self.ra) << 7)
            | (self.z << 4)
            | self.rcode
        )

    @classmethod
    def parse_flags(cls, flags: int) -> Dict[str, Union[bool, int]]:
        """Parse flags field into individual components"""
        return {
            "qr": bool(flags & 0x8000),
            "opcode": (flags >> 11) & 0x0F,
            "aa": bool(flags & 0x0400),
            "tc": bool(flags & 0x0200),
            "rd": bool(flags & 0x0100),
            "ra": bool(flags & 0x0080),
            "z": (flags >> 4) & 0x07,
            "rcode": flags & 0x0F,
        }

    def to_bytes(self) -> bytes:
        return struct.pack(
            "!HHHHHH",
            self.transaction_id,
            self.pack_flags(),
            self.question_count,
            self.answer_count,
            self.authority_count,
            self.additional_count,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "DNSHeader":
        if len(data) < HEADER_LENGTH:
            raise MessageFormatError("Invalid DNS header: too short")

        tid, flags, qcount, acount, authcount, addcount = struct.unpack(
            "!HHHHHH", data[:HEADER_LENGTH]
        )

        return cls(
            transaction_id=tid,
            flags=flags,
            question_count=qcount,
            answer_count=acount,
            authority_count=authcount,
            additional_count=addcount,
            **cls.parse_flags(flags),
        )


@dataclass
class DNSQuestion:
    """DNS Question Section"""

    name: str
    qtype: int
    qclass: int

    def to_bytes(self) -> bytes:
        return encode_name(self.name) + struct.pack("!HH", self.qtype, self.qclass)

    @classmethod
    def parse(cls, data: bytes, offset: int) -> Tuple["DNSQuestion", int]:
        name, offset = decode_name(data, offset)
        if offset + 4 > len(data):
            raise MessageFormatError("Invalid question: not enough data for type and class")

        qtype, qclass = struct.unpack("!HH", data[offset : offset + 4])
        return cls(name=name, qtype=qtype, qclass=qclass), offset + 4


@dataclass
class DNSResourceRecord:
    """DNS Resource Record"""

    name: str
    rtype: int
    rclass: int
    ttl: int
    rdata: bytes

    def to_bytes(self) -> bytes:
        header = struct.pack("!HHIH", self.rtype, self.rclass, self.ttl, len(self.rdata))
        return encode_name(self.name) + header + self.rdata

    @classmethod
    def parse(cls, data: bytes, offset: int) -> Tuple["DNSResourceRecord", int]:
        name, offset = decode_name(data, offset)

        if offset + 10 > len(data):
            raise MessageFormatError("Invalid resource record: not enough data for header")

        rtype, rclass, ttl, rdlength = struct.unpack("!HHIH", data[offset : offset + 10])
        offset += 10

        if offset + rdlength > len(data):
            raise MessageFormatError("Invalid resource record: not enough data for rdata")

        rdata = data[offset : offset + rdlength]
        return cls(name=name, rtype=rtype, rclass=rclass, ttl=ttl, rdata=rdata), offset + rdlength

    def get_readable_rdata(self) -> str:
        """Human-readable rdata for the record types the proxy answers with."""
        if self.rtype == DNSRecordType.A:
            return socket.inet_ntoa(self.rdata)
        if self.rtype == DNSRecordType.PTR:
            return decode_name(self.rdata, 0)[0]
        return self.rdata.hex()


@dataclass
class DNSMessage:
    """Complete DNS Message"""

    header: DNSHeader
    questions: List[DNSQuestion] = field(default_factory=list)
    answers: List[DNSResourceRecord] = field(default_factory=list)
    authority: List[DNSResourceRecord] = field(default_factory=list)
    additional: List[DNSResourceRecord] = field(default_factory=list)

    def to_bytes(self) -> bytes:
        self.header.question_count = len(self.questions)
        self.header.answer_count = len(self.answers)
        self.header.authority_count = len(self.authority)
        self.header.additional_count = len(self.additional)

        parts = [self.header.to_bytes()]
        parts.extend(q.to_bytes() for q in self.questions)
        for section in (self.answers, self.authority, self.additional):
            parts.extend(rr.to_bytes() for rr in section)
        return b"".join(parts)

    @classmethod
    def from_bytes(cls, data: bytes) -> "DNSMessage":
        """Parse complete DNS message from bytes

        Raises:
            MessageFormatError: If the data is not a well-formed message
        """
        header = DNSHeader.from_bytes(data)
        offset = HEADER_LENGTH

        questions = []
        for _ in range(header.question_count):
            question, offset = DNSQuestion.parse(data, offset)
            questions.append(question)

        sections: List[List[DNSResourceRecord]] = []
        for count in (header.answer_count, header.authority_count, header.additional_count):
            records = []
            for _ in range(count):
                record, offset = DNSResourceRecord.parse(data, offset)
                records.append(record)
            sections.append(records)

        answers, authority, additional = sections
        return cls(
            header=header,
            questions=questions,
            answers=answers,
            authority=authority,
            additional=additional,
        )

    def is_query(self) -> bool:
        return not self.header.qr and self.header.opcode == DNSOpcode.QUERY

    def create_response(self, rcode: int = DNSResponseCode.NOERROR) -> "DNSMessage":
        """Create a response echoing this query's id and question section."""
        response_header = DNSHeader(
            transaction_id=self.header.transaction_id,
            qr=True,
            opcode=self.header.opcode,
            rd=self.header.rd,
            ra=True,
            rcode=rcode,
        )

        return DNSMessage(header=response_header, questions=list(self.questions))


def create_a_record(name: str, ip: str, ttl: int = 300) -> DNSResourceRecord:
    """Create an A record

    Raises:
        OSError: If ip is not a dotted-quad IPv4 address
    """
    return DNSResourceRecord(
        name=name,
        rtype=DNSRecordType.A,
        rclass=DNSClass.IN,
        ttl=ttl,
        rdata=socket.inet_aton(ip),
    )


def create_ptr_record(name: str, target: str, ttl: int = 300) -> DNSResourceRecord:
    """Create a PTR record"""
    return DNSResourceRecord(
        name=name,
        rtype=DNSRecordType.PTR,
        rclass=DNSClass.IN,
        ttl=ttl,
        rdata=encode_name(target),
    )
