"""
Response Builder

Builds the three responses the proxy sends. Every response echoes the query's
transaction id and question section.
"""

from .message import (
    DNSMessage,
    DNSResponseCode,
    create_a_record,
    create_ptr_record,
)
from .resolver import QueryKind


class ResponseBuilder:
    """Outbound responses for a parsed query."""

    def __init__(self, answer_ttl: int):
        self.answer_ttl = answer_ttl

    def success(self, query: DNSMessage, kind: QueryKind, value: str) -> DNSMessage:
        """NOERROR with one A or PTR answer carrying value."""
        question = query.questions[0]
        response = query.create_response(DNSResponseCode.NOERROR)

        if kind is QueryKind.A:
            answer = create_a_record(question.name, value, self.answer_ttl)
        elif kind is QueryKind.PTR:
            answer = create_ptr_record(question.name, value, self.answer_ttl)
        else:
            raise ValueError(f"No answer record for query kind {kind.value}")

        response.answers.append(answer)
        return response

    def name_error(self, query: DNSMessage) -> DNSMessage:
        """NXDOMAIN with no answers."""
        return query.create_response(DNSResponseCode.NXDOMAIN)

    def not_implemented(self, query: DNSMessage) -> DNSMessage:
        """NOTIMP with no answers."""
        return query.create_response(DNSResponseCode.NOTIMP)
