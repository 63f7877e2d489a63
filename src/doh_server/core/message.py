"""
DNS Wire Codec

This module decodes inbound DoH query bodies and encodes authoritative
answers using dnspython:
- Query decoding with question-name decomposition (labels, TLD, domain, host)
- Response construction echoing ID and question section with the AA flag
- One RRset per answer so every stored TTL is preserved
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

import dns.exception
import dns.flags
import dns.message
import dns.name
import dns.rcode
import dns.rdataclass
import dns.rdatatype
import dns.rrset

from .exceptions import InvalidQuery
from .rdata import RdataError, to_rdata

logger = logging.getLogger(__name__)

APEX = "@"
WILDCARD_HOST = "*"


@dataclass
class DNSQuestion:
    """Question section entry with name decomposition"""

    name: str
    qtype: str
    qclass: str = "IN"
    wire_name: Optional[dns.name.Name] = None

    @property
    def labels(self) -> List[str]:
        return [label.lower() for label in self.name.rstrip(".").split(".") if label]

    @property
    def tld(self) -> str:
        return self.labels[-1]

    @property
    def domain(self) -> Optional[str]:
        labels = self.labels
        return labels[-2] if len(labels) >= 2 else None

    @property
    def host_path(self) -> str:
        """Leading labels below the domain, or ``@`` for the apex."""
        labels = self.labels
        return ".".join(labels[:-2]) if len(labels) > 2 else APEX


@dataclass
class DNSQuery:
    """Decoded inbound query"""

    id: int
    flags: int
    questions: List[DNSQuestion]
    message: dns.message.Message
    wire: bytes

    @property
    def question(self) -> DNSQuestion:
        return self.questions[0]


@dataclass
class Answer:
    """One formatted answer ready for encoding"""

    type: str
    name: str
    data: Any
    ttl: int
    rclass: str = field(default="IN")


def decode_query(wire: bytes) -> DNSQuery:
    """Decode an inbound DoH body.

    Raises:
        InvalidQuery: On undecodable bytes, an empty question section,
            or a question for the root name
    """
    try:
        message = dns.message.from_wire(wire)
    except (dns.exception.DNSException, ValueError, IndexError) as e:
        raise InvalidQuery(f"Malformed DNS message: {e}") from e

    if not message.question:
        raise InvalidQuery("Query has no question")

    questions = []
    for rrset in message.question:
        questions.append(
            DNSQuestion(
                name=rrset.name.to_text(omit_final_dot=True),
                qtype=dns.rdatatype.to_text(rrset.rdtype),
                qclass=dns.rdataclass.to_text(rrset.rdclass),
                wire_name=rrset.name,
            )
        )

    if not questions[0].labels:
        raise InvalidQuery("Question name has no labels")

    return DNSQuery(
        id=message.id,
        flags=message.flags,
        questions=questions,
        message=message,
        wire=wire,
    )


def build_rrset(question: DNSQuestion, answer: Answer) -> dns.rrset.RRset:
    """RRset for one answer, owned by the question name."""
    rdata = to_rdata(answer.type, answer.data)
    owner = question.wire_name or dns.name.from_text(answer.name)
    rrset = dns.rrset.RRset(owner, dns.rdataclass.IN, rdata.rdtype, rdata.covers())
    rrset.add(rdata, answer.ttl)
    return rrset


def build_response(
    query: DNSQuery, answers: List[Answer], rcode: int = dns.rcode.NOERROR
) -> dns.message.Message:
    """Authoritative response to ``query``.

    Answers whose data cannot be encoded are dropped with a warning.
    """
    response = dns.message.Message(id=query.id)
    response.flags = dns.flags.QR | dns.flags.AA
    response.set_rcode(rcode)
    response.question = list(query.message.question)

    for answer in answers:
        try:
            response.answer.append(build_rrset(query.question, answer))
        except RdataError as e:
            logger.warning(f"Dropping {answer.type} answer for {answer.name}: {e}")

    return response


def encode_answer(
    query: DNSQuery, answers: List[Answer], rcode: int = dns.rcode.NOERROR
) -> bytes:
    """Encode an authoritative response to ``query`` as wire bytes."""
    return build_response(query, answers, rcode).to_wire()


def answers_to_text(response: dns.message.Message) -> List[str]:
    """Presentation form of the answers in a response."""
    return [
        f"{dns.rdatatype.to_text(rrset.rdtype)} {rdata.to_text()}"
        for rrset in response.answer
        for rdata in rrset
    ]
