"""
Authority Resolver

This module decides, per query, between answering from the registry and
forwarding upstream:
- Managed TLD detection (registry table or static system set)
- Name decomposition into TLD, domain and host path
- Record lookup including wildcard hosts
- Type filtering (exact type, ANY, and CNAME always included)
- Per-record answer formatting and wire encoding
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import dns.rcode

from .exceptions import NameNotResolvable
from .formatter import format_record_data
from .message import (
    Answer,
    DNSQuery,
    DNSQuestion,
    answers_to_text,
    build_response,
)
from .upstream import DNS_MESSAGE_TYPE

logger = logging.getLogger(__name__)

AUTHORITATIVE = "authoritative"
PROXIED = "proxied"


@dataclass
class ResolutionResult:
    """Outcome of one resolution, ready to be returned over HTTP"""

    resolution: str
    status: int
    body: bytes
    content_type: str = DNS_MESSAGE_TYPE
    rcode: Optional[str] = None
    answer_count: int = 0
    response_data: List[str] = field(default_factory=list)
    upstream_url: Optional[str] = None


def record_matches(record_type: str, qtype: str) -> bool:
    """Type filter: exact type, an ANY query, or a CNAME record."""
    record_type = record_type.upper()
    qtype = qtype.upper()
    return record_type == qtype or qtype == "ANY" or record_type == "CNAME"


class AuthorityResolver:
    """Answers managed TLDs from the record store and proxies the rest"""

    def __init__(self, store, proxy, resolver_config):
        self.store = store
        self.proxy = proxy
        self.system_tlds = frozenset(resolver_config.system_tlds)
        self.default_ttl = resolver_config.default_ttl
        self.nxdomain_for_missing_domain = resolver_config.nxdomain_for_missing_domain

    async def is_managed(self, tld: str) -> bool:
        """True if ``tld`` is a system TLD or has a registry row."""
        if tld in self.system_tlds or self.store.is_system_tld(tld):
            return True
        return await asyncio.to_thread(self.store.lookup_tld, tld) is not None

    async def resolve(self, query: DNSQuery, provider: Optional[str] = None) -> ResolutionResult:
        """Resolve the first question of ``query``.

        Raises:
            NameNotResolvable: For a bare managed TLD (no domain label)
        """
        question = query.question

        if not await self.is_managed(question.tld):
            return await self._proxy(query, provider)

        if question.domain is None:
            raise NameNotResolvable(f"No domain label in {question.name}")

        return await self._answer(query, question)

    async def _proxy(self, query: DNSQuery, provider: Optional[str]) -> ResolutionResult:
        upstream = await self.proxy.forward(query.wire, provider)
        return ResolutionResult(
            resolution=PROXIED,
            status=upstream.status,
            body=upstream.body,
            content_type=upstream.content_type,
            upstream_url=upstream.url,
        )

    def _lookup_records(self, question: DNSQuestion):
        """Domain row and candidate records; runs in a worker thread."""
        domain = self.store.lookup_domain(question.tld, question.domain)
        if domain is None:
            return None, []
        return domain, self.store.list_records(domain.id, question.host_path)

    async def _answer(self, query: DNSQuery, question: DNSQuestion) -> ResolutionResult:
        domain, records = await asyncio.to_thread(self._lookup_records, question)

        rcode = dns.rcode.NOERROR
        if domain is None:
            logger.debug(f"Domain {question.domain}.{question.tld} is not registered")
            if self.nxdomain_for_missing_domain:
                rcode = dns.rcode.NXDOMAIN

        answers = self.select_answers(records, question)
        response = build_response(query, answers, rcode)

        return ResolutionResult(
            resolution=AUTHORITATIVE,
            status=200,
            body=response.to_wire(),
            rcode=dns.rcode.to_text(response.rcode()),
            answer_count=sum(len(rrset) for rrset in response.answer),
            response_data=answers_to_text(response),
        )

    def select_answers(self, records: Sequence, question: DNSQuestion) -> List[Answer]:
        """Filter records by the question type and format each kept one."""
        answers = []
        for record in records:
            if not record_matches(record.type, question.qtype):
                continue

            answers.append(
                Answer(
                    type=record.type.upper(),
                    name=question.name,
                    data=format_record_data(record.type, record.value, record.priority),
                    ttl=record.ttl if record.ttl else self.default_ttl,
                )
            )
        return answers
