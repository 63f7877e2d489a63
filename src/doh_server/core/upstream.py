"""
Upstream DoH Proxy

Forwards undecoded query bodies to a public DoH resolver and relays its
reply unchanged.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import aiohttp

DNS_MESSAGE_TYPE = "application/dns-message"

logger = logging.getLogger(__name__)


@dataclass
class UpstreamResponse:
    """Relayed upstream reply"""

    status: int
    body: bytes
    url: str
    content_type: str = DNS_MESSAGE_TYPE


class UpstreamProxy:
    """Verbatim DoH forwarder over a shared aiohttp client session"""

    def __init__(self, upstream_config, session: Optional[aiohttp.ClientSession] = None):
        self.providers: Dict[str, str] = dict(upstream_config.providers)
        self.default_provider: str = upstream_config.default_provider
        self._session = session
        self._owns_session = session is None

    def resolve_url(self, provider: Optional[str]) -> str:
        """Endpoint for a provider key; unknown keys use the default provider."""
        if provider and provider in self.providers:
            return self.providers[provider]
        return self.providers[self.default_provider]

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def forward(self, wire: bytes, provider: Optional[str] = None) -> UpstreamResponse:
        """POST ``wire`` to the selected upstream and relay status and body.

        Raises:
            aiohttp.ClientError: If the upstream cannot be reached
        """
        url = self.resolve_url(provider)
        session = await self._get_session()

        async with session.post(
            url, data=wire, headers={"Content-Type": DNS_MESSAGE_TYPE}
        ) as resp:
            body = await resp.read()
            logger.debug(f"Upstream {url} replied {resp.status} ({len(body)} bytes)")
            return UpstreamResponse(status=resp.status, body=body, url=url)

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None
