"""
DoH Endpoint

RFC 8484 request handling for ``/dns-query`` and ``/dns-query/{provider}``:
POST carries the wire query as the body, GET carries it base64url-encoded
in the ``dns`` parameter.
"""

import base64
import binascii
from typing import Callable, Optional

from aiohttp import web
from aiohttp.web import Request, Response

from ..core.exceptions import InvalidQuery

ROOT_TEXT = "Root DNS Backend API Active."


def b64url_decode_nopad(value: str) -> bytes:
    """Decode base64url with the padding stripped, as RFC 8484 sends it."""
    pad = "=" * ((4 - len(value) % 4) % 4)
    return base64.urlsafe_b64decode(value + pad)


def _text(status: int, text: str) -> Response:
    return web.Response(status=status, text=text, content_type="text/plain")


def setup_doh_routes(app: web.Application, get_doh_server: Callable) -> None:
    """Setup the DoH endpoint and the root banner."""
    handler = DoHHandler(get_doh_server)

    app.router.add_route("*", "/dns-query", handler.handle)
    app.router.add_route("*", "/dns-query/", handler.handle)
    app.router.add_route("*", "/dns-query/{provider}", handler.handle)
    app.router.add_get("/", handler.root)


class DoHHandler:
    """Handles DoH queries."""

    def __init__(self, get_doh_server: Callable):
        self.get_doh_server = get_doh_server

    async def root(self, request: Request) -> Response:
        return _text(200, ROOT_TEXT)

    async def _read_query(self, request: Request) -> Optional[bytes]:
        if request.method == "POST":
            return await request.read()

        param = request.query.get("dns")
        if not param:
            return None
        try:
            return b64url_decode_nopad(param)
        except (ValueError, binascii.Error):
            return None

    async def handle(self, request: Request) -> Response:
        """Resolve one DoH query and return the wire answer or a text error."""
        if request.method not in ("GET", "POST"):
            return _text(405, "Method Not Allowed")

        doh_server = self.get_doh_server()
        if doh_server is None:
            return _text(503, "Service Unavailable")

        wire = await self._read_query(request)
        if wire is None:
            return _text(InvalidQuery.status, InvalidQuery.body)

        result = await doh_server.handle_doh_request(
            wire,
            provider=request.match_info.get("provider"),
            client_ip=request.remote or "unknown",
        )
        return web.Response(
            status=result.status,
            body=result.body,
            headers={"Content-Type": result.content_type},
        )
