"""
DoH Server Core

This module implements the DoH request pipeline:
- Query size enforcement and wire decoding
- Authoritative resolution or upstream forwarding
- Per-request deadline around store reads and upstream calls
- Mapping of pipeline errors to plain-text HTTP responses
- Transaction tracking and counters
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..dns_logging import DoHRequestTracker
from .exceptions import DoHError, InvalidQuery, ServerError
from .message import decode_query
from .resolver import AUTHORITATIVE, PROXIED, ResolutionResult

logger = logging.getLogger(__name__)

TEXT_TYPE = "text/plain"


@dataclass
class DoHResponse:
    """HTTP-level result of one DoH request"""

    status: int
    body: bytes
    content_type: str

    @classmethod
    def from_error(cls, error: DoHError) -> "DoHResponse":
        return cls(status=error.status, body=error.body.encode("utf-8"), content_type=TEXT_TYPE)


class DoHServer:
    """Main DoH request handler"""

    def __init__(self, config, resolver, tracker=None):
        self.config = config
        self.resolver = resolver
        if tracker is None:
            tracker = DoHRequestTracker(enable_logging=config.logging.enable_request_logging)
        self.tracker = tracker

        self.request_timeout = config.server.request_timeout
        self.max_query_size = config.server.max_query_size

        self._stats = {
            "total_queries": 0,
            "authoritative": 0,
            "proxied": 0,
            "rejected": 0,
            "errors": 0,
            "start_time": time.time(),
            "response_times": [],
        }

    async def handle_doh_request(
        self, wire: bytes, provider: Optional[str] = None, client_ip: str = "unknown"
    ) -> DoHResponse:
        """
        Resolve one DoH query body and produce the HTTP response
        """
        request_id = self.tracker.start_request()
        self._stats["total_queries"] += 1
        query_type = ""
        domain = ""

        try:
            if len(wire) > self.max_query_size:
                raise InvalidQuery(f"Query of {len(wire)} bytes exceeds {self.max_query_size}")

            query = decode_query(wire)
            query_type = query.question.qtype
            domain = query.question.name

            try:
                result = await asyncio.wait_for(
                    self.resolver.resolve(query, provider), timeout=self.request_timeout
                )
            except asyncio.TimeoutError as e:
                raise ServerError(f"Deadline of {self.request_timeout}s exceeded") from e
            except DoHError:
                raise
            except Exception as e:
                logger.error(f"Resolution failed for {domain} from {client_ip}: {e}")
                raise ServerError(str(e)) from e

        except DoHError as e:
            resolution = "error" if isinstance(e, ServerError) else "rejected"
            self._stats["errors" if resolution == "error" else "rejected"] += 1
            if resolution == "rejected":
                logger.warning(f"Rejected DoH request from {client_ip}: {e}")

            response_time_ms = self.tracker.end_request(
                request_id,
                client_ip=client_ip,
                provider=provider,
                query_type=query_type,
                domain=domain,
                resolution=resolution,
                status=e.status,
                error=str(e),
            )
            self._record_time(response_time_ms)
            return DoHResponse.from_error(e)

        self._stats[result.resolution] += 1
        response_time_ms = self.tracker.end_request(
            request_id,
            client_ip=client_ip,
            provider=provider,
            query_type=query_type,
            domain=domain,
            resolution=result.resolution,
            status=result.status,
            rcode=result.rcode,
            answer_count=result.answer_count,
            response_data=self._response_data(result),
        )
        self._record_time(response_time_ms)

        return DoHResponse(status=result.status, body=result.body, content_type=result.content_type)

    @staticmethod
    def _response_data(result: ResolutionResult) -> List[str]:
        if result.resolution == PROXIED:
            return [f"upstream {result.upstream_url} status {result.status}"]
        return result.response_data

    def _record_time(self, response_time_ms: float) -> None:
        self._stats["response_times"].append(response_time_ms)

        # Keep only last 1000 response times for memory efficiency
        if len(self._stats["response_times"]) > 1000:
            self._stats["response_times"] = self._stats["response_times"][-1000:]

    def get_stats(self) -> Dict[str, Any]:
        """Get server statistics"""
        stats = {key: value for key, value in self._stats.items() if key != "response_times"}
        stats["uptime_seconds"] = time.time() - self._stats["start_time"]

        if self._stats["response_times"]:
            times = self._stats["response_times"]
            stats["avg_response_time_ms"] = sum(times) / len(times)
            stats["min_response_time_ms"] = min(times)
            stats["max_response_time_ms"] = max(times)
        else:
            stats["avg_response_time_ms"] = 0
            stats["min_response_time_ms"] = 0
            stats["max_response_time_ms"] = 0

        return stats

    async def health_check(self) -> Dict[str, Any]:
        """Perform health check"""
        store_ok = await asyncio.to_thread(self.resolver.store.is_available)
        stats = self.get_stats()

        return {
            "status": "healthy" if store_ok else "unhealthy",
            "store_available": store_ok,
            "uptime_seconds": stats["uptime_seconds"],
            "total_queries": stats["total_queries"],
            "authoritative": stats[AUTHORITATIVE],
            "proxied": stats[PROXIED],
            "errors": stats["errors"],
            "avg_response_time_ms": stats["avg_response_time_ms"],
        }
