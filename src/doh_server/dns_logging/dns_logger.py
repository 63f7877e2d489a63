"""
DoH Request/Response Logging

This module provides DoH-specific logging: one structured event per
transaction, request ID tracking with timing, and an in-memory window of
recent transactions for the status API.
"""

import logging
import time
import uuid
from collections import Counter, deque
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .logger import get_logger, get_structured_logger

RESOLUTIONS = ("authoritative", "proxied", "rejected", "error")


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class DoHRequestLogger:
    """DoH transaction logger with structured output."""

    def __init__(self):
        self.logger = get_logger("doh_requests")

    def log_request(
        self,
        request_id: str,
        client_ip: str,
        provider: Optional[str],
        query_type: str,
        domain: str,
        resolution: str,
        status: int,
        rcode: Optional[str],
        answer_count: int,
        response_time_ms: float,
        response_data: Optional[List[str]] = None,
        error: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Log one DoH transaction and return the entry that was written.

        Args:
            request_id: Unique request identifier
            client_ip: Client IP address
            provider: Upstream provider key selected by the caller
            query_type: DNS query type (A, AAAA, MX, ...)
            domain: Domain name being queried
            resolution: How the query was answered (see RESOLUTIONS)
            status: HTTP status returned to the client
            rcode: DNS response code of the wire answer, if any
            answer_count: Number of answers in the wire answer
            response_time_ms: Response time in milliseconds
            response_data: Presentation form of the answers
            error: Error message (if any)
        """
        log_entry = {
            "timestamp": _utc_timestamp(),
            "request_id": request_id,
            "client_ip": client_ip,
            "provider": provider,
            "query_type": query_type,
            "domain": domain,
            "resolution": resolution,
            "status": status,
            "rcode": rcode,
            "answer_count": answer_count,
            "response_time_ms": round(response_time_ms, 2),
            "response_data": response_data or [],
        }

        if error:
            log_entry["error"] = error

        if error or status >= 500:
            self.logger.warning("DoH request failed", **log_entry)
        else:
            self.logger.info("DoH request processed", **log_entry)

        structured = get_structured_logger()
        if structured is not None:
            structured.write_json(
                "doh_requests", logging.INFO, "DoH request processed", log_entry
            )

        return log_entry


class DoHRequestTracker:
    """Tracks DoH requests for timing, logging and recent-history queries."""

    def __init__(self, max_recent_requests: int = 1000, enable_logging: bool = True):
        """Initialize request tracker.

        Args:
            max_recent_requests: Maximum number of recent requests kept in memory
            enable_logging: Emit a log event per finished request
        """
        self.active_requests: Dict[str, float] = {}
        self.recent_requests = deque(maxlen=max_recent_requests)
        self.max_recent_requests = max_recent_requests
        self.enable_logging = enable_logging
        self._totals: Counter = Counter()
        self._request_logger: Optional[DoHRequestLogger] = None

    @property
    def request_logger(self) -> DoHRequestLogger:
        if self._request_logger is None:
            self._request_logger = DoHRequestLogger()
        return self._request_logger

    def start_request(self, request_id: Optional[str] = None) -> str:
        """Start tracking a request and return its ID."""
        if request_id is None:
            request_id = str(uuid.uuid4())

        self.active_requests[request_id] = time.time()
        return request_id

    def end_request(
        self,
        request_id: str,
        client_ip: str,
        provider: Optional[str],
        query_type: str,
        domain: str,
        resolution: str,
        status: int,
        rcode: Optional[str] = None,
        answer_count: int = 0,
        response_data: Optional[List[str]] = None,
        error: Optional[str] = None,
    ) -> float:
        """End tracking a request, record it and return the elapsed milliseconds."""
        start_time = self.active_requests.pop(request_id, time.time())
        response_time_ms = (time.time() - start_time) * 1000

        request_record = {
            "timestamp": _utc_timestamp(),
            "request_id": request_id,
            "client_ip": client_ip,
            "provider": provider,
            "query_type": query_type,
            "domain": domain,
            "resolution": resolution,
            "status": status,
            "rcode": rcode,
            "answer_count": answer_count,
            "response_time_ms": round(response_time_ms, 2),
            "response_data": response_data or [],
        }
        if error:
            request_record["error"] = error

        self.recent_requests.appendleft(request_record)
        self._totals[resolution] += 1

        if self.enable_logging:
            self.request_logger.log_request(
                request_id=request_id,
                client_ip=client_ip,
                provider=provider,
                query_type=query_type,
                domain=domain,
                resolution=resolution,
                status=status,
                rcode=rcode,
                answer_count=answer_count,
                response_time_ms=response_time_ms,
                response_data=response_data,
                error=error,
            )

        return response_time_ms

    def get_recent_requests(
        self, limit: int = 50, offset: int = 0, filters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Get recent requests, newest first, optionally filtered."""
        requests_list = list(self.recent_requests)

        if filters:
            requests_list = [r for r in requests_list if self._matches_filters(r, filters)]

        return requests_list[offset : offset + limit]

    def _matches_filters(self, request: Dict[str, Any], filters: Dict[str, Any]) -> bool:
        for key, value in filters.items():
            if key == "domain":
                if value.lower() not in request.get("domain", "").lower():
                    return False
            elif key in ("query_type", "client_ip", "resolution"):
                if request.get(key) != value:
                    return False

        return True

    def get_stats(self) -> Dict[str, Any]:
        """Counts of finished requests by resolution."""
        stats = {resolution: self._totals.get(resolution, 0) for resolution in RESOLUTIONS}
        stats["total"] = sum(self._totals.values())
        stats["active"] = len(self.active_requests)
        stats["recent"] = len(self.recent_requests)
        return stats

    def get_request_count(self) -> int:
        return len(self.recent_requests)

    def clear_recent_requests(self) -> None:
        self.recent_requests.clear()
