"""
DoH Server Web API

Provides read-only REST API endpoints for:
- Server status and statistics
- Recent DoH transactions
- The TLD catalogue (registered and system TLDs)
- Configuration and health monitoring
"""

import asyncio
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Callable

from aiohttp import web
from aiohttp.web import Request, Response



def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def setup_api_routes(app: web.Application, get_doh_app: Callable) -> None:
    """Setup API routes."""
    api = APIHandler(get_doh_app)

    # Server status and stats
    app.router.add_get("/api/status", api.get_server_status)
    app.router.add_get("/api/stats", api.get_detailed_stats)

    # Transaction history
    app.router.add_get("/api/queries", api.get_query_logs)
    app.router.add_delete("/api/queries", api.clear_query_logs)

    # Registry
    app.router.add_get("/api/tlds", api.get_tlds)

    # Configuration and health
    app.router.add_get("/api/config", api.get_server_config)
    app.router.add_get("/api/health", api.health_check)


class APIHandler:
    """Handles all API endpoints."""

    def __init__(self, get_doh_app: Callable):
        """Initialize API handler.

        Args:
            get_doh_app: Returns the running application, or None
        """
        self.get_doh_app = get_doh_app

    def _unavailable(self) -> Response:
        return web.json_response({"error": "DoH server not available"}, status=503)

    async def get_server_status(self, request: Request) -> Response:
        """Get basic server status and statistics."""
        doh_app = self.get_doh_app()
        if not doh_app or not doh_app.doh_server:
            return self._unavailable()

        doh_stats = doh_app.doh_server.get_stats()
        tracker_stats = doh_app.doh_server.tracker.get_stats()

        return web.json_response(
            {
                "server": {
                    "status": "running" if doh_app.is_running else "stopped",
                    "uptime_seconds": doh_stats["uptime_seconds"],
                    "web_port": doh_app.config.server.web_port,
                    "bind_address": doh_app.config.server.bind_address,
                },
                "doh": doh_stats,
                "requests": tracker_stats,
                "timestamp": _timestamp(),
            }
        )

    async def get_detailed_stats(self, request: Request) -> Response:
        """Get detailed server statistics."""
        doh_app = self.get_doh_app()
        if not doh_app or not doh_app.doh_server:
            return self._unavailable()

        return web.json_response(
            {
                "doh": doh_app.doh_server.get_stats(),
                "requests": doh_app.doh_server.tracker.get_stats(),
                "system_tlds": sorted(doh_app.config.resolver.system_tlds),
                "providers": sorted(doh_app.config.upstream.providers),
                "timestamp": _timestamp(),
            }
        )

    async def get_query_logs(self, request: Request) -> Response:
        """Get recent DoH transactions with filtering."""
        doh_app = self.get_doh_app()
        if not doh_app or not doh_app.doh_server:
            return self._unavailable()

        try:
            limit = int(request.query.get("limit", 100))
            offset = int(request.query.get("offset", 0))
        except ValueError as ex:
            return web.json_response(
                {"error": f"Invalid query parameters: {str(ex)}"}, status=400
            )

        # Limit the maximum number of logs to prevent abuse
        limit = max(0, min(limit, 1000))
        offset = max(0, offset)

        filters = {}
        if request.query.get("domain"):
            filters["domain"] = request.query["domain"]
        if request.query.get("type"):
            filters["query_type"] = request.query["type"].upper()
        if request.query.get("client_ip"):
            filters["client_ip"] = request.query["client_ip"]
        if request.query.get("resolution"):
            filters["resolution"] = request.query["resolution"]

        logs = doh_app.doh_server.tracker.get_recent_requests(
            limit=limit, offset=offset, filters=filters
        )

        return web.json_response(
            {
                "logs": logs,
                "total": len(logs),
                "limit": limit,
                "offset": offset,
                "filters": filters,
                "timestamp": _timestamp(),
            }
        )

    async def clear_query_logs(self, request: Request) -> Response:
        """Clear the recent transaction window."""
        doh_app = self.get_doh_app()
        if not doh_app or not doh_app.doh_server:
            return self._unavailable()

        tracker = doh_app.doh_server.tracker
        cleared = tracker.get_request_count()
        tracker.clear_recent_requests()
        return web.json_response({"cleared": cleared, "timestamp": _timestamp()})

    async def get_tlds(self, request: Request) -> Response:
        """List registered TLDs merged with the system TLDs."""
        doh_app = self.get_doh_app()
        if not doh_app or not doh_app.store:
            return self._unavailable()

        tlds = await asyncio.to_thread(doh_app.store.list_tlds)
        return web.json_response(tlds)

    async def get_server_config(self, request: Request) -> Response:
        """Get current configuration (sanitized)."""
        doh_app = self.get_doh_app()
        if not doh_app:
            return self._unavailable()

        return web.json_response(
            {
                "config": self._sanitize_config(doh_app.config),
                "config_file": doh_app.config_path,
                "timestamp": _timestamp(),
            }
        )

    def _sanitize_config(self, config) -> dict:
        """Configuration sections safe to expose; the database URL may hold credentials."""
        config_dict = asdict(config)
        config_dict.pop("database", None)
        return config_dict

    async def health_check(self, request: Request) -> Response:
        """Get simple health check status."""
        doh_app = self.get_doh_app()
        if not doh_app:
            return web.json_response(
                {"status": "unhealthy", "message": "DoH server not available"},
                status=503,
            )

        health = await doh_app.health_check()

        return web.json_response(
            {
                "status": health.get("status", "unknown"),
                "timestamp": _timestamp(),
                "checks": health,
            },
            status=200 if health.get("status") == "healthy" else 503,
        )
