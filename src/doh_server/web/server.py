"""
DoH Server Web Interface

This module provides the HTTP server using aiohttp for:
- The DoH endpoint (POST and GET ``/dns-query``)
- Read-only REST API endpoints for monitoring
"""

import asyncio
import weakref
from typing import Optional

from aiohttp import web
from aiohttp.web import Application

from ..config.schema import DoHServerConfig
from ..dns_logging import get_logger
from .api import setup_api_routes
from .doh import setup_doh_routes


class WebServer:
    """DoH Server HTTP Interface"""

    def __init__(self, config: DoHServerConfig, doh_server_app):
        """Initialize web server.

        Args:
            config: Full server configuration
            doh_server_app: Reference to main DoH server application
        """
        self.config = config
        self.doh_server_app = weakref.ref(doh_server_app)
        self.logger = get_logger("web_server")

        self.app: Optional[Application] = None
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None

    def _get_doh_server(self):
        doh_app = self.doh_server_app()
        return doh_app.doh_server if doh_app else None

    async def setup_application(self) -> Application:
        """Setup aiohttp application with routes and middleware."""
        app = web.Application(
            middlewares=[
                self._create_logging_middleware(),
                self._create_error_middleware(),
            ]
        )

        setup_doh_routes(app, self._get_doh_server)

        if self.config.web.api_enabled:
            setup_api_routes(app, self.doh_server_app)

        return app

    def _create_logging_middleware(self):
        """Create logging middleware."""
        logger = self.logger

        @web.middleware
        async def logging_middleware(request, handler):
            """Log HTTP requests."""
            start_time = asyncio.get_running_loop().time()

            try:
                response = await handler(request)
            except web.HTTPException as ex:
                process_time = asyncio.get_running_loop().time() - start_time
                logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.path,
                    remote=request.remote,
                    status=ex.status,
                    response_time_ms=round(process_time * 1000, 2),
                )
                raise
            except Exception:
                process_time = asyncio.get_running_loop().time() - start_time
                logger.error(
                    "HTTP request failed",
                    method=request.method,
                    path=request.path,
                    remote=request.remote,
                    response_time_ms=round(process_time * 1000, 2),
                )
                raise

            process_time = asyncio.get_running_loop().time() - start_time
            logger.info(
                "HTTP request",
                method=request.method,
                path=request.path,
                remote=request.remote,
                status=response.status,
                response_time_ms=round(process_time * 1000, 2),
            )
            return response

        return logging_middleware

    def _create_error_middleware(self):
        """Create error handling middleware."""
        logger = self.logger
        config = self.config

        @web.middleware
        async def error_middleware(request, handler):
            """Handle HTTP errors gracefully."""
            try:
                return await handler(request)
            except web.HTTPNotFound:
                return web.Response(status=404, text="Not Found", content_type="text/plain")
            except web.HTTPException:
                # Re-raise HTTP exceptions as they are handled properly by aiohttp
                raise
            except Exception as ex:
                logger.error(
                    "Unhandled error in web server",
                    method=request.method,
                    path=request.path,
                    error=str(ex),
                )

                return web.json_response(
                    {
                        "error": "Internal server error",
                        "message": str(ex)
                        if config.web.debug
                        else "An unexpected error occurred",
                    },
                    status=500,
                )

        return error_middleware

    async def start(self) -> None:
        """Start the web server."""
        if self.runner:
            self.logger.warning("Web server is already running")
            return

        host = self.config.server.bind_address
        port = self.config.server.web_port

        try:
            self.app = await self.setup_application()

            self.runner = web.AppRunner(self.app)
            await self.runner.setup()

            self.site = web.TCPSite(self.runner, host=host, port=port)
            await self.site.start()

            self.logger.info("Web server started", host=host, port=port)

        except Exception as ex:
            self.logger.error("Failed to start web server", error=str(ex))
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the web server."""
        self.logger.info("Stopping web server")

        if self.site:
            await self.site.stop()
            self.site = None

        if self.runner:
            await self.runner.cleanup()
            self.runner = None

        self.app = None

        self.logger.info("Web server stopped")

    async def health_check(self) -> dict:
        """Get web server health status."""
        return {"status": "healthy" if self.runner else "stopped"}
