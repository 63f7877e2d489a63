"""
DoH Server Main Entry Point

This script provides the main entry point for running the DoH server.
"""

import argparse
import asyncio
import platform
import signal
import sys
from typing import Optional

from doh_server.config.loader import ConfigLoader
from doh_server.config.schema import DoHServerConfig
from doh_server.core import AuthorityResolver, DoHServer, UpstreamProxy
from doh_server.dns_logging import get_logger, log_exception, setup_logging
from doh_server.store import SqlRecordStore, init_database
from doh_server.web import WebServer


class DoHServerApp:
    """DoH Server Application"""

    def __init__(self, config_path: Optional[str] = None, config: Optional[DoHServerConfig] = None):
        self.config_path = config_path or "config/default.yaml"
        self.config = config
        self.engine = None
        self.store = None
        self.upstream = None
        self.resolver = None
        self.doh_server = None
        self.web_server = None
        self.is_running = False
        self._shutdown_event = asyncio.Event()
        self.logger = None

    async def initialize(self):
        """Initialize the application"""
        try:
            if self.config is None:
                config_loader = ConfigLoader(self.config_path)
                self.config = config_loader.load_config()

            # Setup structured logging first
            self._setup_logging()

            self.logger.info("DoH server application initializing")

            self.engine = init_database(self.config.database.url, echo=self.config.database.echo)
            self.store = SqlRecordStore(self.engine, self.config.resolver.system_tlds)
            self.upstream = UpstreamProxy(self.config.upstream)
            self.resolver = AuthorityResolver(self.store, self.upstream, self.config.resolver)
            self.doh_server = DoHServer(self.config, self.resolver)

            if self.config.web.enabled:
                self.web_server = WebServer(self.config, self)

            self.logger.info(
                "DoH server application initialized",
                web_port=self.config.server.web_port,
                web_enabled=self.config.web.enabled,
                system_tlds=len(self.config.resolver.system_tlds),
                providers=sorted(self.config.upstream.providers),
                default_provider=self.config.upstream.default_provider,
            )

        except Exception as e:
            if self.logger:
                log_exception(self.logger, "Failed to initialize DoH server", e)
            else:
                print(f"Failed to initialize DoH server: {e}")
            raise

    def _setup_logging(self):
        """Setup structured logging configuration"""
        log_config = self.config.logging
        setup_logging(log_config)

        self.logger = get_logger("doh_server_app")

        self.logger.info(
            "Structured logging configured",
            level=log_config.level,
            format=log_config.format,
            file=log_config.file,
            max_size_mb=log_config.max_size_mb,
            backup_count=log_config.backup_count,
        )

    async def start(self):
        """Start the DoH server"""
        if not self.doh_server:
            await self.initialize()

        try:
            if self.web_server:
                await self.web_server.start()

            self.is_running = True
            self.logger.info(
                "DoH server started successfully",
                bind_address=self.config.server.bind_address,
                web_port=self.config.server.web_port,
                web_enabled=self.web_server is not None,
            )

            loop = asyncio.get_running_loop()
            for sig in [signal.SIGTERM, signal.SIGINT]:
                loop.add_signal_handler(sig, self._signal_handler)

            # Wait for shutdown signal
            await self._shutdown_event.wait()

        except Exception as e:
            log_exception(self.logger, "Error starting DoH server", e)
            raise
        finally:
            await self.stop()

    async def stop(self):
        """Stop the DoH server"""
        if self.logger:
            self.logger.info("Shutting down DoH server")

        if self.web_server:
            await self.web_server.stop()

        if self.upstream:
            await self.upstream.close()

        if self.engine:
            self.engine.dispose()

        self.is_running = False

        if self.logger:
            self.logger.info("DoH server application shutdown complete")

    def _signal_handler(self):
        """Handle shutdown signals"""
        self.logger.info("Received shutdown signal")
        self._shutdown_event.set()

    async def health_check(self):
        """Perform health check"""
        health = {"status": "not_running"}

        if self.doh_server:
            health = await self.doh_server.health_check()

            if self.web_server:
                health["web"] = await self.web_server.health_check()

        return health


def _init_db(app: DoHServerApp) -> None:
    config = ConfigLoader(app.config_path).load_config()
    engine = init_database(config.database.url, echo=config.database.echo)
    engine.dispose()
    print(f"Database initialized: {config.database.url}")


async def main():
    """Main function"""
    parser = argparse.ArgumentParser(description="DNS-over-HTTPS registry server")
    parser.add_argument(
        "--config", "-c", default="config/default.yaml", help="Configuration file path"
    )
    parser.add_argument(
        "--health-check", action="store_true", help="Perform health check and exit"
    )
    parser.add_argument(
        "--init-db", action="store_true", help="Create the registry tables and exit"
    )

    args = parser.parse_args()

    app = DoHServerApp(args.config)

    if args.init_db:
        try:
            _init_db(app)
            sys.exit(0)
        except Exception as e:
            print(f"Database initialization failed: {e}")
            sys.exit(1)
    elif args.health_check:
        try:
            await app.initialize()
            health = await app.health_check()
            await app.stop()
            print(f"Health status: {health['status']}")
            print(f"Store available: {health.get('store_available')}")
            sys.exit(0 if health["status"] == "healthy" else 1)
        except Exception as e:
            print(f"Health check failed: {e}")
            sys.exit(1)
    else:
        try:
            await app.start()
        except KeyboardInterrupt:
            print("\nReceived keyboard interrupt")
        except Exception as e:
            print(f"DoH server failed: {e}")
            sys.exit(1)


def run():
    """Console script entry point"""
    try:
        # uvloop on Unix systems for better async performance
        if platform.system() != "Windows":
            try:
                import uvloop
            except ImportError:
                uvloop = None
            if uvloop is not None:
                uvloop.run(main())
                return
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nDoH server interrupted")


if __name__ == "__main__":
    run()
