"""
DoH Server Configuration Schema

Configuration schema for the resolution pipeline, the upstream providers,
the record store, logging and the HTTP interface.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from .validators import (
    validate_bind_address,
    validate_boolean,
    validate_database_url,
    validate_file_path,
    validate_log_level,
    validate_port,
    validate_positive_float,
    validate_positive_int,
    validate_providers,
    validate_system_tlds,
    validate_ttl,
)

DEFAULT_PROVIDERS = {
    "google": "https://8.8.8.8/dns-query",
    "cf": "https://1.1.1.1/dns-query",
    "quad9": "https://9.9.9.9/dns-query",
}


@dataclass
class ServerConfig:
    """Server configuration section."""

    bind_address: str = "127.0.0.1"
    web_port: int = 8080
    request_timeout: float = 10.0
    max_query_size: int = 65535

    def __post_init__(self) -> None:
        """Validate server configuration."""
        if not validate_bind_address(self.bind_address):
            raise ValueError(f"Invalid bind address: {self.bind_address}")

        if not validate_port(self.web_port):
            raise ValueError(f"Invalid web port: {self.web_port}")

        if not validate_positive_float(self.request_timeout):
            raise ValueError(
                f"Request timeout must be positive: {self.request_timeout}"
            )

        if not validate_positive_int(self.max_query_size):
            raise ValueError(
                f"Max query size must be positive: {self.max_query_size}"
            )


@dataclass
class ResolverConfig:
    """Authoritative resolver configuration section."""

    system_tlds: List[str] = field(default_factory=list)
    default_ttl: int = 300
    nxdomain_for_missing_domain: bool = False

    def __post_init__(self) -> None:
        """Validate resolver configuration."""
        if isinstance(self.system_tlds, str):
            self.system_tlds = self.system_tlds.split(",")

        if isinstance(self.system_tlds, list):
            self.system_tlds = [
                str(tld).strip().lower() for tld in self.system_tlds if str(tld).strip()
            ]

        if not validate_system_tlds(self.system_tlds):
            raise ValueError(f"Invalid system TLDs: {self.system_tlds}")

        if not validate_ttl(self.default_ttl):
            raise ValueError(f"Invalid default TTL: {self.default_ttl}")

        if not validate_boolean(self.nxdomain_for_missing_domain):
            raise ValueError(
                "NXDOMAIN for missing domain must be boolean: "
                f"{self.nxdomain_for_missing_domain}"
            )


@dataclass
class UpstreamConfig:
    """Upstream DoH provider configuration section."""

    providers: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_PROVIDERS))
    default_provider: str = "google"

    def __post_init__(self) -> None:
        """Validate upstream configuration."""
        if not validate_providers(self.providers):
            raise ValueError(f"Invalid upstream providers: {self.providers}")

        if self.default_provider not in self.providers:
            raise ValueError(
                f"Default provider is not a configured provider: {self.default_provider}"
            )


@dataclass
class DatabaseConfig:
    """Record store configuration section."""

    url: str = "sqlite:///data/registry.db"
    echo: bool = False

    def __post_init__(self) -> None:
        """Validate database configuration."""
        if not validate_database_url(self.url):
            raise ValueError(f"Invalid database URL: {self.url}")

        if not validate_boolean(self.echo):
            raise ValueError(f"Database echo must be boolean: {self.echo}")


@dataclass
class LoggingConfig:
    """Logging configuration section."""

    level: str = "INFO"
    format: str = "structured"
    file: str = "logs/doh-server.log"
    max_size_mb: int = 100
    backup_count: int = 5
    enable_request_logging: bool = True

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        if not validate_log_level(self.level):
            raise ValueError(f"Invalid log level: {self.level}")

        if self.format not in ["simple", "detailed", "structured"]:
            raise ValueError(f"Invalid log format: {self.format}")

        if self.file and not validate_file_path(self.file):
            raise ValueError(f"Invalid log file path: {self.file}")

        if not validate_positive_int(self.max_size_mb):
            raise ValueError(f"Max size MB must be positive: {self.max_size_mb}")

        if not validate_positive_int(self.backup_count):
            raise ValueError(f"Backup count must be positive: {self.backup_count}")

        if not validate_boolean(self.enable_request_logging):
            raise ValueError(
                f"Enable request logging must be boolean: {self.enable_request_logging}"
            )


@dataclass
class WebConfig:
    """Web interface configuration section."""

    enabled: bool = True
    debug: bool = False
    api_enabled: bool = True

    def __post_init__(self) -> None:
        """Validate web configuration."""
        if not validate_boolean(self.enabled):
            raise ValueError(f"Web enabled must be boolean: {self.enabled}")

        if not validate_boolean(self.debug):
            raise ValueError(f"Web debug must be boolean: {self.debug}")

        if not validate_boolean(self.api_enabled):
            raise ValueError(f"API enabled must be boolean: {self.api_enabled}")


@dataclass
class DoHServerConfig:
    """Main DoH server configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    web: WebConfig = field(default_factory=WebConfig)


def create_default_config() -> DoHServerConfig:
    """Create a default configuration instance."""
    return DoHServerConfig()
