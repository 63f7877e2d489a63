"""
Configuration Validators

This module provides validation functions for DoH server configuration parameters.
"""

import ipaddress
import re
from pathlib import Path
from typing import Dict, List
from urllib.parse import urlparse

_TLD_PATTERN = re.compile(r"^[a-z0-9-]{1,63}$")


def validate_bind_address(address: str) -> bool:
    """Validate bind address format."""
    if not address:
        return False

    # Allow 0.0.0.0 for all interfaces
    if address == "0.0.0.0":
        return True

    try:
        ipaddress.ip_address(address)
        return True
    except ValueError:
        return False


def validate_boolean(value) -> bool:
    """Validate boolean value."""
    return isinstance(value, bool)


def validate_file_path(path: str) -> bool:
    """Validate file path format."""
    if not path:
        return False

    try:
        Path(path)
        return True
    except (TypeError, ValueError):
        return False


def validate_log_level(level: str) -> bool:
    """Validate log level."""
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    return level.upper() in valid_levels


def validate_positive_float(value: float) -> bool:
    """Validate positive float."""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def validate_positive_int(value: int) -> bool:
    """Validate positive integer."""
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_port(port: int) -> bool:
    """Validate port number."""
    return isinstance(port, int) and 1 <= port <= 65535


def validate_ttl(ttl: int) -> bool:
    """Validate a DNS TTL (unsigned 31-bit per RFC 2181)."""
    return isinstance(ttl, int) and 0 <= ttl <= 2**31 - 1


def validate_tld_name(name: str) -> bool:
    """Validate a single top-level domain label."""
    return isinstance(name, str) and bool(_TLD_PATTERN.match(name))


def validate_system_tlds(tlds: List[str]) -> bool:
    """Validate the static system TLD list."""
    if not isinstance(tlds, list):
        return False

    return all(validate_tld_name(tld) for tld in tlds)


def validate_doh_url(url: str) -> bool:
    """Validate a DNS-over-HTTPS endpoint URL."""
    if not isinstance(url, str) or not url:
        return False

    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_providers(providers: Dict[str, str]) -> bool:
    """Validate the upstream provider map (key -> DoH URL)."""
    if not isinstance(providers, dict) or not providers:
        return False

    for key, url in providers.items():
        if not isinstance(key, str) or not key:
            return False
        if not validate_doh_url(url):
            return False

    return True


def validate_database_url(url: str) -> bool:
    """Validate an SQLAlchemy database URL (dialect://...)."""
    if not isinstance(url, str) or "://" not in url:
        return False

    dialect = url.split("://", 1)[0]
    return bool(re.match(r"^[a-z][a-z0-9+_]*$", dialect))
