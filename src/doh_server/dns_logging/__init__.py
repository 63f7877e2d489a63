"""
DoH Server Logging Module

This module provides structured logging for the DoH server with
per-transaction request tracking.
"""

from .dns_logger import (
    DoHRequestLogger,
    DoHRequestTracker,
)
from .logger import (
    StructuredLogger,
    get_logger,
    get_structured_logger,
    log_exception,
    setup_logging,
)

__all__ = [
    # Core logging
    "StructuredLogger",
    "setup_logging",
    "get_logger",
    "get_structured_logger",
    "log_exception",
    # DoH-specific logging
    "DoHRequestLogger",
    "DoHRequestTracker",
]
