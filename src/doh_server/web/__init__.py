"""
DoH Server Web Interface Module

This module provides the HTTP interface for the DoH server including:
- The DoH endpoint (RFC 8484 POST and GET)
- Read-only REST API endpoints for monitoring
"""

from .server import WebServer

__all__ = ["WebServer"]
