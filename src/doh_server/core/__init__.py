"""
DoH Server Core Module

This module exports the resolution pipeline components.
"""

from .exceptions import DoHError, InvalidQuery, NameNotResolvable, ServerError
from .formatter import SUPPORTED_TYPES, format_record_data, parse_record_value
from .message import Answer, DNSQuery, DNSQuestion, decode_query, encode_answer
from .rdata import RdataError, to_rdata
from .resolver import AuthorityResolver, ResolutionResult
from .server import DoHResponse, DoHServer
from .upstream import UpstreamProxy, UpstreamResponse

__all__ = [
    # Main server
    "DoHServer",
    "DoHResponse",
    # Resolution
    "AuthorityResolver",
    "ResolutionResult",
    "UpstreamProxy",
    "UpstreamResponse",
    # Wire codec
    "DNSQuery",
    "DNSQuestion",
    "Answer",
    "decode_query",
    "encode_answer",
    "to_rdata",
    # Formatting
    "format_record_data",
    "parse_record_value",
    "SUPPORTED_TYPES",
    # Errors
    "DoHError",
    "InvalidQuery",
    "NameNotResolvable",
    "ServerError",
    "RdataError",
]
