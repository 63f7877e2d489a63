"""
Registry Store Module

This module exports the record store used by the authority resolver.
"""

from .engine import create_db_engine, init_database
from .records import DomainInfo, SqlRecordStore, StoredRecord, TLDInfo
from .schema import domains, metadata, records, tlds

__all__ = [
    # Engine
    "create_db_engine",
    "init_database",
    # Store
    "SqlRecordStore",
    "TLDInfo",
    "DomainInfo",
    "StoredRecord",
    # Tables
    "metadata",
    "tlds",
    "domains",
    "records",
]
