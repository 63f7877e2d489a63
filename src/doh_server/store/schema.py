"""SQLAlchemy Core table definitions for the registry store.

The DoH pipeline only reads these tables; rows are written by the
management side of the registry.
"""

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

tlds = Table(
    "tlds",
    metadata,
    Column("name", Text, primary_key=True),
    Column("owner_id", Text),
    Column("is_public", Integer, default=0, server_default="0"),
    Column("price", Integer, default=0, server_default="0"),
    Column("created_at", Integer),  # epoch milliseconds
    Column("config", Text, default="{}", server_default="{}"),  # JSON object
)

domains = Table(
    "domains",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("tld", Text, nullable=False),
    Column("name", Text, nullable=False),
    Column("owner_id", Text),
    Column("created_at", Integer),  # epoch milliseconds
    UniqueConstraint("tld", "name"),
)

records = Table(
    "records",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("domain_id", Integer, ForeignKey("domains.id"), nullable=False),
    Column("type", Text, nullable=False),
    Column("host", Text, nullable=False, default="@", server_default="@"),
    Column("value", Text, nullable=False),  # plain string or JSON text
    Column("priority", Integer),
    Column("ttl", Integer),
)

Index("ix_records_domain_host", records.c.domain_id, records.c.host)
