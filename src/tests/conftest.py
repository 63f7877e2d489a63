"""Shared fixtures for the DoH server tests."""

import dns.message
import dns.rdatatype
import pytest
from sqlalchemy import insert

from doh_server.config.schema import LoggingConfig
from doh_server.dns_logging import setup_logging
from doh_server.store import domains, init_database, records, tlds


@pytest.fixture(autouse=True, scope="session")
def configured_logging():
    """Console-only logging so structlog loggers are available everywhere."""
    setup_logging(LoggingConfig(level="WARNING", format="simple", file=""))


def make_query(name: str, rdtype: str = "A") -> bytes:
    """Wire-format query for ``name``."""
    return dns.message.make_query(name, dns.rdatatype.from_text(rdtype)).to_wire()


def seed_registry(engine):
    """Registry with the managed TLD ``shop`` and the domain ``acme.shop``."""
    with engine.begin() as conn:
        conn.execute(
            insert(tlds).values(
                name="shop", owner_id="user-1", is_public=1, price=5, created_at=0, config="{}"
            )
        )
        domain_id = conn.execute(
            insert(domains).values(tld="shop", name="acme", owner_id="user-1", created_at=0)
        ).inserted_primary_key[0]

        conn.execute(
            insert(records),
            [
                {"domain_id": domain_id, "type": "A", "host": "@", "value": "203.0.113.5", "priority": None, "ttl": None},
                {"domain_id": domain_id, "type": "A", "host": "www", "value": "203.0.113.10", "priority": None, "ttl": 600},
                {"domain_id": domain_id, "type": "MX", "host": "@", "value": "mail.acme.shop", "priority": 20, "ttl": 3600},
                {"domain_id": domain_id, "type": "TXT", "host": "@", "value": "v=spf1 -all", "priority": None, "ttl": 300},
                {"domain_id": domain_id, "type": "CNAME", "host": "blog", "value": "www.acme.shop", "priority": None, "ttl": 300},
                {"domain_id": domain_id, "type": "A", "host": "*", "value": "203.0.113.99", "priority": None, "ttl": 60},
                {"domain_id": domain_id, "type": "A", "host": "mixed", "value": "not-an-address", "priority": None, "ttl": 60},
                {"domain_id": domain_id, "type": "AAAA", "host": "mixed", "value": "2001:db8::1", "priority": None, "ttl": 60},
            ],
        )
    return domain_id


@pytest.fixture
def registry_url(tmp_path):
    """SQLAlchemy URL of a seeded SQLite registry file."""
    url = f"sqlite:///{tmp_path / 'registry.db'}"
    engine = init_database(url)
    seed_registry(engine)
    engine.dispose()
    return url
