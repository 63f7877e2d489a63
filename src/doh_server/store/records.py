"""
Registry Record Store

Read operations the resolution pipeline consumes, over the SQLAlchemy
tables in ``schema``. All methods are blocking; async callers run them in
a worker thread.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.engine import Engine

from .schema import domains, records, tlds

logger = logging.getLogger(__name__)

SYSTEM_OWNER = "SYSTEM"
WILDCARD_HOST = "*"


@dataclass
class TLDInfo:
    """Registration details of a managed TLD"""

    name: str
    is_public: bool
    price: int
    owner_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "owner_id": self.owner_id,
            "is_public": self.is_public,
            "price": self.price,
        }


@dataclass
class DomainInfo:
    id: int
    tld: str
    name: str


@dataclass
class StoredRecord:
    """A record row as the formatter consumes it"""

    type: str
    host: str
    value: str
    priority: Optional[int] = None
    ttl: Optional[int] = None


class SqlRecordStore:
    """Record store backed by a SQLAlchemy engine"""

    def __init__(self, engine: Engine, system_tlds: Iterable[str] = ()):
        self.engine = engine
        self.system_tlds = frozenset(tld.lower() for tld in system_tlds)

    def lookup_tld(self, name: str) -> Optional[TLDInfo]:
        """Registered TLD row for ``name``, or None."""
        stmt = select(tlds.c.name, tlds.c.owner_id, tlds.c.is_public, tlds.c.price).where(
            tlds.c.name == name
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).first()

        if row is None:
            return None
        return TLDInfo(
            name=row.name,
            owner_id=row.owner_id,
            is_public=bool(row.is_public),
            price=row.price or 0,
        )

    def is_system_tld(self, name: str) -> bool:
        return name in self.system_tlds

    def lookup_domain(self, tld: str, name: str) -> Optional[DomainInfo]:
        stmt = select(domains.c.id, domains.c.tld, domains.c.name).where(
            domains.c.tld == tld, domains.c.name == name
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).first()

        if row is None:
            return None
        return DomainInfo(id=row.id, tld=row.tld, name=row.name)

    def list_records(self, domain_id: int, host: str) -> List[StoredRecord]:
        """Records of a domain stored under ``host`` or the wildcard host."""
        stmt = (
            select(
                records.c.type,
                records.c.host,
                records.c.value,
                records.c.priority,
                records.c.ttl,
            )
            .where(
                records.c.domain_id == domain_id,
                or_(records.c.host == host, records.c.host == WILDCARD_HOST),
            )
            .order_by(records.c.id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).all()

        return [
            StoredRecord(
                type=row.type,
                host=row.host,
                value=row.value,
                priority=row.priority,
                ttl=row.ttl,
            )
            for row in rows
        ]

    def list_tlds(self) -> List[Dict[str, Any]]:
        """Registered TLDs followed by system TLDs that have no row."""
        stmt = select(tlds.c.name, tlds.c.owner_id, tlds.c.is_public, tlds.c.price).order_by(
            tlds.c.name
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).all()

        catalogue = [
            TLDInfo(
                name=row.name,
                owner_id=row.owner_id,
                is_public=bool(row.is_public),
                price=row.price or 0,
            ).to_dict()
            for row in rows
        ]
        registered = {entry["name"] for entry in catalogue}

        for name in sorted(self.system_tlds - registered):
            catalogue.append(
                TLDInfo(name=name, owner_id=SYSTEM_OWNER, is_public=True, price=0).to_dict()
            )

        return catalogue

    def is_available(self) -> bool:
        """True if the database answers and holds the registry tables."""
        try:
            with self.engine.connect() as conn:
                conn.execute(select(tlds.c.name).limit(1)).first()
            return True
        except Exception as e:
            logger.error(f"Record store unavailable: {e}")
            return False
