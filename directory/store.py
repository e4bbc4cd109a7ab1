"""
directory/store.py -- SQLAlchemy-backed persistence for advocates.

Uses SQLAlchemy Core (not ORM) so the dataclass in directory/models.py
remains the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. AdvocateStore is the repository;
_row_to_advocate is the mapper. Route handlers never touch SQL directly.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = AdvocateStore("sqlite:///advocates.db")
    advocate_id = store.create_advocate(advocate)
    page = store.list_advocates(offset=0, limit=10)
    store.close()
"""

import json
from typing import Optional

from sqlalchemy import BigInteger, Column, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from core.db import make_engine, now_iso
from directory.models import Advocate

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_advocates = Table(
    "advocates",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("first_name", Text, nullable=False),
    Column("last_name", Text, nullable=False),
    Column("city", Text, nullable=False),
    Column("degree", Text, nullable=False),
    Column("specialties", Text, nullable=False, server_default="[]"),  # JSON array serialized as text
    Column("years_of_experience", Integer, nullable=False),
    Column("phone_number", BigInteger, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_MUTABLE_FIELDS = frozenset(
    {"first_name", "last_name", "city", "degree", "specialties", "years_of_experience", "phone_number"}
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AdvocateStore:
    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    def create_advocate(self, advocate: Advocate) -> int:
        """Insert a new advocate and return its assigned database ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _advocates.insert().values(
                    first_name=advocate.first_name,
                    last_name=advocate.last_name,
                    city=advocate.city,
                    degree=advocate.degree,
                    specialties=json.dumps(advocate.specialties),
                    years_of_experience=advocate.years_of_experience,
                    phone_number=advocate.phone_number,
                    created_at=now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_advocate(self, advocate_id: int) -> Optional[Advocate]:
        """Fetch a single advocate by ID. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_advocates.select().where(_advocates.c.id == advocate_id)).fetchone()
        return _row_to_advocate(row) if row is not None else None

    def list_advocates(self, offset: int = 0, limit: Optional[int] = None) -> list[Advocate]:
        """Return advocates ordered by id."""
        query = _advocates.select().order_by(_advocates.c.id).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_advocate(r) for r in rows]

    def count_advocates(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_advocates)).scalar() or 0

    def update_advocate(self, advocate_id: int, **fields) -> bool:
        """Update mutable fields on an existing advocate.

        specialties must be passed as list[str]; this method serializes it to
        JSON before writing. Unknown field names raise ValueError.

        Returns True if a row was updated, False if advocate_id was not found.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown advocate fields: {sorted(unknown)!r}")
        if not fields:
            return self.get_advocate(advocate_id) is not None
        if "specialties" in fields:
            fields["specialties"] = json.dumps(fields["specialties"])
        with self.engine.connect() as conn:
            result = conn.execute(_advocates.update().where(_advocates.c.id == advocate_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_advocate(self, advocate_id: int) -> bool:
        """Delete an advocate. Returns True if deleted, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_advocates.delete().where(_advocates.c.id == advocate_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_advocate(row) -> Advocate:
    return Advocate(
        id=row.id,
        first_name=row.first_name,
        last_name=row.last_name,
        city=row.city,
        degree=row.degree,
        specialties=json.loads(row.specialties) if row.specialties else [],
        years_of_experience=row.years_of_experience,
        phone_number=row.phone_number,
        created_at=row.created_at,
    )
