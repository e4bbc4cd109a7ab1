"""
core/db.py -- SQLAlchemy engine construction shared by every store.

Both the credential store and the advocate store call make_engine() so the
SQLite tweaks live in one place:
  check_same_thread=False -- FastAPI runs sync handlers in a thread pool; a
      pooled connection may be used from a thread other than its creator.
  WAL journal mode        -- readers don't block the writer.

Layer rule: core/ is the kernel. No imports from api/, auth/, or directory/.
"""

from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    connect_args: dict = {}
    is_sqlite = db_url.startswith("sqlite")
    if is_sqlite:
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if is_sqlite:
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def now_iso() -> str:
    """Current UTC time as ISO 8601, the format every created_at column holds."""
    return datetime.now(timezone.utc).isoformat()
