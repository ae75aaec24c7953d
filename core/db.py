"""
core/db.py -- Shared SQLAlchemy metadata and engine factory.

Users, catalog entities, and rental records live in one database because the
rental history joins book titles and the referential guards query books from
author/publisher deletes. Each store module declares its tables on the shared
`metadata` below and receives the same Engine.

Usage:
    engine = create_db_engine("sqlite:///library.db")
    users = UserStore(engine)
    catalog = CatalogStore(engine)
    rentals = RentalStore(engine)
    ...
    engine.dispose()

Layer rule: core/ is the kernel. No imports from api/, auth/, catalog/, or
rentals/.
"""

from datetime import datetime, timezone

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Engine

metadata = MetaData()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_db_engine(db_url: str) -> Engine:
    """Build an Engine for db_url.

    Tables are created by the store constructors: each one calls
    metadata.create_all(), which only creates what is missing.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # FastAPI runs sync handlers in a thread pool; a pooled connection may
        # be used from a thread other than the one that opened it.
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
