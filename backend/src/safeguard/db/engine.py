"""Engine factory with SQLite transaction handling.

SQLite connections get foreign keys, a busy timeout, and driver-level
autocommit disabled so SQLAlchemy controls BEGIN itself. Transactions open
with BEGIN IMMEDIATE, which takes the write lock up front and serializes
concurrent synchronizations. SAVEPOINTs (used by catalog get-or-create)
only work reliably with this setup under pysqlite.

Read-only transactions (list_classifications, find_classification) take the
write lock too and queue behind open writers for up to busy_timeout. Keep
read sessions short, or point reporting queries at a separate engine
without the begin listener.
"""

from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from safeguard.config import get_settings


def create_db_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """Create a SQLAlchemy engine for the given URL (defaults to settings).

    - SQLite: creates the parent directory of the database file, sets
      WAL mode, foreign keys, and busy timeout on each connection
    - Other backends: plain engine with pool_pre_ping
    """
    settings = get_settings()
    url = url or settings.database_url
    echo = settings.debug if echo is None else echo

    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True, echo=echo)

    if parsed.database and parsed.database != ":memory:":
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, echo=echo)

    @event.listens_for(engine, "connect")
    def set_sqlite_pragmas(dbapi_connection, connection_record):
        """Set SQLite PRAGMAs and hand transaction control to SQLAlchemy."""
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    @event.listens_for(engine, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


@lru_cache
def get_engine() -> Engine:
    """Module-level singleton engine, created on first use."""
    return create_db_engine()


# Session factory; bound to the engine when a session is opened
SessionLocal = sessionmaker(expire_on_commit=False)


@contextmanager
def get_db() -> Generator[Session, None, None]:
    """Context manager yielding a database session.

    Usage:
        with get_db() as db:
            summary = synchronize_classifications(db, establishment_id, entries)
    """
    db = SessionLocal(bind=get_engine())
    try:
        yield db
    finally:
        db.close()
