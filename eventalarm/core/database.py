"""Database configuration and session management for SQLite.

Two databases are used: the device-side event store and the edge
dispatcher's state (last synced payloads and the dedupe ledger). Both go
through ``make_engine`` so they share the same SQLite configuration.

SQLite Configuration Choices:
    - **WAL (Write-Ahead Logging)**: Allows concurrent readers while writing.
      The foreground and background evaluator loops read the event store
      while the other one marks an event as notified.

    - **synchronous=FULL**: Every commit is fsynced before it returns. A
      reminder that was shown must stay marked as notified after a crash,
      so a successful commit has to mean a durable one.

    - **Foreign Keys**: Disabled by default in SQLite. We enable it so
      deleting a Schedule cascades to its Periods and PersonalEvents.

    - **check_same_thread=False**: Required for FastAPI and for APScheduler's
      thread pool, which may use a connection from a different thread than
      the one that created it.
"""

from sqlalchemy import event as sa_event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from eventalarm.core.config import settings
from eventalarm.models import EDGE_TABLES, STORE_TABLES


def make_engine(database_url: str, **kwargs) -> Engine:
    """Create an engine with the SQLite pragmas applied on every connection."""
    kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(database_url, echo=settings.debug, **kwargs)

    @sa_event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        """Configure SQLite pragmas on each new connection.

        These settings are connection-level, not database-level, so they must
        be set each time a new connection is established from the pool.
        """
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=FULL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


engine = make_engine(settings.edge_database_url)


def create_store_tables(store_engine: Engine) -> None:
    """Create the event store tables (schedules, periods, personal events, meta)."""
    SQLModel.metadata.create_all(store_engine, tables=STORE_TABLES)


def create_edge_tables(edge_engine: Engine = engine) -> None:
    """Create the edge dispatcher tables (sync state and dedupe ledger)."""
    SQLModel.metadata.create_all(edge_engine, tables=EDGE_TABLES)


def get_session():
    """Dependency for getting an edge database session."""
    with Session(engine) as session:
        yield session
