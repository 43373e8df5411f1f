"""Database session and unit of work. SQLite compatible with connection pooling."""
import logging
import sqlite3
import threading
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from cannaclub.core.config import settings
from cannaclub.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)


@event.listens_for(Engine, "connect")
def _sqlite_pragmas(dbapi_connection, connection_record):
    # SQLite ignores FOREIGN KEY clauses (ondelete rules included) unless asked per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


connect_args = (
    {"check_same_thread": False}
    if settings.DATABASE_URL.startswith("sqlite")
    else {}
)

if settings.DATABASE_URL.startswith("sqlite"):
    # SQLite: Use NullPool for thread-safety
    from sqlalchemy.pool import NullPool
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args=connect_args,
        poolclass=NullPool
    )
else:
    # PostgreSQL/MySQL: Use QueuePool with sensible defaults
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args=connect_args,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Serializes multi-step writes inside this process. Row locks (FOR UPDATE)
# cover the multi-process case on backends that support them.
_write_lock = threading.RLock()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    Run a workflow as one unit of work.

    Commits when the block finishes, rolls back every pending write when it
    raises. Store failures surface as PersistenceError; domain errors are
    re-raised untouched after the rollback.
    """
    with _write_lock:
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Unit of work rolled back after store failure: {e}")
            raise PersistenceError("The operation could not be saved") from e
        except Exception:
            db.rollback()
            raise
