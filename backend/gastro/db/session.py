"""Engine and per-request database sessions.

SQLite is the default store. An in-memory URL (``sqlite://``) keeps a single
shared connection so every session sees the same tables.
"""

from collections.abc import Generator
from typing import Annotated, Any, Dict

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gastro.core.config import settings

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def engine_options(database_url: str) -> Dict[str, Any]:
    """Keyword arguments for ``create_engine`` suited to the backend."""
    if not database_url.startswith("sqlite"):
        return {
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,
            "pool_recycle": 3600,
        }

    options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if database_url in IN_MEMORY_URLS:
        options["poolclass"] = StaticPool
    else:
        options["pool_pre_ping"] = True
    return options


engine = create_engine(settings.database_url, echo=False, **engine_options(settings.database_url))

if settings.database_url.startswith("sqlite"):
    # Enforce foreign keys on SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """One session per request, rolled back if the handler fails."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


DbSession = Annotated[Session, Depends(get_db)]
