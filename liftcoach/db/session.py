from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from fastapi import HTTPException
from loguru import logger
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from liftcoach.config.settings import settings
from liftcoach.db.models import Base

# Created on first use; importing this module never opens a connection
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _is_sqlite(url: str) -> bool:
    return url.lower().startswith("sqlite")


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str) -> Engine:
    """Create an engine for ``url``.

    SQLite gets cross-thread access (strength lookups run in worker threads)
    and enforced foreign keys; other backends get connection health checks.
    """
    if _is_sqlite(url):
        logger.warning(f"Using SQLite database (local development only): {url}")
        engine = create_engine(url, connect_args={"check_same_thread": False})
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_engine(url, pool_pre_ping=True, pool_recycle=3600)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine(settings.database_url)
        logger.info("Database engine initialized")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)
    return _session_factory


def create_tables() -> None:
    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables ensured")


def get_db() -> Generator[Session, None, None]:
    """Session for FastAPI dependencies; routes commit their own writes."""
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def get_session(factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    """Session scope for code outside request handling.

    Commits on clean exit, including work already flushed by repositories.
    HTTPException rolls back silently; any other error is logged before the
    rollback.
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except HTTPException:
        session.rollback()
        raise
    except Exception as e:
        logger.error(f"Database session error, rolling back: {type(e).__name__}: {e}")
        session.rollback()
        raise
    finally:
        session.close()
