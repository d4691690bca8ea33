"""
Database plumbing: engine/session factory and the scoped transaction guard.

transaction() is the only place a commit happens. It commits when the block
exits normally and rolls back on any exception, re-raising it unchanged.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from exception_areas.config_types import DatabaseConfig
from exception_areas.models.orm import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(config: Optional[DatabaseConfig] = None) -> Engine:
    """
    Create the SQLAlchemy engine for the configured URL.

    In-memory SQLite URLs share a single connection so every session sees
    the same database.
    """
    config = config or DatabaseConfig()
    kwargs = {"echo": config.echo, "future": True}
    if config.url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in config.url or config.url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool

    engine = create_engine(config.url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_session_factory(
    engine: Engine, create_schema: bool = False
) -> "sessionmaker[Session]":
    """Session factory bound to an engine, optionally creating the tables."""
    if create_schema:
        Base.metadata.create_all(engine)
        logger.info(f"✅ Schema ensured on {engine.url.render_as_string(hide_password=True)}")
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """
    Scoped transaction guard.

    Usage:
        with session_factory() as session:
            with transaction(session):
                session.add(row)
    """
    try:
        yield session
    except BaseException as e:
        session.rollback()
        logger.warning(f"⚠️ Transaction rolled back: {type(e).__name__}: {e}")
        raise
    else:
        session.commit()
