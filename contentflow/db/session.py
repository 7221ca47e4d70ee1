"""Database engine, session factory, and FastAPI dependency."""

from __future__ import annotations

import logging
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from contentflow.db.base import Base

logger = logging.getLogger(__name__)

# Created on first use so importing the app never opens a connection
_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    """Return the global SQLAlchemy engine for settings.database_url."""
    global _engine
    if _engine is None:
        from contentflow.core.config import settings

        url = settings.database_url
        connect_args: dict = {}
        engine_kwargs: dict = {"echo": settings.database_echo}

        if url.startswith("sqlite"):
            # Store calls run in worker threads via asyncio.to_thread
            connect_args["check_same_thread"] = False
        else:
            engine_kwargs["pool_pre_ping"] = True

        _engine = create_engine(url, connect_args=connect_args, **engine_kwargs)
        logger.debug("Database engine created for %s", _engine.url.render_as_string())
    return _engine


def get_session_local() -> sessionmaker[Session]:
    """Return the global session factory bound to get_engine()."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=get_engine(),
        )
    return _SessionLocal


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a session per request.

    Uncommitted work is rolled back when the request handler raises.
    """
    db = get_session_local()()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_all_tables() -> None:
    """Create all tables from ORM metadata (dev convenience)."""
    Base.metadata.create_all(bind=get_engine())


def reset_engine() -> None:
    """Dispose the cached engine and drop the session factory. Used by tests."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
