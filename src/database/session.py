"""
Database Session Management

Engine and session lifecycle for the verifier tables.
PostgreSQL in production (DATABASE_URL / POSTGRES_URL), SQLite file otherwise.
"""

import os
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from .models import Base

logger = logging.getLogger(__name__)

DEFAULT_SQLITE_PATH = "affimark_dev.db"

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


# =============================================================================
# DATABASE URL
# =============================================================================

def _as_sqlalchemy_url(url: str) -> str:
    # Supabase/Heroku style postgres:// is not accepted by SQLAlchemy 2
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


def get_database_url() -> str:
    """
    Resolve the database URL.

    Priority:
    1. DATABASE_URL
    2. POSTGRES_URL
    3. SQLite file at SQLITE_PATH (local development and tests)
    """
    for name in ("DATABASE_URL", "POSTGRES_URL"):
        url = os.getenv(name)
        if url:
            logger.info(f"Using database from {name}")
            return _as_sqlalchemy_url(url)

    sqlite_path = os.getenv("SQLITE_PATH", DEFAULT_SQLITE_PATH)
    logger.warning(f"No DATABASE_URL found, using SQLite: {sqlite_path}")
    return f"sqlite:///{sqlite_path}"


# =============================================================================
# ENGINE
# =============================================================================

def _postgres_engine(url: str, echo: bool) -> Engine:
    engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,  # seconds
        pool_pre_ping=True,
        echo=echo,
    )
    logger.info("Created PostgreSQL engine with connection pooling")
    return engine


def _sqlite_engine(url: str, echo: bool) -> Engine:
    engine = create_engine(url, connect_args={"check_same_thread": False}, echo=echo)

    # Watchlist alerts reference watchlist rows; SQLite only checks that with the pragma on
    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    logger.info("Created SQLite engine")
    return engine


def create_db_engine() -> Engine:
    url = get_database_url()
    echo = os.getenv("SQL_DEBUG", "false").lower() == "true"
    if url.startswith("postgresql"):
        return _postgres_engine(url, echo)
    return _sqlite_engine(url, echo)


def get_engine() -> Engine:
    """Get or lazily create the process-wide engine."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def reset_engine() -> None:
    """Dispose the engine and session factory so the next call reconnects."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


# =============================================================================
# SESSIONS
# =============================================================================

def get_session_factory() -> sessionmaker:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,  # repository returns detached rows as dicts
        )
    return _SessionLocal


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Unit of work: commits on success, rolls back and re-raises on error.

    Usage:
        with get_db_context() as db:
            db.add(VerifierSession(...))
    """
    db = get_session_factory()()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# =============================================================================
# INITIALIZATION
# =============================================================================

def init_db(drop_all: bool = False) -> None:
    """
    Create the verifier tables.

    Args:
        drop_all: Drop every table first (destroys data)
    """
    engine = get_engine()

    if drop_all:
        logger.warning("Dropping all verifier tables!")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready ({len(Base.metadata.tables)} tables)")


def check_db_connection() -> bool:
    """True when a trivial query succeeds."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
