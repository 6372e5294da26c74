"""
Database Engine and Sessions

Lazily builds one pooled engine for the configured store and hands out
request-scoped sessions to the API handlers.

Unlike a typical service, an absent DATABASE_URL is not an error here: read
endpoints fall back to empty results, so "not configured" is a first-class
state that callers check with is_database_configured().
"""

import logging
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from src.utils.config import get_settings
from .models import Base

logger = logging.getLogger(__name__)


# =============================================================================
# STORE LOCATION
# =============================================================================

def get_database_url() -> Optional[str]:
    """DATABASE_URL, else POSTGRES_URL, else None."""
    return get_settings().database_url


def is_database_configured() -> bool:
    return bool(get_database_url())


# =============================================================================
# ENGINE
# =============================================================================

def create_db_engine(url: str) -> Engine:
    """
    Build the engine for a store URL.

    PostgreSQL (production) gets a bounded QueuePool that pings before use;
    SQLite (local development) gets foreign key enforcement switched on.
    """
    echo = get_settings().SQL_DEBUG

    if url.startswith("postgresql"):
        engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=1800,          # seconds; below typical proxy idle cutoffs
            pool_pre_ping=True,
            echo=echo,
        )
        logger.info("PostgreSQL engine ready (pool_size=5, max_overflow=10)")
        return engine

    engine = create_engine(
        url,
        connect_args={"check_same_thread": False},  # handlers run in a threadpool
        echo=echo,
    )

    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    logger.info("SQLite engine ready")
    return engine


# Built on first use so importing the app never needs a database
_engine: Optional[Engine] = None
_SessionLocal = None


def get_engine() -> Engine:
    """
    Return the shared engine, creating it on first call.

    Raises:
        RuntimeError: If neither DATABASE_URL nor POSTGRES_URL is set
    """
    global _engine
    if _engine is None:
        url = get_database_url()
        if not url:
            raise RuntimeError("Database not configured (set DATABASE_URL)")
        _engine = create_db_engine(url)
    return _engine


def get_session_factory():
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
    return _SessionLocal


# =============================================================================
# REQUEST SESSIONS
# =============================================================================

def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency: one session per request, closed afterwards.

    Usage:
        @router.get("/searches")
        def searches(db: Session = Depends(get_db)):
            return get_recent_searches(db)
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def get_optional_db() -> Generator[Optional[Session], None, None]:
    """
    Like get_db, but yields None when the database is not configured.

    Read endpoints use this to serve their degraded response instead of failing.
    """
    if not is_database_configured():
        yield None
        return
    yield from get_db()


# =============================================================================
# SCHEMA AND HEALTH
# =============================================================================

def init_db(engine: Optional[Engine] = None) -> None:
    """
    Create all tables that do not exist yet.

    Production schema is managed by the web application's migrations; this
    is for local development and tests.
    """
    # Auth tables share the metadata and are referenced by foreign keys
    import src.auth.models  # noqa: F401

    engine = engine or get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info(f"Schema ready ({len(Base.metadata.tables)} tables)")


def check_db_connection() -> bool:
    """Run SELECT 1; False on any failure or when no store is configured."""
    if not is_database_configured():
        return False
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
