"""Database connection and session management using SQLAlchemy.

Every settlement or aggregation call is a short-lived, request-scoped unit of
work with its own session. Session patterns provided:

1. get_session(): Generator session with automatic commit/rollback
2. get_session_context(): Context manager for ``with`` statements
3. get_db(): FastAPI dependency (caller controls commits)
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..config.settings import settings


def build_engine(database_url: str | None = None, echo: bool | None = None) -> Engine:
    """Create an engine; SQLite gets no pool sizing and cross-thread access."""
    url = database_url or settings.database_url
    kwargs: dict = {"echo": settings.database_echo if echo is None else echo, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_size"] = settings.database_pool_size
    return create_engine(url, **kwargs)


# Created once at module load time and reused throughout the application
engine = build_engine()

SessionLocal = sessionmaker(
    autocommit=False,  # Require explicit session.commit() for transactions
    autoflush=False,  # Don't automatically flush changes before queries
    bind=engine,
)


def get_session() -> Generator[Session, None, None]:
    """Get database session with automatic commit/rollback and cleanup.

    If any exception occurs, the transaction is rolled back and the
    exception is re-raised.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def get_session_context() -> Generator[Session, None, None]:
    """Context manager wrapper for database sessions.

    Usage:
        with get_session_context() as session:
            SettlementEngine(LeagueRepository(session)).sweep()
    """
    yield from get_session()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency for database sessions.

    Does not commit: the repository commits its own per-matchup writes, and
    route handlers control anything else.
    """
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
