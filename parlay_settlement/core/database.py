"""
Database configuration and session management.
"""
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from parlay_settlement.core.config import settings

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """Get or create the database engine."""
    global _engine, _SessionLocal

    if _engine is None:
        options = {"echo": settings.SQL_ECHO}
        if settings.DATABASE_URL.startswith("sqlite"):
            options["connect_args"] = {"check_same_thread": False}
        else:
            options.update(
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,  # Verify connections before using
            )
        _engine = create_engine(settings.DATABASE_URL, **options)
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

    return _engine


def get_session_factory() -> sessionmaker:
    """Get the session factory bound to the configured engine."""
    get_engine()
    return _SessionLocal


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Commits on success, rolls back on any exception, always closes.

    Usage:
    ```python
    with session_scope() as db:
        ResolutionRunController(db, feed).run_once()
    ```
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


def init_db() -> None:
    """Initialize database tables."""
    from parlay_settlement.models import Base
    # checkfirst=True will only create tables that don't exist
    Base.metadata.create_all(bind=get_engine(), checkfirst=True)
