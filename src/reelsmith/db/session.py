"""Database session management."""

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from reelsmith.config import settings
from reelsmith.db.models import Base
from reelsmith.logging import get_logger

logger = get_logger(__name__)


def build_engine(database_url: str) -> Engine:
    """Create an engine, applying SQLite-specific connection options."""
    url = make_url(database_url)
    kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if url.get_backend_name() == "sqlite":
        # Background tasks and request handlers share connections across threads
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    else:
        kwargs["pool_size"] = 5
        kwargs["max_overflow"] = 10
    return create_engine(database_url, **kwargs)


# Create engine
engine = build_engine(settings.database_url)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


@contextmanager
def get_session_context(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """Session scope: commit on success, roll back and re-raise on error."""
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind: Engine | None = None) -> None:
    """Create missing tables and verify connectivity."""
    target = bind or engine
    Base.metadata.create_all(target)

    with target.connect() as conn:
        conn.execute(text("SELECT 1"))


def check_db() -> bool:
    """Return True if the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("database_check_failed", error=str(e))
        return False
