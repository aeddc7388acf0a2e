from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from config.settings import get_settings


def _is_sqlite_url(url: str) -> bool:
    return str(url).split(":")[0].lower().startswith("sqlite")


def _is_memory_sqlite(url: str) -> bool:
    if not _is_sqlite_url(url):
        return False
    database = make_url(url).database
    return database in (None, "", ":memory:")


def _ensure_sqlite_dir(database_url: str) -> None:
    """
    Ensure directory for SQLite file exists in dev when using a file-based URL.

    Handles common forms:
      - sqlite:///./data/toolgate.db
      - sqlite+pysqlite:///./data/toolgate.db
      - sqlite:////absolute/path/toolgate.db
    """
    if not _is_sqlite_url(database_url) or _is_memory_sqlite(database_url):
        return
    database = make_url(database_url).database
    if not database:
        return
    db_path = Path(database)
    parent_dir = (Path.cwd() / db_path).parent if not db_path.is_absolute() else db_path.parent
    parent_dir.mkdir(parents=True, exist_ok=True)


def _create_engine() -> Engine:
    """
    Create a SQLAlchemy Engine bound to settings, with SQLite-safe connect args.
    """
    database_url = get_settings().database_url
    _ensure_sqlite_dir(database_url)

    kwargs: dict = {"pool_pre_ping": True, "future": True, "echo": False}
    if _is_sqlite_url(database_url):
        # Requests are served from a thread pool; SQLite needs check_same_thread=False
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(database_url):
            # One shared connection, otherwise every thread sees its own empty database
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


# Singleton Engine and Session factory
engine: Engine = _create_engine()
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    class_=Session,
)


def get_session() -> Iterator[Session]:
    """
    FastAPI dependency that yields a DB session and ensures proper cleanup.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """
    Create the audit tables (idempotent). In production, migrations should replace this.
    """
    from db.models import Base

    Base.metadata.create_all(bind=engine)


__all__ = ["engine", "SessionLocal", "get_session", "init_db"]
