"""SQLAlchemy engine and session factory for the catalog store."""

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import get_settings


settings = get_settings()


def enable_sqlite_foreign_keys(engine) -> None:
    """SQLite ignores FOREIGN KEY clauses unless each connection opts in."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _build_engine():  # pragma: no cover - simple configuration helper
    url = settings.url
    engine_kwargs = {
        "echo": settings.echo,
        "future": True,
    }

    if url.startswith("sqlite"):
        engine_kwargs.update(
            {
                "connect_args": {"check_same_thread": False, "timeout": 30},
                "poolclass": StaticPool,
            }
        )
    else:
        engine_kwargs["pool_pre_ping"] = True

    engine = create_engine(url, **engine_kwargs)
    if url.startswith("sqlite"):
        enable_sqlite_foreign_keys(engine)
    return engine


engine = _build_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


@contextmanager
def session_scope() -> Session:
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
