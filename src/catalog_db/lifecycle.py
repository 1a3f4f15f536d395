"""Schema bootstrap helpers for the catalog database."""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.engine import make_url

from .schema import Base, SchemaVersion
from .session import engine, session_scope

logger = logging.getLogger(__name__)


SCHEMA_VERSION = "1.0.0"


def _ensure_sqlite_directory() -> None:
    url = make_url(str(engine.url))
    if url.get_backend_name() != "sqlite":
        return
    database = url.database
    if not database or database == ":memory:":
        return
    Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def ensure_schema() -> str:
    _ensure_sqlite_directory()
    Base.metadata.create_all(engine)

    with session_scope() as session:
        version_row = session.execute(select(SchemaVersion).where(SchemaVersion.version == SCHEMA_VERSION)).scalar_one_or_none()
        if version_row:
            return version_row.version
        session.add(SchemaVersion(version=SCHEMA_VERSION))
        logger.info("Catalog schema created version=%s url=%s", SCHEMA_VERSION, engine.url.render_as_string(hide_password=True))
        return SCHEMA_VERSION


def bootstrap() -> str:
    return ensure_schema()
