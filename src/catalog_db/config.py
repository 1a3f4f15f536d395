"""Settings for the catalog database and the managed storage area."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel


DEFAULT_DATA_LOCATION = Path.home() / ".imaging-catalog" / "data"


class StorageSettings(BaseModel):
    data_location: Path = DEFAULT_DATA_LOCATION
    thumbnail_size: int = 128


class CatalogDatabaseSettings(BaseModel):
    url: str = f"sqlite+pysqlite:///{DEFAULT_DATA_LOCATION / 'catalog.sqlite'}"
    echo: bool = False


@lru_cache
def get_storage_settings() -> StorageSettings:
    location_env = os.getenv("CATALOG_DATA_LOCATION")
    data_location = Path(location_env).expanduser() if location_env else StorageSettings().data_location
    return StorageSettings(
        data_location=data_location,
        thumbnail_size=int(os.getenv("CATALOG_THUMBNAIL_SIZE", "128")),
    )


@lru_cache
def get_settings() -> CatalogDatabaseSettings:
    default_url = f"sqlite+pysqlite:///{get_storage_settings().data_location / 'catalog.sqlite'}"
    return CatalogDatabaseSettings(
        url=os.getenv("CATALOG_DATABASE_URL", default_url),
        echo=os.getenv("CATALOG_DB_ECHO", "false").lower() == "true",
    )
