"""Catalog database package."""

from .config import get_settings, get_storage_settings  # noqa: F401
from .lifecycle import bootstrap, ensure_schema  # noqa: F401
