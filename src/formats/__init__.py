"""Format registry: logical record types, readers and writers."""

from .base import CATALOG_FIELDS, DataKind, DataReader, DataWriter, DecodedRecord, FormatError, ImageMetadata  # noqa: F401
from .registry import FormatRegistry, default_registry  # noqa: F401
