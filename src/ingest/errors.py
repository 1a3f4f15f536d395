"""Per-item failures raised inside an ingestion run."""

from __future__ import annotations


class IngestError(RuntimeError):
    """Base class for recoverable errors; the run skips the item and continues."""


class UnreadableFileError(IngestError):
    """No decoder accepted the files, or decoding failed."""


class UnresolvedOutputTypeError(IngestError):
    """The record's logical type has no storage extension."""


class StorageError(IngestError):
    """A directory could not be created or an encoder failed to write."""
