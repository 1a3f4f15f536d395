"""Reader and writer selection with a sticky last-success choice."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from formats.base import DataReader, DataWriter, DecodedRecord, FormatError
from formats.registry import FormatRegistry

from .errors import StorageError, UnreadableFileError


logger = logging.getLogger(__name__)


class FormatResolver:
    """Pick decoders and encoders from a registry.

    The last entry that succeeded is tried first on the next request; on a
    miss the registry is scanned in registration order and the first match
    becomes the new sticky choice. One resolver belongs to one import run.
    """

    def __init__(self, registry: FormatRegistry) -> None:
        self._registry = registry
        self.last_reader: Optional[DataReader] = None
        self.last_writer: Optional[DataWriter] = None

    def reset(self) -> None:
        self.last_reader = None
        self.last_writer = None

    def resolve_reader(self, paths: Sequence[str]) -> Optional[DataReader]:
        if self.last_reader is not None and self.last_reader.can_read(paths):
            return self.last_reader
        for reader in self._registry.readers():
            if reader is self.last_reader:
                continue
            if reader.can_read(paths):
                self.last_reader = reader
                return reader
        logger.debug("No suitable reader for %s", paths[0] if paths else "<empty>")
        return None

    def resolve_writer(self, path: str, record: DecodedRecord) -> Optional[DataWriter]:
        def accepts(writer: DataWriter) -> bool:
            return writer.handles(record.kind) and writer.can_write(path)

        if self.last_writer is not None and accepts(self.last_writer):
            return self.last_writer
        for writer in self._registry.writers():
            if writer is self.last_writer:
                continue
            if accepts(writer):
                self.last_writer = writer
                return writer
        return None

    def read(self, paths: Sequence[str], header_only: bool) -> DecodedRecord:
        reader = self.resolve_reader(paths)
        if reader is None:
            raise UnreadableFileError(f"No suitable reader found for file: {paths[0]}")
        try:
            record = reader.read_information(paths) if header_only else reader.read(paths)
        except FormatError as exc:
            raise UnreadableFileError(str(exc)) from exc
        if reader.vistal:
            record.vistal = True
        return record

    def write(self, path: str, record: DecodedRecord) -> DataWriter:
        writer = self.resolve_writer(path, record)
        if writer is None:
            raise StorageError(f"No writer handles {record.kind.value} data at {path}")
        try:
            writer.write(path, record)
        except (FormatError, OSError) as exc:
            raise StorageError(f"Could not save data file {path}: {exc}") from exc
        return writer
