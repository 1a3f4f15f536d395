"""Ordered registry of decoders and encoders."""

from __future__ import annotations

from typing import Iterable, Optional

from .base import DataReader, DataWriter


class FormatRegistry:
    """Readers and writers in registration order.

    Registration order is the scan order used when no sticky choice applies,
    so the first entry that accepts a file wins.
    """

    def __init__(
        self,
        readers: Optional[Iterable[DataReader]] = None,
        writers: Optional[Iterable[DataWriter]] = None,
    ) -> None:
        self._readers: list[DataReader] = list(readers or [])
        self._writers: list[DataWriter] = list(writers or [])

    def register_reader(self, reader: DataReader) -> None:
        self._readers.append(reader)

    def register_writer(self, writer: DataWriter) -> None:
        self._writers.append(writer)

    def readers(self) -> list[DataReader]:
        return list(self._readers)

    def writers(self) -> list[DataWriter]:
        return list(self._writers)


def default_registry(thumbnail_size: Optional[int] = None) -> FormatRegistry:
    from .dicom import DicomReader
    from .metaimage import MetaImageWriter
    from .nifti import NiftiReader

    kwargs = {"thumbnail_size": thumbnail_size} if thumbnail_size else {}
    return FormatRegistry(
        readers=[DicomReader(**kwargs), NiftiReader(**kwargs)],
        writers=[MetaImageWriter()],
    )
