"""Preview bitmaps written next to the stored volume."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field

from formats.base import DecodedRecord

from .errors import StorageError
from .storage import StorageArea


logger = logging.getLogger(__name__)

REFERENCE_NAME = "ref.png"


@dataclass
class ThumbnailSet:
    paths: list[str] = field(default_factory=list)
    reference_path: str = ""


class ThumbnailGenerator:
    def __init__(self, storage: StorageArea) -> None:
        self._storage = storage

    def _save(self, image, relative: str) -> None:
        target = self._storage.absolute(relative)
        try:
            image.save(target, format="PNG")
        except OSError as exc:
            raise StorageError(f"Could not save thumbnail {target}: {exc}") from exc

    def generate(self, record: DecodedRecord, output_dir: str) -> ThumbnailSet:
        """Write ``<i>.png`` per slice preview and ``ref.png`` for the representative.

        Returned paths are storage-relative; the reference path is also stored
        on ``record.metadata.thumbnail_path``.
        """
        self._storage.mkpath(output_dir)
        result = ThumbnailSet()
        for index, image in enumerate(record.thumbnails):
            relative = posixpath.join(output_dir, f"{index}.png")
            self._save(image, relative)
            result.paths.append(relative)

        representative = record.thumbnail
        if representative is None and record.thumbnails:
            representative = record.thumbnails[0]
        if representative is not None:
            result.reference_path = posixpath.join(output_dir, REFERENCE_NAME)
            self._save(representative, result.reference_path)

        record.metadata.thumbnail_path = result.reference_path
        logger.debug("Thumbnails written dir=%s count=%d", output_dir, len(result.paths))
        return result
