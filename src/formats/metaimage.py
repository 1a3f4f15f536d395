"""MetaImage (.mha/.mhd) writer built on SimpleITK."""

from __future__ import annotations

import logging

import numpy as np
import SimpleITK as sitk

from .base import DataKind, DataWriter, DecodedRecord, FormatError


logger = logging.getLogger(__name__)


class MetaImageWriter(DataWriter):
    identifier = "metaimage"
    handled = frozenset({DataKind.IMAGE, DataKind.IMAGE_4D})

    def can_write(self, path: str) -> bool:
        return str(path).lower().endswith((".mha", ".mhd"))

    def write(self, path: str, record: DecodedRecord) -> None:
        if record.payload is None:
            raise FormatError(f"No pixel data to write at {path}")
        try:
            image = sitk.GetImageFromArray(np.ascontiguousarray(record.payload))
            if record.spacing and len(record.spacing) == image.GetDimension():
                image.SetSpacing([float(value) for value in record.spacing])
            sitk.WriteImage(image, str(path), useCompression=True)
        except (RuntimeError, ValueError, TypeError) as exc:
            raise FormatError(f"Cannot write MetaImage {path}: {exc}") from exc
        logger.debug("Wrote MetaImage path=%s size=%s", path, image.GetSize())
