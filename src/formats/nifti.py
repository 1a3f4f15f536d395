"""NIfTI reader built on nibabel."""

from __future__ import annotations

from typing import Sequence

import nibabel as nib
import numpy as np
from nibabel.filebasedimages import ImageFileError

from .base import DataKind, DataReader, DecodedRecord, FormatError, ImageMetadata
from .preview import DEFAULT_THUMBNAIL_SIZE, middle_index, render_slice


NIFTI_SUFFIXES = (".nii", ".nii.gz")

_DECODE_ERRORS = (ImageFileError, OSError, ValueError, EOFError)


def _format_number(value: float) -> str:
    return f"{float(value):g}"


def orientation_from_affine(affine: np.ndarray) -> str:
    """Row and column direction cosines of the voxel axes, space separated."""
    directions = []
    for axis in (0, 1):
        vector = np.asarray(affine[:3, axis], dtype=np.float64)
        norm = np.linalg.norm(vector)
        if norm > 0:
            vector = vector / norm
        directions.extend(_format_number(component) for component in vector)
    return " ".join(directions)


class NiftiReader(DataReader):
    identifier = "nifti"

    def __init__(self, thumbnail_size: int = DEFAULT_THUMBNAIL_SIZE) -> None:
        self.thumbnail_size = thumbnail_size

    def can_read(self, paths: Sequence[str]) -> bool:
        return len(paths) == 1 and str(paths[0]).lower().endswith(NIFTI_SUFFIXES)

    def _load(self, path: str):
        try:
            return nib.load(path)
        except _DECODE_ERRORS as exc:
            raise FormatError(f"Cannot read NIfTI file {path}: {exc}") from exc

    def _header_metadata(self, image) -> tuple[ImageMetadata, DataKind]:
        shape = image.shape
        zooms = image.header.get_zooms()
        metadata = ImageMetadata(
            orientation=orientation_from_affine(image.affine),
            rows=str(shape[1]) if len(shape) > 1 else "",
            columns=str(shape[0]),
            slice_thickness=_format_number(zooms[2]) if len(zooms) > 2 else "",
        )
        text = image.header["descrip"].item().decode("latin-1").strip("\x00 ")
        if text:
            metadata.description = text
        kind = DataKind.IMAGE_4D if len(shape) > 3 else DataKind.IMAGE
        return metadata, kind

    def read_information(self, paths: Sequence[str]) -> DecodedRecord:
        image = self._load(paths[0])
        metadata, kind = self._header_metadata(image)
        return DecodedRecord(kind=kind, metadata=metadata)

    def read(self, paths: Sequence[str]) -> DecodedRecord:
        if len(paths) != 1:
            raise FormatError(f"NIfTI volumes are single files, got {len(paths)} paths")
        image = self._load(paths[0])
        metadata, kind = self._header_metadata(image)
        try:
            data = np.asanyarray(image.dataobj, dtype=np.float64)
        except _DECODE_ERRORS as exc:
            raise FormatError(f"Cannot decode NIfTI data of {paths[0]}: {exc}") from exc

        if data.ndim == 2:
            data = data[..., np.newaxis]
        # nibabel arrays are (x, y, z[, t]); slices are rendered from (z, y, x)
        volume = np.transpose(data, (2, 1, 0) + tuple(range(3, data.ndim)))
        first_volume = volume[(...,) + (0,) * (volume.ndim - 3)] if volume.ndim > 3 else volume

        thumbnails = [render_slice(first_volume[index], size=self.thumbnail_size) for index in range(first_volume.shape[0])]
        zooms = image.header.get_zooms()
        metadata.file_paths = [str(paths[0])]
        return DecodedRecord(
            kind=kind,
            metadata=metadata,
            payload=volume if volume.ndim == 3 else np.moveaxis(volume, 3, 0),
            spacing=tuple(float(value) for value in zooms[:3]),
            thumbnails=thumbnails,
            thumbnail=thumbnails[middle_index(len(thumbnails))] if thumbnails else None,
            depth=int(first_volume.shape[0]),
        )
