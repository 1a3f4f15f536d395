"""DICOM reader built on pydicom."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import numpy as np
import pydicom
from pydicom.errors import InvalidDicomError
from pydicom.misc import is_dicom
from pydicom.multival import MultiValue

from .base import DataKind, DataReader, DecodedRecord, FormatError, ImageMetadata
from .preview import DEFAULT_THUMBNAIL_SIZE, middle_index, render_slice


logger = logging.getLogger(__name__)


HEADER_FIELD_MAP: dict[str, str] = {
    "patient_name": "PatientName",
    "study_description": "StudyDescription",
    "series_description": "SeriesDescription",
    "study_id": "StudyInstanceUID",
    "series_id": "SeriesInstanceUID",
    "orientation": "ImageOrientationPatient",
    "series_number": "SeriesNumber",
    "sequence_name": "SequenceName",
    "slice_thickness": "SliceThickness",
    "rows": "Rows",
    "columns": "Columns",
    "age": "PatientAge",
    "birth_date": "PatientBirthDate",
    "gender": "PatientSex",
    "description": "StudyDescription",
    "modality": "Modality",
    "protocol": "ProtocolName",
    "comments": "ImageComments",
    "acquisition_date": "AcquisitionDate",
    "referee": "ReferringPhysicianName",
    "performer": "PerformingPhysicianName",
    "institution": "InstitutionName",
}

_DECODE_ERRORS = (InvalidDicomError, OSError, ValueError, AttributeError, KeyError, RuntimeError, NotImplementedError)


def _to_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (MultiValue, list, tuple)):
        return " ".join(str(item) for item in value)
    return str(value)


def _first(value: Any) -> Any:
    if isinstance(value, (MultiValue, list, tuple)):
        return value[0] if len(value) else None
    return value


def _to_float(value: Any) -> float | None:
    value = _first(value)
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def extract_metadata(dataset) -> ImageMetadata:
    metadata = ImageMetadata()
    for attribute, keyword in HEADER_FIELD_MAP.items():
        if keyword in dataset:
            setattr(metadata, attribute, _to_str(dataset.get(keyword)))
    return metadata


def _instance_sort_key(item: tuple[int, Any]) -> tuple[int, int]:
    position, dataset = item
    number = getattr(dataset, "InstanceNumber", None)
    try:
        return (int(number), position)
    except (TypeError, ValueError):
        return (position, position)


def _as_slices(dataset) -> np.ndarray:
    array = np.asarray(dataset.pixel_array, dtype=np.float64)
    samples = int(getattr(dataset, "SamplesPerPixel", 1) or 1)
    if samples > 1:
        array = array.mean(axis=-1)
    frames = int(getattr(dataset, "NumberOfFrames", 1) or 1)
    if array.ndim == 2:
        array = array[np.newaxis, ...]
    elif array.ndim != 3 or (frames > 1 and array.shape[0] != frames):
        raise ValueError(f"Unsupported pixel data shape {array.shape}")

    slope = _to_float(getattr(dataset, "RescaleSlope", None))
    intercept = _to_float(getattr(dataset, "RescaleIntercept", None))
    return array * (1.0 if slope is None else slope) + (0.0 if intercept is None else intercept)


class DicomReader(DataReader):
    identifier = "dicom"

    def __init__(self, thumbnail_size: int = DEFAULT_THUMBNAIL_SIZE) -> None:
        self.thumbnail_size = thumbnail_size

    def can_read(self, paths: Sequence[str]) -> bool:
        if not paths:
            return False
        try:
            return all(is_dicom(path) for path in paths)
        except OSError:
            return False

    def read_information(self, paths: Sequence[str]) -> DecodedRecord:
        try:
            dataset = pydicom.dcmread(paths[0], stop_before_pixels=True)
        except _DECODE_ERRORS as exc:
            raise FormatError(f"Cannot read DICOM header of {paths[0]}: {exc}") from exc
        metadata = extract_metadata(dataset)
        return DecodedRecord(kind=DataKind.IMAGE, metadata=metadata)

    def read(self, paths: Sequence[str]) -> DecodedRecord:
        try:
            datasets = [pydicom.dcmread(path) for path in paths]
        except _DECODE_ERRORS as exc:
            raise FormatError(f"Cannot read DICOM files starting at {paths[0]}: {exc}") from exc

        ordered = sorted(enumerate(datasets), key=_instance_sort_key)
        try:
            slices = [_as_slices(dataset) for _, dataset in ordered]
            volume = np.concatenate(slices, axis=0)
        except _DECODE_ERRORS as exc:
            raise FormatError(f"Cannot decode pixel data starting at {paths[0]}: {exc}") from exc

        first = ordered[0][1]
        metadata = extract_metadata(first)
        metadata.file_paths = [str(paths[position]) for position, _ in ordered]

        thumbnails = self._render_thumbnails(first, volume)
        record = DecodedRecord(
            kind=DataKind.IMAGE,
            metadata=metadata,
            payload=volume,
            spacing=self._spacing(first),
            thumbnails=thumbnails,
            thumbnail=thumbnails[middle_index(len(thumbnails))] if thumbnails else None,
            depth=int(volume.shape[0]),
        )
        logger.debug("Decoded DICOM volume files=%d shape=%s", len(paths), volume.shape)
        return record

    def _render_thumbnails(self, dataset, volume: np.ndarray) -> list:
        window_center = _to_float(getattr(dataset, "WindowCenter", None))
        window_width = _to_float(getattr(dataset, "WindowWidth", None))
        invert = getattr(dataset, "PhotometricInterpretation", "MONOCHROME2") == "MONOCHROME1"
        return [
            render_slice(
                volume[index],
                window_center=window_center,
                window_width=window_width,
                invert=invert,
                size=self.thumbnail_size,
            )
            for index in range(volume.shape[0])
        ]

    @staticmethod
    def _spacing(dataset) -> Optional[tuple[float, float, float]]:
        pixel_spacing = getattr(dataset, "PixelSpacing", None)
        if not pixel_spacing or len(pixel_spacing) < 2:
            return None
        thickness = _to_float(getattr(dataset, "SliceThickness", None)) or 1.0
        return (float(pixel_spacing[1]), float(pixel_spacing[0]), thickness)
