"""Volume grouping keys, series identity and storage naming.

Slices of one acquisition share patient, study and series identifiers plus
their geometry. Orientation cosines are rounded to five significant digits
before comparison because scanners write sub-threshold noise into them,
which would otherwise split one volume into many.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Optional

from formats.base import DataKind, DecodedRecord, ImageMetadata

from .metadata import simplified


ORIENTATION_SIGNIFICANT_DIGITS = 5

_EXTENSION_BY_KIND: dict[DataKind, Optional[str]] = {
    DataKind.MESH: ".vtk",
    DataKind.MESH_4D: ".v4d",
    DataKind.FIBER_BUNDLE: ".xml",
    DataKind.IMAGE: ".mha",
    DataKind.IMAGE_4D: ".mha",
    DataKind.UNKNOWN: None,
}

VISTAL_EXTENSION = ".dim"

_NAME_REPLACEMENTS = {"ê": "e", "ä": "a", "/": "_", "\\": "_"}


@dataclass(frozen=True)
class SeriesIdentity:
    name: str
    uid: str
    orientation: str
    series_number: str
    sequence_name: str
    slice_thickness: str
    rows: str
    columns: str


def _format_component(raw: str) -> str:
    try:
        value = float(raw)
    except ValueError:
        value = 0.0
    if math.isnan(value) or math.isinf(value):
        value = 0.0
    return f"{value:.{ORIENTATION_SIGNIFICANT_DIGITS}g}"


def quantize_orientation(raw: str | None) -> str:
    """Reformat each direction cosine to five significant digits and concatenate.

    >>> quantize_orientation("1.00002 0 0 0 1.00001 0")
    '100010'
    """
    if not raw:
        return ""
    return "".join(_format_component(component) for component in raw.split())


def compute_volume_key(metadata: ImageMetadata) -> str:
    """Grouping key for one normalized record; a pure function of its metadata."""
    return "".join(
        [
            metadata.patient_name or "",
            metadata.study_id or "",
            metadata.series_id or "",
            quantize_orientation(metadata.orientation),
            metadata.series_number or "",
            metadata.sequence_name or "",
            metadata.slice_thickness or "",
            metadata.rows or "",
            metadata.columns or "",
        ]
    )


def series_identity(metadata: ImageMetadata) -> SeriesIdentity:
    return SeriesIdentity(
        name=simplified(metadata.series_description),
        uid=metadata.series_id or "",
        orientation=metadata.orientation or "",
        series_number=metadata.series_number or "",
        sequence_name=metadata.sequence_name or "",
        slice_thickness=metadata.slice_thickness or "",
        rows=metadata.rows or "",
        columns=metadata.columns or "",
    )


def output_extension(record: DecodedRecord) -> Optional[str]:
    """Storage extension for the record's logical type, ``None`` when unsupported."""
    if record.kind.is_image_like and record.vistal:
        return VISTAL_EXTENSION
    return _EXTENSION_BY_KIND.get(record.kind)


def _storage_segment(value: str | None) -> str:
    segment = simplified(value)
    for source, target in _NAME_REPLACEMENTS.items():
        segment = segment.replace(source, target)
    return segment


def aggregated_output_name(metadata: ImageMetadata, volume_number: int) -> str:
    """Storage-relative name ``<patient>/<study>/<series><N>`` without extension."""
    segments = [
        _storage_segment(metadata.patient_name),
        _storage_segment(metadata.study_description),
        _storage_segment(metadata.series_description) + str(volume_number),
    ]
    return "/".join(segment for segment in segments if segment)


def base_label(path: str) -> str:
    """File name up to its first dot, used as a fallback series label."""
    return os.path.basename(path).split(".", 1)[0]

