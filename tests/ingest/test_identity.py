from __future__ import annotations

import pytest

from formats.base import DataKind, DecodedRecord, ImageMetadata
from ingest.identity import (
    aggregated_output_name,
    base_label,
    compute_volume_key,
    output_extension,
    quantize_orientation,
    series_identity,
)
from ingest.metadata import normalize_metadata


def _metadata(**overrides) -> ImageMetadata:
    values = {
        "patient_name": "Alice",
        "study_id": "1.2",
        "series_id": "1.2.3",
        "series_description": "T1",
        "study_description": "Brain",
        "series_number": "3",
        "sequence_name": "tfl3d",
        "slice_thickness": "1",
        "rows": "256",
        "columns": "256",
        "orientation": "1 0 0 0 1 0",
    }
    values.update(overrides)
    return normalize_metadata(ImageMetadata(**values), "fallback")


def test_orientation_noise_past_five_digits_shares_a_key():
    noisy = _metadata(orientation="1.00002 0 0 0 1.00001 0")
    clean = _metadata(orientation="1.00000 0 0 0 1.00000 0")

    assert compute_volume_key(noisy) == compute_volume_key(clean)


def test_orientation_difference_in_third_digit_splits_the_key():
    first = _metadata(orientation="1.00000 0 0 0 1.00000 0")
    second = _metadata(orientation="1.01000 0 0 0 1.00000 0")

    assert compute_volume_key(first) != compute_volume_key(second)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("", ""),
        (None, ""),
        ("0.123456 -0.5", "0.12346-0.5"),
        ("abc 1", "01"),
        ("nan 2", "02"),
    ],
)
def test_quantize_orientation(raw, expected):
    assert quantize_orientation(raw) == expected


def test_key_is_a_pure_function_of_metadata():
    assert compute_volume_key(_metadata()) == compute_volume_key(_metadata())


def test_key_ignores_descriptive_fields():
    assert compute_volume_key(_metadata(modality="MR")) == compute_volume_key(_metadata(modality="CT"))


def test_series_identity_uses_simplified_name():
    identity = series_identity(_metadata(series_description="  T1   MPRAGE "))

    assert identity.name == "T1 MPRAGE"
    assert identity.orientation == "1 0 0 0 1 0"
    assert identity.rows == "256"


@pytest.mark.parametrize(
    "kind, vistal, expected",
    [
        (DataKind.MESH, False, ".vtk"),
        (DataKind.MESH_4D, False, ".v4d"),
        (DataKind.FIBER_BUNDLE, False, ".xml"),
        (DataKind.IMAGE, False, ".mha"),
        (DataKind.IMAGE_4D, False, ".mha"),
        (DataKind.IMAGE, True, ".dim"),
        (DataKind.MESH, True, ".vtk"),
        (DataKind.UNKNOWN, False, None),
    ],
)
def test_output_extension(kind, vistal, expected):
    assert output_extension(DecodedRecord(kind=kind, vistal=vistal)) == expected


def test_aggregated_output_name_cleans_segments():
    metadata = _metadata(patient_name="Renê  März", study_description="Head/Neck", series_description="T1 ")

    assert aggregated_output_name(metadata, 4) == "Rene Marz/Head_Neck/T14"


def test_aggregated_output_name_drops_empty_segments():
    metadata = _metadata(study_description="")

    assert aggregated_output_name(metadata, 1) == "Alice/T11"


def test_base_label_stops_at_first_dot():
    assert base_label("/data/brain.nii.gz") == "brain"
