from __future__ import annotations

from dataclasses import asdict

from formats.base import CATALOG_FIELDS, ImageMetadata
from ingest.metadata import UNKNOWN_PATIENT, normalize_metadata, simplified


def test_absent_fields_get_defaults():
    metadata = normalize_metadata(ImageMetadata(study_id="1.2"), "scan")

    assert metadata.patient_name == UNKNOWN_PATIENT
    assert metadata.series_description == "scan"
    assert metadata.study_id == "1.2"
    assert all(getattr(metadata, name) is not None for name in CATALOG_FIELDS)
    assert metadata.modality == ""


def test_present_values_are_never_overwritten():
    metadata = ImageMetadata(patient_name="", series_description="Axial T2", modality="MR")

    normalize_metadata(metadata, "fallback")

    assert metadata.patient_name == ""
    assert metadata.series_description == "Axial T2"
    assert metadata.modality == "MR"


def test_normalizing_twice_is_a_no_op():
    metadata = normalize_metadata(ImageMetadata(patient_name="Bob"), "first")
    snapshot = asdict(metadata)

    normalize_metadata(metadata, "second")

    assert asdict(metadata) == snapshot


def test_pipeline_attached_fields_are_left_alone():
    metadata = normalize_metadata(ImageMetadata(), "scan")

    assert metadata.size is None
    assert metadata.file_name is None
    assert metadata.file_paths == []


def test_simplified_collapses_whitespace():
    assert simplified("  Head \t  First\n") == "Head First"
    assert simplified(None) == ""
