from __future__ import annotations

from pathlib import Path

import numpy as np
import pydicom
import pytest
from pydicom.dataset import FileDataset, FileMetaDataset

from formats.base import DataKind, FormatError
from formats.dicom import DicomReader


def _create_dicom(path: Path, *, instance: int, value: int, with_pixels: bool = True) -> Path:
    file_meta = FileMetaDataset()
    file_meta.MediaStorageSOPClassUID = "1.2.840.10008.5.1.4.1.1.4"
    file_meta.MediaStorageSOPInstanceUID = f"1.2.826.0.1.3680043.2.1125.{instance}"
    file_meta.TransferSyntaxUID = pydicom.uid.ImplicitVRLittleEndian

    ds = FileDataset(str(path), {}, file_meta=file_meta, preamble=b"\0" * 128)
    ds.is_little_endian = True
    ds.is_implicit_VR = True

    ds.PatientName = "Test^Patient"
    ds.PatientSex = "F"
    ds.StudyDescription = "Brain"
    ds.SeriesDescription = "T1 axial"
    ds.StudyInstanceUID = "1.2.3.4"
    ds.SeriesInstanceUID = "1.2.3.4.5"
    ds.SOPInstanceUID = file_meta.MediaStorageSOPInstanceUID
    ds.Modality = "MR"
    ds.SeriesNumber = 7
    ds.InstanceNumber = instance
    ds.ImageOrientationPatient = ["1", "0", "0", "0", "1", "0"]
    ds.SliceThickness = "2.5"
    ds.PixelSpacing = ["0.5", "0.7"]

    if with_pixels:
        ds.Rows = 4
        ds.Columns = 4
        ds.SamplesPerPixel = 1
        ds.PhotometricInterpretation = "MONOCHROME2"
        ds.BitsAllocated = 16
        ds.BitsStored = 16
        ds.HighBit = 15
        ds.PixelRepresentation = 0
        pixels = np.full((4, 4), value, dtype=np.uint16)
        pixels[0, 0] = 0
        ds.PixelData = pixels.tobytes()

    ds.save_as(path)
    return path


@pytest.fixture
def series_files(tmp_path) -> list[str]:
    # File order deliberately differs from InstanceNumber order.
    return [
        str(_create_dicom(tmp_path / "s0.dcm", instance=3, value=300)),
        str(_create_dicom(tmp_path / "s1.dcm", instance=1, value=100)),
        str(_create_dicom(tmp_path / "s2.dcm", instance=2, value=200)),
    ]


def test_can_read_requires_dicom_files(tmp_path, series_files):
    other = tmp_path / "notes.txt"
    other.write_text("hello")
    reader = DicomReader()

    assert reader.can_read(series_files) is True
    assert reader.can_read([str(other)]) is False
    assert reader.can_read(series_files + [str(other)]) is False
    assert reader.can_read([]) is False


def test_read_information_maps_header_fields(series_files):
    record = DicomReader().read_information(series_files[:1])

    metadata = record.metadata
    assert record.kind is DataKind.IMAGE
    assert record.payload is None
    assert metadata.patient_name == "Test^Patient"
    assert metadata.study_description == "Brain"
    assert metadata.series_description == "T1 axial"
    assert metadata.study_id == "1.2.3.4"
    assert metadata.series_id == "1.2.3.4.5"
    assert metadata.orientation == "1 0 0 0 1 0"
    assert metadata.series_number == "7"
    assert metadata.slice_thickness == "2.5"
    assert metadata.rows == "4"
    assert metadata.columns == "4"
    assert metadata.gender == "F"
    assert metadata.modality == "MR"
    assert metadata.sequence_name is None


def test_read_stacks_slices_in_instance_order(tmp_path, series_files):
    record = DicomReader(thumbnail_size=2).read(series_files)

    assert record.payload.shape == (3, 4, 4)
    assert [float(record.payload[index, 1, 1]) for index in range(3)] == [100.0, 200.0, 300.0]
    assert record.depth == 3
    assert record.metadata.file_paths == [str(tmp_path / name) for name in ("s1.dcm", "s2.dcm", "s0.dcm")]
    assert record.spacing == (0.7, 0.5, 2.5)
    assert len(record.thumbnails) == 3
    assert record.thumbnail is record.thumbnails[1]
    assert max(record.thumbnails[0].size) <= 2


def test_missing_pixel_data_raises_format_error(tmp_path):
    path = _create_dicom(tmp_path / "header-only.dcm", instance=1, value=0, with_pixels=False)

    with pytest.raises(FormatError):
        DicomReader().read([str(path)])
