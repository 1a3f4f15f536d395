"""Get-or-create writes across the patient → study → series → image hierarchy."""

from __future__ import annotations

import logging
import os
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from catalog_db.queries import find_image_id, find_patient_id, find_series_id, find_study_id
from catalog_db.schema import Image, Patient, Series, Study
from formats.base import DecodedRecord, ImageMetadata

from .identity import series_identity
from .metadata import simplified


logger = logging.getLogger(__name__)


def _as_size(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    value = value.strip()
    return int(value) if value.isdigit() else None


class CatalogWriter:
    """Idempotent catalog upserts for one decoded, normalized record.

    Rows are flushed so their ids are available, never committed; the caller
    owns the transaction.
    """

    def __init__(self, session: Session, *, index_only: bool = False) -> None:
        self._session = session
        self.index_only = index_only
        self._patients_inserted = 0
        self._studies_inserted = 0
        self._series_inserted = 0
        self._images_inserted = 0

    def get_or_create_patient(self, metadata: ImageMetadata) -> int:
        name = simplified(metadata.patient_name)
        existing = find_patient_id(self._session, name)
        if existing is not None:
            return existing
        patient = Patient(
            name=name,
            thumbnail=metadata.thumbnail_path or "",
            birthdate=metadata.birth_date or "",
            gender=metadata.gender or "",
        )
        self._session.add(patient)
        self._session.flush()
        self._patients_inserted += 1
        logger.debug("Inserted patient id=%s name=%s", patient.id, name)
        return patient.id

    def get_or_create_study(self, metadata: ImageMetadata, patient_id: int) -> int:
        name = simplified(metadata.study_description)
        uid = metadata.study_id or ""
        existing = find_study_id(self._session, patient_id, name, uid)
        if existing is not None:
            return existing
        study = Study(patient_id=patient_id, name=name, uid=uid, thumbnail=metadata.thumbnail_path or "")
        self._session.add(study)
        self._session.flush()
        self._studies_inserted += 1
        logger.debug("Inserted study id=%s name=%s uid=%s", study.id, name, uid)
        return study.id

    def get_or_create_series(self, metadata: ImageMetadata, study_id: int) -> int:
        identity = series_identity(metadata)
        existing = find_series_id(self._session, study_id, identity)
        if existing is not None:
            return existing
        # No aggregated file exists for an indexed series.
        path = "" if self.index_only else (metadata.file_name or "")
        series = Series(
            study_id=study_id,
            size=_as_size(metadata.size),
            name=identity.name,
            path=path,
            uid=identity.uid,
            orientation=identity.orientation,
            series_number=identity.series_number,
            sequence_name=identity.sequence_name,
            slice_thickness=identity.slice_thickness,
            rows=identity.rows,
            columns=identity.columns,
            thumbnail=metadata.thumbnail_path or "",
            age=metadata.age,
            description=metadata.description,
            modality=metadata.modality,
            protocol=metadata.protocol,
            comments=metadata.comments,
            status=metadata.status,
            acquisition_date=metadata.acquisition_date,
            importation_date=metadata.importation_date,
            referee=metadata.referee,
            performer=metadata.performer,
            institution=metadata.institution,
            report=metadata.report,
        )
        self._session.add(series)
        self._session.flush()
        self._series_inserted += 1
        logger.debug("Inserted series id=%s name=%s path=%s", series.id, identity.name, path)
        return series.id

    def _ensure_image(self, series_id: int, name: str, source_path: str, instance_path: str, thumbnail: str) -> None:
        if find_image_id(self._session, series_id, name) is not None:
            return
        self._session.add(
            Image(
                series_id=series_id,
                name=name,
                path=source_path,
                instance_path=instance_path,
                thumbnail=thumbnail,
                is_indexed=self.index_only,
            )
        )
        self._session.flush()
        self._images_inserted += 1

    def create_missing_images(self, metadata: ImageMetadata, series_id: int, thumbnail_paths: Sequence[str]) -> None:
        """One image row per source file, or per thumbnail for a single multi-slice file."""
        file_paths = metadata.file_paths
        instance_path = "" if self.index_only else (metadata.file_name or "")

        if len(file_paths) == 1 and len(thumbnail_paths) > 1:
            source = file_paths[0]
            base = os.path.basename(source)
            for index, thumbnail in enumerate(thumbnail_paths):
                self._ensure_image(series_id, f"{base}{index}", source, instance_path, thumbnail)
        else:
            for index, source in enumerate(file_paths):
                thumbnail = thumbnail_paths[index] if index < len(thumbnail_paths) else ""
                self._ensure_image(series_id, os.path.basename(source), source, instance_path, thumbnail)

    def write(self, record: DecodedRecord, thumbnail_paths: Sequence[str]) -> int:
        metadata = record.metadata
        patient_id = self.get_or_create_patient(metadata)
        study_id = self.get_or_create_study(metadata, patient_id)
        series_id = self.get_or_create_series(metadata, study_id)
        self.create_missing_images(metadata, series_id, thumbnail_paths)
        return series_id

    def snapshot_metrics(self) -> dict[str, int]:
        return {
            "patients": self._patients_inserted,
            "studies": self._studies_inserted,
            "series": self._series_inserted,
            "images": self._images_inserted,
        }
