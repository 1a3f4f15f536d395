"""Detection and reporting of series that are already cataloged."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterator, Optional

from sqlalchemy.orm import Session

from catalog_db.queries import find_image_id, find_patient_id, find_series_id, find_study_id
from formats.base import DecodedRecord

from .identity import series_identity
from .metadata import simplified


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConflictRecord:
    patient_name: str
    study_name: str
    series_name: str
    sample_path: str


class ConflictReport:
    """Conflicts of one run, one entry per series in first-seen order."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str, str], ConflictRecord] = {}

    def add(self, record: ConflictRecord) -> None:
        key = (record.patient_name, record.study_name, record.series_name)
        self._records.setdefault(key, record)

    def __iter__(self) -> Iterator[ConflictRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def records(self) -> list[ConflictRecord]:
        return list(self._records.values())

    def summary(self, index_only: bool) -> str:
        if not self._records:
            return ""
        process = "index" if index_only else "import"
        lines = [
            f"It seems you are trying to {process} some images that belong to a volume which is already in the database.",
            f"For a more accurate {process} please first delete the following series:",
            "",
        ]
        for record in self._records.values():
            lines.append(
                f"Series: {record.series_name} (from patient: {record.patient_name} and study: {record.study_name}) "
                f"e.g. {record.sample_path}"
            )
        return "\n".join(lines)


class ConflictDetector:
    """Walk the patient → study → series chain for a normalized record.

    A partial chain is not a conflict; only a full match down to the series
    (and, for the per-file check, the image) counts.
    """

    def __init__(self, session: Session, report: ConflictReport) -> None:
        self._session = session
        self._report = report

    def _find_series(self, record: DecodedRecord) -> Optional[int]:
        metadata = record.metadata
        patient_id = find_patient_id(self._session, simplified(metadata.patient_name))
        if patient_id is None:
            return None
        study_id = find_study_id(
            self._session,
            patient_id,
            simplified(metadata.study_description),
            metadata.study_id or "",
        )
        if study_id is None:
            return None
        return find_series_id(self._session, study_id, series_identity(metadata))

    def _record_conflict(self, record: DecodedRecord, sample_path: str) -> None:
        metadata = record.metadata
        conflict = ConflictRecord(
            patient_name=simplified(metadata.patient_name),
            study_name=simplified(metadata.study_description),
            series_name=simplified(metadata.series_description),
            sample_path=sample_path,
        )
        logger.debug(
            "Already cataloged patient=%s study=%s series=%s path=%s",
            conflict.patient_name,
            conflict.study_name,
            conflict.series_name,
            sample_path,
        )
        self._report.add(conflict)

    def is_already_cataloged(self, record: DecodedRecord) -> bool:
        if self._find_series(record) is None:
            return False
        paths = record.metadata.file_paths
        self._record_conflict(record, paths[0] if paths else "")
        return True

    def is_file_cataloged(self, record: DecodedRecord, path: str) -> bool:
        series_id = self._find_series(record)
        if series_id is None:
            return False
        if find_image_id(self._session, series_id, os.path.basename(path)) is None:
            return False
        self._record_conflict(record, path)
        return True
