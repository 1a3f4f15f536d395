"""Equality lookups over the catalog hierarchy.

Every level is matched on its defining attribute tuple. The conflict check
and the get-or-create writer both go through these helpers so they agree on
what "the same" patient, study, series or image means.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .schema import Image, Patient, Series, Study

if TYPE_CHECKING:  # pragma: no cover
    from ingest.identity import SeriesIdentity


def find_patient_id(session: Session, name: str) -> Optional[int]:
    stmt = select(Patient.id).where(Patient.name == name).order_by(Patient.id).limit(1)
    return session.execute(stmt).scalar_one_or_none()


def find_study_id(session: Session, patient_id: int, name: str, uid: str) -> Optional[int]:
    stmt = (
        select(Study.id)
        .where(Study.patient_id == patient_id, Study.name == name, Study.uid == uid)
        .order_by(Study.id)
        .limit(1)
    )
    return session.execute(stmt).scalar_one_or_none()


def find_series_id(session: Session, study_id: int, identity: "SeriesIdentity") -> Optional[int]:
    stmt = (
        select(Series.id)
        .where(
            Series.study_id == study_id,
            Series.name == identity.name,
            Series.uid == identity.uid,
            Series.orientation == identity.orientation,
            Series.series_number == identity.series_number,
            Series.sequence_name == identity.sequence_name,
            Series.slice_thickness == identity.slice_thickness,
            Series.rows == identity.rows,
            Series.columns == identity.columns,
        )
        .order_by(Series.id)
        .limit(1)
    )
    return session.execute(stmt).scalar_one_or_none()


def find_image_id(session: Session, series_id: int, name: str) -> Optional[int]:
    stmt = select(Image.id).where(Image.series_id == series_id, Image.name == name).order_by(Image.id).limit(1)
    return session.execute(stmt).scalar_one_or_none()
