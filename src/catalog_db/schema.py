"""ORM models for the patient/study/series/image catalog."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class SchemaVersion(Base):
    __tablename__ = "schema_version"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    version: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class Patient(Base):
    __tablename__ = "patient"
    __table_args__ = (Index("idx_patient_name", "name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail: Mapped[str] = mapped_column(Text, nullable=False, default="")
    birthdate: Mapped[str] = mapped_column(Text, nullable=False, default="")
    gender: Mapped[str] = mapped_column(Text, nullable=False, default="")


class Study(Base):
    __tablename__ = "study"
    __table_args__ = (Index("idx_study_patient_name_uid", "patient_id", "name", "uid"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(Integer, ForeignKey("patient.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    uid: Mapped[str] = mapped_column(Text, nullable=False, default="")
    thumbnail: Mapped[str] = mapped_column(Text, nullable=False, default="")


class Series(Base):
    __tablename__ = "series"
    __table_args__ = (Index("idx_series_study_name_uid", "study_id", "name", "uid"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    study_id: Mapped[int] = mapped_column(Integer, ForeignKey("study.id", ondelete="CASCADE"), nullable=False)
    size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    path: Mapped[str] = mapped_column(Text, nullable=False, default="")
    uid: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Identity columns are compared verbatim, so they stay text.
    orientation: Mapped[str] = mapped_column(Text, nullable=False, default="")
    series_number: Mapped[str] = mapped_column(Text, nullable=False, default="")
    sequence_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    slice_thickness: Mapped[str] = mapped_column(Text, nullable=False, default="")
    rows: Mapped[str] = mapped_column(Text, nullable=False, default="")
    columns: Mapped[str] = mapped_column(Text, nullable=False, default="")
    thumbnail: Mapped[str] = mapped_column(Text, nullable=False, default="")
    age: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    modality: Mapped[str | None] = mapped_column(Text, nullable=True)
    protocol: Mapped[str | None] = mapped_column(Text, nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str | None] = mapped_column(Text, nullable=True)
    acquisition_date: Mapped[str | None] = mapped_column(Text, nullable=True)
    importation_date: Mapped[str | None] = mapped_column(Text, nullable=True)
    referee: Mapped[str | None] = mapped_column(Text, nullable=True)
    performer: Mapped[str | None] = mapped_column(Text, nullable=True)
    institution: Mapped[str | None] = mapped_column(Text, nullable=True)
    report: Mapped[str | None] = mapped_column(Text, nullable=True)


class Image(Base):
    __tablename__ = "image"
    __table_args__ = (Index("idx_image_series_name", "series_id", "name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    series_id: Mapped[int] = mapped_column(Integer, ForeignKey("series.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    # Blank for indexed rows; `path` is authoritative for those.
    instance_path: Mapped[str] = mapped_column(Text, nullable=False, default="")
    thumbnail: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_indexed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
