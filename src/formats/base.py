"""Logical record types and the reader/writer contracts of the format registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Optional, Sequence

from PIL import Image


class DataKind(str, Enum):
    IMAGE = "image"
    IMAGE_4D = "image_4d"
    MESH = "mesh"
    MESH_4D = "mesh_4d"
    FIBER_BUNDLE = "fiber_bundle"
    UNKNOWN = "unknown"

    @property
    def is_image_like(self) -> bool:
        return self in (DataKind.IMAGE, DataKind.IMAGE_4D)


class FormatError(RuntimeError):
    """Raised by readers and writers when the underlying codec fails."""


@dataclass
class ImageMetadata:
    """Catalog-relevant attributes of one decoded record.

    Every field exists on every instance. ``None`` means "not provided by the
    reader"; normalization replaces it with the field's default once.
    """

    patient_name: Optional[str] = None
    study_description: Optional[str] = None
    series_description: Optional[str] = None
    study_id: Optional[str] = None
    series_id: Optional[str] = None
    orientation: Optional[str] = None
    series_number: Optional[str] = None
    sequence_name: Optional[str] = None
    slice_thickness: Optional[str] = None
    rows: Optional[str] = None
    columns: Optional[str] = None
    age: Optional[str] = None
    birth_date: Optional[str] = None
    gender: Optional[str] = None
    description: Optional[str] = None
    modality: Optional[str] = None
    protocol: Optional[str] = None
    comments: Optional[str] = None
    status: Optional[str] = None
    acquisition_date: Optional[str] = None
    importation_date: Optional[str] = None
    referee: Optional[str] = None
    performer: Optional[str] = None
    institution: Optional[str] = None
    report: Optional[str] = None
    # Attached by the pipeline after decoding
    size: Optional[str] = None
    file_paths: list[str] = field(default_factory=list)
    file_name: Optional[str] = None
    thumbnail_path: Optional[str] = None


CATALOG_FIELDS: tuple[str, ...] = tuple(
    item.name
    for item in fields(ImageMetadata)
    if item.name not in {"size", "file_paths", "file_name", "thumbnail_path"}
)


@dataclass
class DecodedRecord:
    kind: DataKind
    metadata: ImageMetadata = field(default_factory=ImageMetadata)
    payload: Any = None
    spacing: Optional[tuple[float, ...]] = None
    thumbnails: list[Image.Image] = field(default_factory=list)
    thumbnail: Optional[Image.Image] = None
    vistal: bool = False
    depth: Optional[int] = None


class DataReader(ABC):
    """Decoder entry of the format registry."""

    identifier: str = "reader"
    # Vendor "vistal" images are stored in their native .dim container.
    vistal: bool = False

    @abstractmethod
    def can_read(self, paths: Sequence[str]) -> bool:
        ...

    @abstractmethod
    def read_information(self, paths: Sequence[str]) -> DecodedRecord:
        """Decode headers only; ``payload`` stays empty."""

    @abstractmethod
    def read(self, paths: Sequence[str]) -> DecodedRecord:
        """Decode the full data of all ``paths`` as one record."""


class DataWriter(ABC):
    """Encoder entry of the format registry."""

    identifier: str = "writer"
    handled: frozenset[DataKind] = frozenset()

    def handles(self, kind: DataKind) -> bool:
        return kind in self.handled

    @abstractmethod
    def can_write(self, path: str) -> bool:
        ...

    @abstractmethod
    def write(self, path: str, record: DecodedRecord) -> None:
        """Encode ``record`` at ``path``; raise :class:`FormatError` on failure."""
