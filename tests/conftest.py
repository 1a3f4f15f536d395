"""Shared fixtures for catalog and ingestion tests.

Source files are small JSON documents read by :class:`FakeReader`; each key
that names an :class:`ImageMetadata` field becomes header metadata, while
``kind``, ``slices``, ``thumbnails``, ``broken`` and ``single_file`` steer
decoding.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Optional

import numpy as np
import pytest
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from catalog_db import schema
from catalog_db.session import enable_sqlite_foreign_keys
from formats.base import DataKind, DataReader, DataWriter, DecodedRecord, FormatError, ImageMetadata
from formats.registry import FormatRegistry
from ingest.core import IngestionListener, IngestionPipeline
from ingest.storage import StorageArea
from jobs.lease import CatalogWriteLease


_METADATA_FIELDS = set(ImageMetadata.__dataclass_fields__)


class FakeReader(DataReader):
    identifier = "fake"

    def __init__(self, suffix: str = ".fake") -> None:
        self.suffix = suffix
        self.header_reads: list[list[str]] = []
        self.full_reads: list[list[str]] = []
        self.on_header_read: Optional[Callable[[int], None]] = None
        self.on_full_read: Optional[Callable[[int], None]] = None

    def can_read(self, paths) -> bool:
        return bool(paths) and all(str(path).endswith(self.suffix) for path in paths)

    @staticmethod
    def _load(path) -> dict:
        return json.loads(Path(path).read_text())

    @staticmethod
    def _record(document: dict) -> DecodedRecord:
        fields = {key: value for key, value in document.items() if key in _METADATA_FIELDS}
        return DecodedRecord(kind=DataKind(document.get("kind", "image")), metadata=ImageMetadata(**fields))

    def read_information(self, paths) -> DecodedRecord:
        self.header_reads.append(list(paths))
        document = self._load(paths[0])
        if document.get("broken"):
            raise FormatError(f"broken header in {paths[0]}")
        record = self._record(document)
        if self.on_header_read is not None:
            self.on_header_read(len(self.header_reads))
        return record

    def read(self, paths) -> DecodedRecord:
        self.full_reads.append(list(paths))
        documents = [self._load(path) for path in paths]
        if len(documents) > 1 and any(document.get("single_file") for document in documents):
            raise FormatError(f"cannot merge {len(documents)} files starting at {paths[0]}")
        record = self._record(documents[0])
        depth = sum(int(document.get("slices", 1)) for document in documents)
        previews = sum(int(document.get("thumbnails", document.get("slices", 1))) for document in documents)
        record.payload = np.zeros((depth, 4, 4), dtype=np.float32)
        record.depth = depth
        record.thumbnails = [Image.new("L", (4, 4), color=index * 10) for index in range(previews)]
        if self.on_full_read is not None:
            self.on_full_read(len(self.full_reads))
        return record


class FakeWriter(DataWriter):
    identifier = "fake-writer"
    handled = frozenset({DataKind.IMAGE, DataKind.IMAGE_4D})

    def __init__(self, fail_when: Optional[str] = None) -> None:
        self.fail_when = fail_when
        self.written: list[str] = []

    def can_write(self, path: str) -> bool:
        return str(path).endswith(".mha")

    def write(self, path: str, record: DecodedRecord) -> None:
        if self.fail_when and self.fail_when in str(path):
            raise FormatError(f"disk full while writing {path}")
        Path(path).write_bytes(b"volume")
        self.written.append(str(path))


class EventRecorder:
    def __init__(self) -> None:
        self.events: list[tuple] = []

    def listener(self) -> IngestionListener:
        return IngestionListener(
            progress=lambda percent: self.events.append(("progress", percent)),
            error=lambda message: self.events.append(("error", message)),
            success=lambda summary: self.events.append(("success", summary)),
            failure=lambda message: self.events.append(("failure", message)),
            cancelled=lambda: self.events.append(("cancelled",)),
            data_added=lambda ids: self.events.append(("data_added", ids)),
        )

    def named(self, name: str) -> list[tuple]:
        return [event for event in self.events if event[0] == name]

    @property
    def progress(self) -> list[int]:
        return [event[1] for event in self.named("progress")]


def write_source(directory: Path, name: str, **document) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(json.dumps(document))
    return path


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    schema.Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


@pytest.fixture
def storage(tmp_path) -> StorageArea:
    return StorageArea(tmp_path / "store")


@pytest.fixture
def reader() -> FakeReader:
    return FakeReader()


@pytest.fixture
def writer() -> FakeWriter:
    return FakeWriter()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def make_pipeline(session_factory, storage, reader, writer, recorder):
    def factory(**overrides) -> IngestionPipeline:
        options = {
            "registry": FormatRegistry(readers=[reader], writers=[writer]),
            "storage": storage,
            "session_factory": session_factory,
            "listener": recorder.listener(),
            "lease": CatalogWriteLease("test-catalog"),
        }
        options.update(overrides)
        return IngestionPipeline(**options)

    return factory


@pytest.fixture
def make_source():
    return write_source
