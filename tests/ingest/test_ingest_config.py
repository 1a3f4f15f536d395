from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from formats.registry import FormatRegistry
from ingest.config import IngestConfig
from ingest.core import IngestionOutcome, run_ingestion


def test_defaults_to_import_mode():
    config = IngestConfig(source="/data/scans")

    assert config.source == Path("/data/scans")
    assert config.index_only is False


def test_empty_source_is_rejected():
    with pytest.raises(ValidationError):
        IngestConfig(source="  ")


def test_run_ingestion_uses_the_config(tmp_path, make_source, session_factory, storage, reader, writer):
    make_source(
        tmp_path / "in",
        "a1.fake",
        patient_name="Alice",
        study_description="Brain",
        series_description="T1",
    )

    result = run_ingestion(
        IngestConfig(source=tmp_path / "in", index_only=True),
        registry=FormatRegistry(readers=[reader], writers=[writer]),
        storage=storage,
        session_factory=session_factory,
    )

    assert result.outcome is IngestionOutcome.SUCCESS
    assert writer.written == []
