"""Configuration model for one ingestion run."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class IngestConfig(BaseModel):
    source: Path
    index_only: bool = Field(
        default=False,
        description="Catalog the files in place instead of copying them into the storage area",
    )

    @field_validator("source", mode="before")
    @classmethod
    def _source_not_empty(cls, value):
        # Path("") silently becomes ".", so check before coercion.
        if isinstance(value, str) and not value.strip():
            raise ValueError("source path must not be empty")
        return value

    @field_validator("source")
    @classmethod
    def _expand_user(cls, value: Path) -> Path:
        return value.expanduser()
