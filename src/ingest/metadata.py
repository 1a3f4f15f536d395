"""Defaulting of catalog attributes on decoded records."""

from __future__ import annotations

from formats.base import CATALOG_FIELDS, ImageMetadata


UNKNOWN_PATIENT = "unknown patient"


def simplified(value: str | None) -> str:
    """Trim and collapse internal whitespace runs to single spaces."""
    if not value:
        return ""
    return " ".join(value.split())


def normalize_metadata(metadata: ImageMetadata, fallback_series_label: str) -> ImageMetadata:
    """Give every catalog field a value without touching the ones already set.

    Patient name falls back to :data:`UNKNOWN_PATIENT`, series description to
    ``fallback_series_label`` and everything else to ``""``. Normalizing twice
    is a no-op.
    """
    for name in CATALOG_FIELDS:
        if getattr(metadata, name) is not None:
            continue
        if name == "patient_name":
            default = UNKNOWN_PATIENT
        elif name == "series_description":
            default = fallback_series_label
        else:
            default = ""
        setattr(metadata, name, default)
    return metadata
