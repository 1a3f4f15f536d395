"""Medical image ingestion into the patient/study/series catalog."""

from .config import IngestConfig  # noqa: F401
from .conflicts import ConflictDetector, ConflictRecord, ConflictReport  # noqa: F401
from .core import (  # noqa: F401
    ImportJob,
    IngestionListener,
    IngestionOutcome,
    IngestionPipeline,
    IngestionResult,
    run_ingestion,
)
from .errors import IngestError, StorageError, UnreadableFileError, UnresolvedOutputTypeError  # noqa: F401
from .storage import StorageArea  # noqa: F401
