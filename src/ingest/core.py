"""Ingestion orchestrator."""

from __future__ import annotations

import itertools
import logging
import posixpath
import threading
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from formats.base import DecodedRecord
from formats.registry import FormatRegistry, default_registry
from jobs.control import JobControl
from jobs.errors import JobCancelledError
from jobs.lease import CatalogWriteLease, catalog_write_lease

from .config import IngestConfig
from .conflicts import ConflictDetector, ConflictRecord, ConflictReport
from .errors import StorageError, UnreadableFileError, UnresolvedOutputTypeError
from .identity import aggregated_output_name, base_label, compute_volume_key, output_extension
from .metadata import normalize_metadata
from .progress import IngestProgressTracker
from .resolver import FormatResolver
from .scanner import expand_paths
from .storage import StorageArea
from .thumbnails import ThumbnailGenerator
from .writer import CatalogWriter


logger = logging.getLogger(__name__)

NOTHING_IMPORTED_MESSAGE = "No compatible image found or all of them had been already imported."
CANCELLED_MESSAGE = "User cancelled import process"


def _job_tag(job_id: Optional[int]) -> str:
    return f"job_id={job_id}" if job_id is not None else "job_id=adhoc"


def _metric_summary(metrics: dict) -> str:
    keys = ["patients", "studies", "series", "images"]
    return ", ".join(f"{key}={metrics[key]}" for key in keys if key in metrics)


class IngestionOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


@dataclass
class IngestionResult:
    outcome: IngestionOutcome
    message: str = ""
    conflicts: list[ConflictRecord] = field(default_factory=list)
    conflict_summary: str = ""
    imported_series_ids: list[int] = field(default_factory=list)
    metrics: dict[str, int] = field(default_factory=dict)


_job_ids = itertools.count(1)


@dataclass
class ImportJob:
    """Run-scoped state; discarded once the run reaches its outcome."""

    source: str
    index_only: bool
    resolver: FormatResolver
    job_id: int = field(default_factory=lambda: next(_job_ids))
    control: JobControl = field(default_factory=JobControl)
    conflicts: ConflictReport = field(default_factory=ConflictReport)
    imported_series_ids: list[int] = field(default_factory=list)
    metrics: dict[str, int] = field(default_factory=dict)


@dataclass
class AggregationGroup:
    output_name: str
    # Output name without extension; also the thumbnail directory.
    stem: str
    paths: list[str] = field(default_factory=list)


@dataclass
class IngestionListener:
    """Optional callbacks; each is invoked from the thread running the import."""

    progress: Optional[Callable[[int], None]] = None
    error: Optional[Callable[[str], None]] = None
    success: Optional[Callable[[str], None]] = None
    failure: Optional[Callable[[str], None]] = None
    cancelled: Optional[Callable[[], None]] = None
    data_added: Optional[Callable[[list[int]], None]] = None

    def notify(self, name: str, *args) -> None:
        callback = getattr(self, name)
        if callback is not None:
            callback(*args)


class IngestionPipeline:
    """Two-pass import of a file or directory into the catalog.

    Pass 1 reads headers, groups files by volume and drops files that are
    already cataloged. Pass 2 decodes each group, stores it (unless indexing
    only), renders thumbnails and upserts the catalog rows, committing once
    per group. The whole run holds the catalog write lease.
    """

    def __init__(
        self,
        registry: Optional[FormatRegistry] = None,
        storage: Optional[StorageArea] = None,
        session_factory: Optional[Callable[[], Session]] = None,
        listener: Optional[IngestionListener] = None,
        lease: CatalogWriteLease = catalog_write_lease,
    ) -> None:
        if registry is None or storage is None:
            from catalog_db.config import get_storage_settings

            storage_settings = get_storage_settings()
            if registry is None:
                registry = default_registry(thumbnail_size=storage_settings.thumbnail_size)
            if storage is None:
                storage = StorageArea(storage_settings.data_location)
        if session_factory is None:
            from catalog_db.session import SessionLocal

            session_factory = SessionLocal
        self._registry = registry
        self._storage = storage
        self._session_factory = session_factory
        self._listener = listener or IngestionListener()
        self._lease = lease
        self._job: Optional[ImportJob] = None
        self._thread: Optional[threading.Thread] = None
        self._last_result: Optional[IngestionResult] = None

    @property
    def current_job(self) -> Optional[ImportJob]:
        return self._job

    @property
    def last_result(self) -> Optional[IngestionResult]:
        return self._last_result

    def _new_job(self, source, index_only: bool) -> ImportJob:
        job = ImportJob(source=str(source), index_only=index_only, resolver=FormatResolver(self._registry))
        self._job = job
        return job

    def run(self, source, index_only: bool = False) -> IngestionResult:
        """Run one import synchronously and return its outcome."""
        return self._execute(self._new_job(source, index_only))

    def start(self, source, index_only: bool = False) -> threading.Thread:
        job = self._new_job(source, index_only)
        thread = threading.Thread(target=self._run_in_background, args=(job,), name=f"ingest-{job.job_id}", daemon=True)
        self._thread = thread
        thread.start()
        return thread

    def cancel(self) -> None:
        job = self._job
        if job is None:
            logger.info("Cancel requested with no ingestion in progress")
            return
        logger.info("Ingestion cancel requested %s", _job_tag(job.job_id))
        job.control.cancel()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Join the background run; True once it has finished."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _run_in_background(self, job: ImportJob) -> None:
        try:
            self._execute(job)
        except Exception as exc:  # already logged in _execute
            self._last_result = IngestionResult(outcome=IngestionOutcome.FAILURE, message=str(exc))
            self._listener.notify("failure", str(exc))
            self._listener.notify("data_added", [])

    def _execute(self, job: ImportJob) -> IngestionResult:
        job_tag = _job_tag(job.job_id)
        tracker = IngestProgressTracker(self._listener.progress)
        try:
            with self._lease.hold(f"ingest-{job.job_id}"):
                result = self._run_locked(job, tracker)
        except Exception:
            logger.exception("Ingestion failure %s", job_tag)
            raise

        self._last_result = result
        if result.outcome is IngestionOutcome.SUCCESS:
            tracker.finalize()
            self._listener.notify("success", result.conflict_summary)
            self._listener.notify("data_added", list(result.imported_series_ids))
        elif result.outcome is IngestionOutcome.CANCELLED:
            self._listener.notify("cancelled")
            self._listener.notify("data_added", [])
        else:
            self._listener.notify("failure", result.message)
            self._listener.notify("data_added", [])
        return result

    def _run_locked(self, job: ImportJob, tracker: IngestProgressTracker) -> IngestionResult:
        job_tag = _job_tag(job.job_id)
        logger.info("Ingestion start %s source=%s index_only=%s", job_tag, job.source, job.index_only)
        job.resolver.reset()

        session = self._session_factory()
        try:
            groups = self._discover(job, session, tracker)
            if not groups:
                logger.info("Ingestion empty %s conflicts=%d", job_tag, len(job.conflicts))
                return self._result(job, IngestionOutcome.FAILURE, NOTHING_IMPORTED_MESSAGE)
            self._aggregate(job, session, groups, tracker)
        except JobCancelledError:
            session.rollback()
            logger.info(
                "Ingestion cancelled %s imported_series=%d", job_tag, len(job.imported_series_ids)
            )
            return self._result(job, IngestionOutcome.CANCELLED, CANCELLED_MESSAGE)
        finally:
            session.close()

        logger.info(
            "Ingestion complete %s imported_series=%d conflicts=%d %s",
            job_tag,
            len(job.imported_series_ids),
            len(job.conflicts),
            _metric_summary(job.metrics),
        )
        message = f"Imported {len(job.imported_series_ids)} series"
        return self._result(job, IngestionOutcome.SUCCESS, message)

    @staticmethod
    def _result(job: ImportJob, outcome: IngestionOutcome, message: str) -> IngestionResult:
        return IngestionResult(
            outcome=outcome,
            message=message,
            conflicts=job.conflicts.records(),
            conflict_summary=job.conflicts.summary(job.index_only),
            imported_series_ids=list(job.imported_series_ids),
            metrics=dict(job.metrics),
        )

    def _report(self, message: str) -> None:
        self._listener.notify("error", message)

    def _discard(self, job_tag: str, relatives: list[str]) -> None:
        # Files of a group that never reached the catalog.
        for relative in relatives:
            try:
                self._storage.discard(relative)
            except StorageError as exc:
                logger.warning("Could not remove stored file %s path=%s reason=%s", job_tag, relative, exc)

    @staticmethod
    def _output_name(record: DecodedRecord, stem: str, index_only: bool) -> str:
        if index_only:
            return stem
        extension = output_extension(record)
        if extension is None:
            raise UnresolvedOutputTypeError(f"Could not save file due to unhandled data type: {record.kind.value}")
        return stem + extension

    def _discover(self, job: ImportJob, session: Session, tracker: IngestProgressTracker) -> list[AggregationGroup]:
        job_tag = _job_tag(job.job_id)
        paths = expand_paths(job.source)
        total = len(paths)
        logger.info("Ingestion discovery %s files=%d", job_tag, total)

        detector = ConflictDetector(session, job.conflicts)
        volume_numbers: dict[str, int] = {}
        groups: dict[str, AggregationGroup] = {}
        skipped = 0

        for index, path in enumerate(paths):
            job.control.checkpoint_blocking(job.job_id)
            tracker.update_discovery(index, total)

            try:
                record = job.resolver.read([path], header_only=True)
            except UnreadableFileError as exc:
                logger.warning("Skipping unreadable file %s path=%s reason=%s", job_tag, path, exc)
                skipped += 1
                continue

            metadata = normalize_metadata(record.metadata, base_label(path))
            key = compute_volume_key(metadata)
            volume_number = volume_numbers.setdefault(key, len(volume_numbers) + 1)
            stem = aggregated_output_name(metadata, volume_number)

            try:
                output_name = self._output_name(record, stem, job.index_only)
            except UnresolvedOutputTypeError as exc:
                logger.warning("Skipping file %s path=%s reason=%s", job_tag, path, exc)
                self._report(str(exc))
                skipped += 1
                continue

            if detector.is_file_cataloged(record, path):
                skipped += 1
                continue

            group = groups.get(output_name)
            if group is None:
                group = groups[output_name] = AggregationGroup(output_name=output_name, stem=stem)
            group.paths.append(path)

        tracker.update_discovery(total, total)
        logger.info(
            "Ingestion grouping %s files=%d groups=%d volumes=%d skipped=%d",
            job_tag,
            total,
            len(groups),
            len(volume_numbers),
            skipped,
        )
        return list(groups.values())

    def _aggregate(
        self,
        job: ImportJob,
        session: Session,
        groups: list[AggregationGroup],
        tracker: IngestProgressTracker,
    ) -> None:
        writer = CatalogWriter(session, index_only=job.index_only)
        thumbnails = ThumbnailGenerator(self._storage)
        detector = ConflictDetector(session, job.conflicts)
        total = len(groups)

        for index, group in enumerate(groups):
            # Checked between groups only, so a group's writes are never split.
            job.control.checkpoint_blocking(job.job_id)
            tracker.update_aggregation(index, total)
            series_id = self._commit_group(job, session, group, writer, thumbnails, detector)
            if series_id is not None:
                job.imported_series_ids.append(series_id)
            job.metrics = writer.snapshot_metrics()

        tracker.update_aggregation(total, total)

    def _commit_group(
        self,
        job: ImportJob,
        session: Session,
        group: AggregationGroup,
        writer: CatalogWriter,
        thumbnails: ThumbnailGenerator,
        detector: ConflictDetector,
    ) -> Optional[int]:
        job_tag = _job_tag(job.job_id)
        try:
            record = job.resolver.read(group.paths, header_only=False)
        except UnreadableFileError as exc:
            logger.warning("Skipping unreadable volume %s name=%s reason=%s", job_tag, group.output_name, exc)
            self._report(f"Could not read volume {group.output_name} from {len(group.paths)} file(s): {exc}")
            return None

        metadata = normalize_metadata(record.metadata, base_label(group.paths[0]))
        if not metadata.importation_date:
            metadata.importation_date = date.today().isoformat()
        metadata.size = str(record.depth) if record.depth is not None else ""
        if not metadata.file_paths:
            metadata.file_paths = list(group.paths)
        metadata.file_name = group.output_name

        if detector.is_already_cataloged(record):
            logger.info("Skipping cataloged volume %s name=%s", job_tag, group.output_name)
            return None

        written: list[str] = []
        try:
            if not job.index_only:
                self._storage.mkpath(posixpath.dirname(group.output_name))
                job.resolver.write(str(self._storage.absolute(group.output_name)), record)
                written.append(group.output_name)
            thumbnail_set = thumbnails.generate(record, group.stem)
        except StorageError as exc:
            logger.warning("Skipping volume %s name=%s reason=%s", job_tag, group.output_name, exc)
            self._discard(job_tag, written)
            self._report(str(exc))
            return None
        written.extend(thumbnail_set.paths)
        if thumbnail_set.reference_path:
            written.append(thumbnail_set.reference_path)

        try:
            series_id = writer.write(record, thumbnail_set.paths)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            self._discard(job_tag, written)
            logger.error("Catalog write failed %s name=%s error=%s", job_tag, group.output_name, exc)
            self._report(f"Could not catalog {group.output_name}: {exc}")
            return None

        logger.debug(
            "Ingested volume %s name=%s series_id=%s files=%d",
            job_tag,
            group.output_name,
            series_id,
            len(metadata.file_paths),
        )
        return series_id


def run_ingestion(
    config: IngestConfig,
    *,
    registry: Optional[FormatRegistry] = None,
    storage: Optional[StorageArea] = None,
    session_factory: Optional[Callable[[], Session]] = None,
    listener: Optional[IngestionListener] = None,
) -> IngestionResult:
    pipeline = IngestionPipeline(
        registry=registry,
        storage=storage,
        session_factory=session_factory,
        listener=listener,
    )
    return pipeline.run(config.source, index_only=config.index_only)
