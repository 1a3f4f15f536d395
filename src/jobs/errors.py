"""Custom job-related exceptions."""

from __future__ import annotations


class JobCancelledError(RuntimeError):
    """Raised when a running job is canceled via control signal."""

    def __init__(self, job_id: int | None = None, message: str | None = None) -> None:
        base = message or "Import canceled by user request"
        if job_id is not None:
            base = f"Import {job_id} canceled by user request"
        self.job_id = job_id
        super().__init__(base)


class LeaseTimeoutError(RuntimeError):
    """Raised when the catalog write lease could not be acquired in time."""
