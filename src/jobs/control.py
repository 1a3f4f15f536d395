from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from .errors import JobCancelledError


logger = logging.getLogger(__name__)


@dataclass
class JobControl:
    """Cooperative cancellation signal shared between a run and its caller.

    The run polls :meth:`checkpoint_blocking` at its own safe points; the
    caller may call :meth:`cancel` from any thread.
    """

    _stopped: threading.Event = field(default_factory=threading.Event, init=False, repr=False)

    def cancel(self) -> None:
        if self._stopped.is_set():
            return
        logger.info("Signal: Cancel requested")
        self._stopped.set()

    def reset(self) -> None:
        logger.info("Signal: Control reset")
        self._stopped.clear()

    @property
    def should_stop(self) -> bool:
        return self._stopped.is_set()

    def checkpoint_blocking(self, job_id: int | None = None) -> None:
        """Raise if cancellation was requested."""

        if self._stopped.is_set():
            raise JobCancelledError(job_id)
