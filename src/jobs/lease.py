"""Process-wide admission control for catalog-mutating runs."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from .errors import LeaseTimeoutError


logger = logging.getLogger(__name__)


class CatalogWriteLease:
    """Named lease that at most one ingestion run holds at a time.

    A run takes the lease before discovery and releases it after its terminal
    outcome, so volume bookkeeping and conflict checks never interleave with
    another run's inserts.
    """

    def __init__(self, name: str = "catalog-write") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._owner: Optional[str] = None

    @property
    def is_held(self) -> bool:
        return self._lock.locked()

    @property
    def owner(self) -> Optional[str]:
        return self._owner

    def acquire(self, owner: str, timeout: Optional[float] = None) -> None:
        if self._lock.locked():
            logger.info("Lease %s busy (owner=%s); %s waiting", self.name, self._owner, owner)
        acquired = self._lock.acquire(timeout=-1 if timeout is None else timeout)
        if not acquired:
            raise LeaseTimeoutError(f"Lease {self.name} still held by {self._owner} after {timeout}s")
        self._owner = owner
        logger.debug("Lease %s acquired by %s", self.name, owner)

    def release(self) -> None:
        owner = self._owner
        self._owner = None
        self._lock.release()
        logger.debug("Lease %s released by %s", self.name, owner)

    @contextmanager
    def hold(self, owner: str, timeout: Optional[float] = None) -> Iterator["CatalogWriteLease"]:
        self.acquire(owner, timeout=timeout)
        try:
            yield self
        finally:
            self.release()


catalog_write_lease = CatalogWriteLease()
