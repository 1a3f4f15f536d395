"""Helpers for reporting two-pass ingestion progress."""

from __future__ import annotations

from typing import Callable, Optional


PASS_SPAN = 50


class IngestProgressTracker:
    """Convert per-pass ``(done, total)`` updates into one 0-100 percentage.

    Discovery covers 0-50 and aggregation 50-100. Only increases are sent, so
    consumers always observe a non-decreasing sequence.
    """

    def __init__(self, send: Optional[Callable[[int], None]]) -> None:
        self._send = send
        self._last_percent: Optional[int] = None

    @property
    def last_percent(self) -> int:
        return self._last_percent or 0

    def _emit(self, percent: int) -> None:
        percent = min(max(percent, 0), 100)
        if self._last_percent is not None and percent <= self._last_percent:
            return
        self._last_percent = percent
        if self._send is not None:
            self._send(percent)

    def _update(self, offset: int, done: int, total: int) -> None:
        if total <= 0:
            self._emit(offset + PASS_SPAN)
            return
        done = min(max(done, 0), total)
        self._emit(offset + int(done * PASS_SPAN / total))

    def update_discovery(self, done: int, total: int) -> None:
        self._update(0, done, total)

    def update_aggregation(self, done: int, total: int) -> None:
        self._update(PASS_SPAN, done, total)

    def finalize(self) -> None:
        self._emit(100)
