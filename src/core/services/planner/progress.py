"""
Progress monitor — cooperative cancellation and progress reporting.

A monitor is handed to the planner by the caller.  The planner checks
it between phases and between search steps; ``cancel()`` may be called
from any thread.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from src.core.services.planner.errors import ResolutionCancelled

logger = logging.getLogger(__name__)

ProgressCallback = Callable[["ProgressMonitor"], None]


class ProgressMonitor:
    """Tracks the current phase and work done; carries the cancel flag.

    Args:
        callback: Optional hook called on every phase change and every
            ``report_every`` units of work.  It may call ``cancel()``.
        report_every: Work units between callback invocations.
    """

    def __init__(self, callback: ProgressCallback | None = None, report_every: int = 100) -> None:
        self._cancelled = threading.Event()
        self._callback = callback
        self._report_every = max(1, report_every)
        self.phase = ""
        self.work = 0

    def cancel(self) -> None:
        """Request cancellation; observed at the next checkpoint."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def begin_phase(self, name: str) -> None:
        self.phase = name
        logger.debug("Planner phase: %s", name)
        self._notify()
        self.checkpoint()

    def worked(self, units: int = 1) -> None:
        before = self.work // self._report_every
        self.work += units
        if self.work // self._report_every != before:
            self._notify()

    def checkpoint(self) -> None:
        """Raise ``ResolutionCancelled`` if cancellation was requested."""
        if self._cancelled.is_set():
            raise ResolutionCancelled(f"Resolution cancelled during {self.phase or 'setup'}")

    def _notify(self) -> None:
        if self._callback is not None:
            self._callback(self)
