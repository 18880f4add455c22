"""Cancellable background task that calls a sweep function on an interval."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicSweeper:
    """Runs ``sweep`` every ``interval`` seconds on a daemon thread.

    ``start`` and ``stop`` are idempotent: a second start while running is a
    no-op and a stop joins the worker so no thread outlives the owner.
    """

    def __init__(self, sweep: Callable[[], object], interval: float, name: str = "gap-registry-sweeper"):
        self._sweep = sweep
        self.interval = interval
        self.name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Start the worker. Returns False if it was already running."""
        with self._lock:
            if self.running:
                return False
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
            return True

    def stop(self, timeout: Optional[float] = 5.0) -> bool:
        """Stop the worker. Returns False if nothing was running."""
        with self._lock:
            thread = self._thread
            if thread is None:
                return False
            self._stop_event.set()
            thread.join(timeout)
            self._thread = None
            return True

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self._sweep()
            except Exception as e:
                logger.error(f"Periodic sweep failed: {e}", exc_info=True)
