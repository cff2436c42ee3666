"""Background execution for detection jobs.

Extraction runs on a small ThreadPoolExecutor so request handlers never
block on it. A daemon thread periodically sweeps expired terminal jobs.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from .config import EXTRACTION_WORKERS, JOB_RETENTION_SECONDS, SWEEP_INTERVAL_SECONDS
from .job_store import JobStore

logger = logging.getLogger(__name__)


class BackgroundWorker:
    """Fire-and-forget task submission backed by a thread pool."""

    def __init__(self, max_workers: int = EXTRACTION_WORKERS) -> None:
        self._pool = ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="textdetect",
        )
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        # No future is returned: callers observe results through the job store.
        self._pool.submit(fn, *args)

    def shutdown(self, wait: bool = True) -> None:
        self._closed = True
        self._pool.shutdown(wait=wait)


class JobSweeper:
    """Daemon thread removing terminal jobs older than the retention window."""

    def __init__(
        self,
        store: JobStore,
        interval: float = SWEEP_INTERVAL_SECONDS,
        max_age: float = JOB_RETENTION_SECONDS,
    ) -> None:
        self.store = store
        self.interval = interval
        self.max_age = max_age
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._loop, name="textdetect-sweeper", daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> int:
        removed = self.store.sweep(self.max_age)
        if removed:
            logger.info("Sweep removed %d expired job(s)", removed)
        return removed

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.run_once()
            except Exception:
                logger.exception("Job sweep failed")
