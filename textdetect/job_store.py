"""In-memory job store for async text detection jobs.

Thread-safe. Each job goes through: IN_PROGRESS -> SUCCEEDED | FAILED.
Terminal states are absorbing; terminal jobs are removed only by ``sweep``.
Callers always receive copies, never the stored records.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone

from .errors import InvalidStateError, NotFoundError
from .schema import Block, DocumentLocation, Job, JobStatus

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class JobStore:
    """Thread-safe registry of detection jobs keyed by job id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[str, Job] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def create(self, location: DocumentLocation) -> Job:
        job = Job(
            id=uuid.uuid4().hex,
            status=JobStatus.IN_PROGRESS,
            document_location=location,
            started_at=_now(),
        )
        with self._lock:
            self._jobs[job.id] = job
            return job.model_copy(deep=True)

    def get(self, job_id: str) -> Job:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise NotFoundError(f"Job not found: {job_id}")
            return job.model_copy(deep=True)

    def complete(self, job_id: str, blocks: list[Block]) -> None:
        with self._lock:
            job = self._active(job_id)
            job.status = JobStatus.SUCCEEDED
            job.ended_at = _now()
            job.blocks = [block.model_copy() for block in blocks]

    def fail(self, job_id: str, message: str) -> None:
        with self._lock:
            job = self._active(job_id)
            job.status = JobStatus.FAILED
            job.ended_at = _now()
            job.error_message = message

    def list_jobs(self) -> list[Job]:
        with self._lock:
            return [job.model_copy(deep=True) for job in self._jobs.values()]

    def sweep(self, max_age: float) -> int:
        """Remove terminal jobs that ended more than *max_age* seconds ago."""
        cutoff = _now() - timedelta(seconds=max_age)
        with self._lock:
            stale = [
                jid
                for jid, job in self._jobs.items()
                if job.status.is_terminal
                and job.ended_at is not None
                and job.ended_at < cutoff
            ]
            for jid in stale:
                del self._jobs[jid]
        for jid in stale:
            logger.info("Removed expired job %s", jid)
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _active(self, job_id: str) -> Job:
        """Return the stored record if it may still transition (called under lock)."""
        job = self._jobs.get(job_id)
        if job is None:
            raise InvalidStateError(f"Cannot transition missing job {job_id}")
        if job.status.is_terminal:
            raise InvalidStateError(
                f"Job {job_id} is already {job.status.value}"
            )
        return job
