"""Text detection job engine.

``DetectionEngine`` is the public contract: start a job, poll it, list jobs.
Errors found before a job exists are raised to the caller; errors found
while extracting are recorded on the job and only visible by polling.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable

from pydantic import ValidationError

from .blob_store import BlobStore
from .dispatch import dispatch
from .errors import (
    BadRequestError,
    EngineShutdownError,
    InvalidStateError,
    NotFoundError,
)
from .job_store import JobStore
from .schema import (
    BlockType,
    DetectionResult,
    DocumentLocation,
    DocumentMetadata,
    Job,
    JobStatus,
)
from .sniff import sniff
from .worker import BackgroundWorker, JobSweeper

logger = logging.getLogger(__name__)

MSG_IN_PROGRESS = "Job is still in progress"
MSG_SUCCEEDED = "Job completed successfully"
MSG_FAILED = "Job failed"


def parse_location(location: Any) -> DocumentLocation:
    """Accept a DocumentLocation, ``{bucket, key}`` or the wire form.

    The wire form is ``{"S3Object": {"Bucket": ..., "Name": ...}}``.
    """
    if isinstance(location, DocumentLocation):
        return location
    if not isinstance(location, Mapping):
        raise BadRequestError('Missing "DocumentLocation"')
    if "S3Object" in location:
        s3_object = location["S3Object"]
        if not isinstance(s3_object, Mapping):
            raise BadRequestError('Missing "S3Object"')
        location = {"bucket": s3_object.get("Bucket"), "key": s3_object.get("Name")}
    try:
        return DocumentLocation.model_validate(location)
    except ValidationError as exc:
        raise BadRequestError('Missing "Bucket" or "Name"') from exc


class DetectionEngine:
    """Starts text detection jobs and reports their state."""

    def __init__(
        self,
        blob_store: BlobStore,
        store: JobStore | None = None,
        worker: BackgroundWorker | None = None,
        sweeper: JobSweeper | None = None,
        on_finished: Callable[[str], None] | None = None,
    ) -> None:
        self.blob_store = blob_store
        self.store = store if store is not None else JobStore()
        self.worker = worker if worker is not None else BackgroundWorker()
        self.sweeper = sweeper
        self.on_finished = on_finished

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def start_detection(self, location: Any) -> str:
        """Create a job for *location* and schedule extraction; return its id.

        Raises:
            BadRequestError: malformed location.
            NotFoundError: no object at the location.
            EngineShutdownError: the engine no longer accepts work.
        """
        if self.worker.closed:
            raise EngineShutdownError("Detection engine is shut down")
        loc = parse_location(location)
        if not self.blob_store.exists(loc.bucket, loc.key):
            raise NotFoundError(f'File not found: "{loc.bucket}/{loc.key}"')
        job = self.store.create(loc)
        logger.info("Job %s started for %s/%s", job.id, loc.bucket, loc.key)
        try:
            self.worker.submit(self._run, job.id, loc)
        except RuntimeError as exc:
            # Lost a race with shutdown; keep the record sweepable.
            self.store.fail(job.id, f"{type(exc).__name__}: {exc}")
            raise EngineShutdownError("Detection engine is shut down") from exc
        return job.id

    def get_detection(self, job_id: str) -> DetectionResult:
        job = self.store.get(job_id)
        if job.status == JobStatus.SUCCEEDED:
            blocks = job.blocks or []
            pages = sum(1 for b in blocks if b.block_type == BlockType.PAGE)
            return DetectionResult(
                job_status=job.status,
                status_message=MSG_SUCCEEDED,
                blocks=blocks,
                document_metadata=DocumentMetadata(pages=pages),
            )
        if job.status == JobStatus.FAILED:
            # Diagnostic stays server-side; see logs or list_jobs().
            return DetectionResult(job_status=job.status, status_message=MSG_FAILED)
        return DetectionResult(job_status=job.status, status_message=MSG_IN_PROGRESS)

    def list_jobs(self) -> list[Job]:
        """All known jobs. Debugging aid only, not paginated."""
        return self.store.list_jobs()

    def start_sweeper(self) -> None:
        if self.sweeper is None:
            self.sweeper = JobSweeper(self.store)
        self.sweeper.start()

    def shutdown(self, wait: bool = True) -> None:
        if self.sweeper is not None:
            self.sweeper.stop()
        self.worker.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Background
    # ------------------------------------------------------------------
    def _run(self, job_id: str, location: DocumentLocation) -> None:
        """Extract blocks and record the outcome. Runs in a worker thread."""
        try:
            self._extract(job_id, location)
        finally:
            if self.on_finished is not None:
                try:
                    self.on_finished(job_id)
                except Exception:
                    logger.exception("on_finished hook failed for job %s", job_id)

    def _extract(self, job_id: str, location: DocumentLocation) -> None:
        try:
            data = self.blob_store.read(location.bucket, location.key)
            mime = sniff(data)
            logger.debug("Job %s content type %s", job_id, mime)
            blocks = dispatch(data, mime)
        except Exception as exc:
            logger.error("Job %s failed", job_id, exc_info=True)
            self._transition(self.store.fail, job_id, f"{type(exc).__name__}: {exc}")
            return
        if self._transition(self.store.complete, job_id, blocks):
            logger.info("Job %s completed, extracted %d blocks", job_id, len(blocks))

    @staticmethod
    def _transition(fn: Callable[[str, Any], None], job_id: str, value: Any) -> bool:
        try:
            fn(job_id, value)
        except InvalidStateError:
            logger.error("Invalid job transition for %s", job_id, exc_info=True)
            return False
        return True
