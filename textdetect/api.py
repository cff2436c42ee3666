"""FastAPI app exposing the text detection engine.

Routes and payloads follow the cloud text-detection API shape so that
existing clients can point at this service.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .blob_store import LocalBlobStore
from .config import log_startup_config
from .errors import BadRequestError, EngineShutdownError, NotFoundError
from .schema import DetectionResult, Job
from .service import DetectionEngine


class GetDetectionBody(BaseModel):
    JobId: str = Field(min_length=1)
    # Accepted for client compatibility; results are not paginated.
    NextToken: str | None = None


def _result_payload(result: DetectionResult) -> dict[str, Any]:
    return result.model_dump(by_alias=True, exclude_none=True, mode="json")


def _job_summary(job: Job) -> dict[str, Any]:
    """Wire form of a job without its blocks."""
    summary: dict[str, Any] = {
        "JobId": job.id,
        "JobStatus": job.status.value,
        "DocumentLocation": {
            "S3Object": {
                "Bucket": job.document_location.bucket,
                "Name": job.document_location.key,
            }
        },
        "StartTime": job.started_at.isoformat(),
    }
    if job.ended_at is not None:
        summary["EndTime"] = job.ended_at.isoformat()
    if job.error_message is not None:
        summary["ErrorMessage"] = job.error_message
    return summary


def build_router(engine: DetectionEngine) -> APIRouter:
    router = APIRouter(prefix="/textract")

    @router.post("/start-document-text-detection")
    async def start_document_text_detection(payload: dict = Body(...)):
        if "DocumentLocation" not in payload:
            raise BadRequestError('Missing "DocumentLocation"')
        job_id = engine.start_detection(payload["DocumentLocation"])
        return {"JobId": job_id}

    @router.get("/get-document-text-detection")
    async def get_document_text_detection_query(JobId: str, NextToken: str | None = None):
        if not JobId:
            raise BadRequestError('Missing "JobId"')
        return _result_payload(engine.get_detection(JobId))

    @router.post("/get-document-text-detection")
    async def get_document_text_detection(body: GetDetectionBody):
        return _result_payload(engine.get_detection(body.JobId))

    # Not part of the cloud API; debugging only.
    @router.get("/list-jobs")
    async def list_jobs():
        return {"Jobs": [_job_summary(job) for job in engine.list_jobs()]}

    return router


def create_app(engine: DetectionEngine | None = None, start_sweeper: bool = True) -> FastAPI:
    engine = engine if engine is not None else DetectionEngine(LocalBlobStore())
    app = FastAPI(title="Local Text Detection")
    app.state.engine = engine

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------
    @app.on_event("startup")
    def _startup() -> None:
        log_startup_config()
        if start_sweeper:
            engine.start_sweeper()

    @app.on_event("shutdown")
    def _shutdown() -> None:
        engine.shutdown(wait=False)

    # -----------------------------------------------------------------------
    # Error handlers
    # -----------------------------------------------------------------------
    @app.exception_handler(BadRequestError)
    async def _bad_request_handler(request: Request, exc: BadRequestError):  # noqa: ARG001
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def _not_found_handler(request: Request, exc: NotFoundError):  # noqa: ARG001
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(EngineShutdownError)
    async def _shutdown_handler(request: Request, exc: EngineShutdownError):  # noqa: ARG001
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def _validation_handler(request: Request, exc: RequestValidationError):  # noqa: ARG001
        return JSONResponse(status_code=400, content={"detail": str(exc.errors())})

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):  # noqa: ARG001
        if isinstance(exc, HTTPException):
            raise exc
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc) or "Internal server error"},
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(build_router(engine))
    return app


app = create_app()
