"""HTTP client for a running text detection service.

Mirrors the service routes: start a job, poll it, list jobs. Payloads are
returned as the wire-form dicts the service sends.
"""

from __future__ import annotations

import time
from typing import Any

import requests

from .config import BASE_URL
from .errors import BadRequestError, DetectionError, EngineShutdownError, NotFoundError

_ERRORS_BY_STATUS = {
    400: BadRequestError,
    404: NotFoundError,
    503: EngineShutdownError,
}


class TextDetectClient:
    """Thin wrapper over ``requests`` for the ``/textract`` routes."""

    def __init__(
        self,
        base_url: str = BASE_URL,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def start_document_text_detection(self, bucket: str, key: str) -> str:
        """Start a job for ``bucket/key`` and return its JobId."""
        body = {"DocumentLocation": {"S3Object": {"Bucket": bucket, "Name": key}}}
        payload = self._request("POST", "/textract/start-document-text-detection", json=body)
        return payload["JobId"]

    def get_document_text_detection(
        self, job_id: str, next_token: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"JobId": job_id}
        if next_token is not None:
            body["NextToken"] = next_token
        return self._request("POST", "/textract/get-document-text-detection", json=body)

    def list_jobs(self) -> list[dict[str, Any]]:
        """Job summaries without blocks. Debugging aid only."""
        return self._request("GET", "/textract/list-jobs")["Jobs"]

    def wait_for_job(
        self, job_id: str, interval: float = 1.0, timeout: float = 300.0,
    ) -> dict[str, Any]:
        """Poll until the job leaves IN_PROGRESS; raise TimeoutError otherwise."""
        deadline = time.monotonic() + timeout
        while True:
            result = self.get_document_text_detection(job_id)
            if result.get("JobStatus") in ("SUCCEEDED", "FAILED"):
                return result
            if time.monotonic() >= deadline:
                raise TimeoutError(f"Job {job_id} still in progress after {timeout}s")
            time.sleep(interval)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = self.session.request(
            method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs,
        )
        error_cls = _ERRORS_BY_STATUS.get(resp.status_code)
        if error_cls is not None:
            raise error_cls(_detail(resp))
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise DetectionError(f"HTTP {resp.status_code}: {_detail(resp)}") from exc
        return resp.json()


def _detail(resp: requests.Response) -> str:
    try:
        return str(resp.json().get("detail", resp.text))
    except ValueError:
        return resp.text
