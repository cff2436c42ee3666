"""Tests for textdetect.client against a mocked requests session."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from textdetect.client import TextDetectClient
from textdetect.errors import (
    BadRequestError,
    DetectionError,
    EngineShutdownError,
    NotFoundError,
)


def fake_response(status: int, payload=None, text: str = "") -> MagicMock:
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status
    resp.text = text
    if payload is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return resp


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(session: MagicMock) -> TextDetectClient:
    return TextDetectClient("http://svc:3333/", session=session, timeout=5)


class TestRequests:
    def test_start_posts_wire_location(self, client, session):
        session.request.return_value = fake_response(200, {"JobId": "abc"})
        assert client.start_document_text_detection("docs", "a.pdf") == "abc"
        session.request.assert_called_once_with(
            "POST",
            "http://svc:3333/textract/start-document-text-detection",
            timeout=5,
            json={"DocumentLocation": {"S3Object": {"Bucket": "docs", "Name": "a.pdf"}}},
        )

    def test_get_sends_next_token_only_when_given(self, client, session):
        session.request.return_value = fake_response(200, {"JobStatus": "IN_PROGRESS"})
        client.get_document_text_detection("abc")
        assert session.request.call_args.kwargs["json"] == {"JobId": "abc"}
        client.get_document_text_detection("abc", next_token="t1")
        assert session.request.call_args.kwargs["json"] == {"JobId": "abc", "NextToken": "t1"}

    def test_list_jobs_unwraps(self, client, session):
        session.request.return_value = fake_response(200, {"Jobs": [{"JobId": "abc"}]})
        assert client.list_jobs() == [{"JobId": "abc"}]
        assert session.request.call_args.args == ("GET", "http://svc:3333/textract/list-jobs")


class TestErrors:
    @pytest.mark.parametrize(
        "status, error_cls",
        [(400, BadRequestError), (404, NotFoundError), (503, EngineShutdownError)],
    )
    def test_status_maps_to_error(self, client, session, status, error_cls):
        session.request.return_value = fake_response(status, {"detail": "nope"})
        with pytest.raises(error_cls, match="nope"):
            client.get_document_text_detection("abc")

    def test_other_errors_raise_detection_error(self, client, session):
        session.request.return_value = fake_response(500, None, text="boom")
        with pytest.raises(DetectionError, match="HTTP 500: boom"):
            client.list_jobs()


class TestWaitForJob:
    def test_polls_until_terminal(self, client, session):
        session.request.side_effect = [
            fake_response(200, {"JobStatus": "IN_PROGRESS"}),
            fake_response(200, {"JobStatus": "SUCCEEDED", "Blocks": []}),
        ]
        with patch("textdetect.client.time.sleep") as mock_sleep:
            result = client.wait_for_job("abc", interval=0.5)
        assert result["JobStatus"] == "SUCCEEDED"
        mock_sleep.assert_called_once_with(0.5)

    def test_times_out(self, client, session):
        session.request.return_value = fake_response(200, {"JobStatus": "IN_PROGRESS"})
        with patch("textdetect.client.time.sleep"):
            with pytest.raises(TimeoutError):
                client.wait_for_job("abc", interval=0, timeout=0)
