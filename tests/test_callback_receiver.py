"""Tests for the push-triggered callback path.

The receiver must authenticate before touching the body, fetch the transcript
for JSON notifications, accept raw pushed transcripts, and always answer with
a structured body instead of raising.
"""

import base64
import json
from unittest.mock import AsyncMock, Mock

import pytest

from vocant.core.exceptions import FetchError, InvalidCallbackError, UnauthorizedError
from vocant.core.managers.callback_receiver import CallbackReceiver
from vocant.core.managers.remote_job_client import RemoteJobClient

from http_fakes import FakeHttpClient, text_response

BASE = "https://api.test/webhook"
SECRET = "s3cr3t"


def receiver_with_transport(responses):
    http = FakeHttpClient(responses)
    client = RemoteJobClient(http, api_key=SECRET, base_url=BASE)
    return CallbackReceiver(client, shared_secret=SECRET), http


def receiver_with_mock_client():
    client = Mock()
    client.fetch_result = AsyncMock(return_value=b"unused")
    return CallbackReceiver(client, shared_secret=SECRET), client


@pytest.mark.asyncio
async def test_notification_fetches_transcript():
    receiver, http = receiver_with_transport({("GET", f"{BASE}/download/abc"): text_response("hello")})

    outcome, notification = await receiver.receive(
        {"X-API-KEY": SECRET}, json.dumps({"jobId": "abc", "event": "completed"}).encode(), "application/json"
    )

    assert notification["event"] == "completed"
    assert outcome.success is True
    assert outcome.job_id == "abc"
    assert outcome.artifact.text() == "hello"
    assert outcome.artifact.file_name == "transcription_abc.txt"
    assert outcome.artifact.mime_type == "text/plain"
    assert outcome.timestamp is not None
    assert http.requests[0]["headers"]["x-api-key"] == SECRET


@pytest.mark.asyncio
async def test_handle_returns_base64_artifact():
    receiver, _ = receiver_with_transport({("GET", f"{BASE}/download/abc"): text_response("hello")})

    response = await receiver.handle({"x-api-key": SECRET}, b'{"jobId": "abc"}', "application/json")

    assert response["success"] is True
    assert response["job_id"] == "abc"
    assert base64.b64decode(response["artifact"]["data"]) == b"hello"
    assert response["artifact"]["file_name"] == "transcription_abc.txt"
    assert "timestamp" in response


@pytest.mark.asyncio
@pytest.mark.parametrize("headers", [{}, {"x-api-key": "wrong"}, {"x-api-key": SECRET + "x"}])
async def test_rejects_bad_key_without_fetching(headers):
    receiver, client = receiver_with_mock_client()

    with pytest.raises(UnauthorizedError):
        await receiver.receive(headers, b'{"jobId": "abc"}', "application/json")

    response = await receiver.handle(headers, b'{"jobId": "abc"}', "application/json")
    assert response["status"] == "error"
    assert response["kind"] == "unauthorized"
    assert response["originalData"] is None
    client.fetch_result.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b'{"event": "completed"}', b'{"jobId": ""}', b"[1, 2]", b"{not json"])
async def test_invalid_notification(body):
    receiver, client = receiver_with_mock_client()

    with pytest.raises(InvalidCallbackError):
        await receiver.receive({"x-api-key": SECRET}, body, "application/json")

    response = await receiver.handle({"x-api-key": SECRET}, body, "application/json")
    assert response["status"] == "error"
    assert response["kind"] == "invalid_callback"
    assert "jobId" in response["message"] or "JSON" in response["message"]
    client.fetch_result.assert_not_awaited()


@pytest.mark.asyncio
async def test_fetch_failure_is_acknowledged_with_original_data():
    receiver, client = receiver_with_mock_client()
    client.fetch_result.side_effect = FetchError("Request for job abc rejected with HTTP 404", upstream_status=404, job_id="abc")

    response = await receiver.handle({"x-api-key": SECRET}, b'{"jobId": "abc"}', "application/json")

    assert response["status"] == "error"
    assert response["kind"] == "fetch_failed"
    assert response["originalData"] == {"jobId": "abc"}


@pytest.mark.asyncio
async def test_raw_body_variant_uses_body_as_artifact():
    receiver, client = receiver_with_mock_client()

    outcome, notification = await receiver.receive(
        {"x-api-key": SECRET}, "raw transcript text".encode(), "text/plain", query={"jobId": "xyz"}
    )

    assert notification is None
    assert outcome.artifact.data == b"raw transcript text"
    assert outcome.artifact.file_name == "transcription_xyz.txt"
    client.fetch_result.assert_not_awaited()


@pytest.mark.asyncio
async def test_raw_body_variant_needs_job_id():
    receiver, _ = receiver_with_mock_client()

    response = await receiver.handle({"x-api-key": SECRET}, b"text", "text/plain")

    assert response["kind"] == "invalid_callback"


@pytest.mark.asyncio
async def test_unconfigured_secret_skips_auth():
    client = Mock()
    client.fetch_result = AsyncMock(return_value=b"hi")
    receiver = CallbackReceiver(client, shared_secret="")

    outcome, _ = await receiver.receive({}, {"jobId": "abc"})

    assert outcome.artifact.data == b"hi"
    client.fetch_result.assert_awaited_once_with("abc")


@pytest.mark.asyncio
async def test_numeric_job_id_is_accepted():
    receiver, client = receiver_with_mock_client()
    client.fetch_result.return_value = b"numbered"

    response = await receiver.handle({"x-api-key": SECRET}, b'{"jobId": 123}', "application/json")

    assert response["success"] is True
    assert response["job_id"] == "123"
    assert response["artifact"]["file_name"] == "transcription_123.txt"
    client.fetch_result.assert_awaited_once_with("123")
