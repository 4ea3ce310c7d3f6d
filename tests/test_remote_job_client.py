"""Unit tests for RemoteJobClient URL building, auth headers and error mapping."""

import base64

import pytest

from vocant.adapters.retry_tenacity import TenacityRetryAdapter
from vocant.core.config import OrchestratorConfig
from vocant.core.exceptions import (
    FetchError,
    PresignError,
    StatusQueryError,
    TransportError,
    UploadError,
)
from vocant.core.managers.remote_job_client import RemoteJobClient
from vocant.core.models.outcome import Artifact

from http_fakes import FakeHttpClient, json_response, text_response

BASE = "https://api.test/webhook"
PRESIGN = ("POST", f"{BASE}/presigned")


def make_client(responses, retry=None, **config):
    http = FakeHttpClient(responses)
    cfg = OrchestratorConfig(request_timeout=7, upload_timeout=99, **config)
    return RemoteJobClient(http, api_key="secret", base_url=BASE + "/", config=cfg, retry_port=retry), http


def fast_retry():
    return TenacityRetryAdapter(attempts=3, wait_initial=0.001, wait_max=0.002)


# --- Presign ---

@pytest.mark.asyncio
async def test_request_upload_sends_wire_contract():
    client, http = make_client({
        PRESIGN: json_response({"jobId": "j1", "uploadUrl": "https://s3.test/put?sig=1", "fileUrl": "https://s3.test/f", "expiresIn": 300})
    })

    presigned = await client.request_upload(
        "talk.mp3", 1234, "audio/mpeg", callback_url="https://me.test/hook", use_original_filename=True
    )

    assert presigned.job_id == "j1"
    assert presigned.upload_url == "https://s3.test/put?sig=1"
    assert presigned.expires_in == 300
    sent = http.requests[0]
    assert sent["headers"]["x-api-key"] == "secret"
    assert sent["timeout"] == 7
    assert sent["json"] == {
        "fileName": "talk.mp3",
        "fileSize": 1234,
        "contentType": "audio/mpeg",
        "callbackUrl": "https://me.test/hook",
        "options": {"useOriginalFilename": True},
    }


@pytest.mark.asyncio
async def test_request_upload_omits_empty_callback_url():
    client, http = make_client({PRESIGN: json_response({"jobId": "j1", "uploadUrl": "https://s3.test/put"})})

    await client.request_upload("talk.mp3", 1, "audio/mpeg", callback_url="")

    assert "callbackUrl" not in http.requests[0]["json"]
    assert http.requests[0]["json"]["options"] == {"useOriginalFilename": False}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        json_response({"uploadUrl": "https://s3.test/put"}),
        json_response({"jobId": "j1"}),
        text_response("<html>oops</html>"),
        json_response({"error": "bad key"}, status=401),
    ],
)
async def test_request_upload_rejects_bad_responses(response):
    client, _ = make_client({PRESIGN: response})

    with pytest.raises(PresignError):
        await client.request_upload("talk.mp3", 1, "audio/mpeg")


@pytest.mark.asyncio
async def test_request_upload_maps_transport_error():
    client, _ = make_client({PRESIGN: TransportError("Upstream Timeout", 504, "timed out")})

    with pytest.raises(PresignError) as excinfo:
        await client.request_upload("talk.mp3", 1, "audio/mpeg")
    assert excinfo.value.upstream_status == 504


# --- Upload ---

@pytest.mark.asyncio
async def test_upload_payload_puts_raw_bytes():
    url = "https://s3.test/put?sig=1"
    client, http = make_client({("PUT", url): text_response("")})
    payload = b"\x00\x01audio" * 100

    await client.upload_payload(url, payload, "audio/wav", job_id="j1")

    put = http.calls("PUT")[0]
    assert put["data"] == payload
    assert put["headers"]["Content-Type"] == "audio/wav"
    assert put["headers"]["Content-Length"] == str(len(payload))
    assert "x-api-key" not in put["headers"]
    assert put["timeout"] == 99


@pytest.mark.asyncio
async def test_upload_payload_failure_is_not_retried():
    url = "https://s3.test/put"
    client, http = make_client({("PUT", url): text_response("expired", status=503)}, retry=fast_retry())

    with pytest.raises(UploadError) as excinfo:
        await client.upload_payload(url, b"abc", "audio/mpeg", job_id="j1")

    assert excinfo.value.upstream_status == 503
    assert excinfo.value.job_id == "j1"
    assert len(http.calls("PUT")) == 1


# --- Status ---

@pytest.mark.asyncio
async def test_query_status_reads_state_field():
    client, http = make_client({
        ("GET", f"{BASE}/status/j1"): json_response({"state": "completed", "downloadUrl": "https://dl.test/j1", "progress": 100})
    })

    report = await client.query_status("j1")

    assert report.state == "completed"
    assert report.download_url == "https://dl.test/j1"
    assert report.is_completed()
    assert report.model_extra == {"progress": 100}
    assert http.requests[0]["headers"]["Accept"] == "application/json"
    assert http.requests[0]["headers"]["x-api-key"] == "secret"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [text_response("not json"), json_response({"status": "completed"}), json_response({"state": "x"}, status=404)],
)
async def test_query_status_rejects_bad_responses(response):
    client, _ = make_client({("GET", f"{BASE}/status/j1"): response})

    with pytest.raises(StatusQueryError) as excinfo:
        await client.query_status("j1")
    assert excinfo.value.job_id == "j1"


@pytest.mark.asyncio
async def test_query_status_retries_transient_errors():
    client, http = make_client(
        {
            ("GET", f"{BASE}/status/j1"): [
                TransportError("Upstream Connection Error", 502, "reset"),
                text_response("busy", status=503),
                json_response({"state": "pending"}),
            ]
        },
        retry=fast_retry(),
        retry_wait_initial=0.001,
        retry_wait_max=0.002,
    )

    report = await client.query_status("j1")

    assert report.state == "pending"
    assert len(http.requests) == 3


@pytest.mark.asyncio
async def test_query_status_gives_up_after_retry_budget():
    client, http = make_client(
        {("GET", f"{BASE}/status/j1"): text_response("busy", status=503)},
        retry=fast_retry(),
        retry_attempts=2,
        retry_wait_initial=0.001,
        retry_wait_max=0.002,
    )

    with pytest.raises(StatusQueryError) as excinfo:
        await client.query_status("j1")

    assert excinfo.value.upstream_status == 503
    assert len(http.requests) == 2


@pytest.mark.asyncio
async def test_query_status_transport_error_without_retry_port():
    client, _ = make_client({("GET", f"{BASE}/status/j1"): TransportError("Upstream Timeout", 504, "timed out")})

    with pytest.raises(StatusQueryError):
        await client.query_status("j1")


# --- Fetch ---

@pytest.mark.asyncio
async def test_fetch_result_by_job_id_and_by_url():
    client, http = make_client({
        ("GET", f"{BASE}/download/j1"): text_response("hello"),
        ("GET", "https://dl.test/j1.txt"): text_response("hello again"),
    })

    assert await client.fetch_result("j1") == b"hello"
    assert await client.fetch_result("https://dl.test/j1.txt", job_id="j1") == b"hello again"
    assert all(r["headers"]["x-api-key"] == "secret" for r in http.requests)


@pytest.mark.asyncio
async def test_fetch_result_non_success_raises():
    client, _ = make_client({("GET", f"{BASE}/download/j1"): text_response("gone", status=404)})

    with pytest.raises(FetchError) as excinfo:
        await client.fetch_result("j1")
    assert excinfo.value.upstream_status == 404
    assert excinfo.value.job_id == "j1"


@pytest.mark.asyncio
async def test_fetched_bytes_survive_base64_round_trip():
    transcript = "Grüße, 世界\nline two\r\n"
    client, _ = make_client({("GET", f"{BASE}/download/j1"): text_response(transcript)})

    data = await client.fetch_result("j1")
    artifact = Artifact(data=data, file_name="transcription_j1.txt")

    assert base64.b64decode(artifact.encoded()) == data
    restored = Artifact.model_validate_json(artifact.model_dump_json())
    assert restored.data == data
    assert restored.text() == transcript
