"""RemoteJobClient: the four calls the transcription service exposes.

Owns URL construction, `x-api-key` injection and response-shape
validation. Transport failures and non-success statuses are mapped to one
domain error per call so callers never see raw HTTP details.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Type

from pydantic import ValidationError

from vocant.core.config import OrchestratorConfig
from vocant.core.exceptions import (
    FetchError,
    PresignError,
    RemoteServiceError,
    StatusQueryError,
    TransportError,
    UploadError,
)
from vocant.core.interfaces.http_client import HttpClientPort
from vocant.core.interfaces.retry import RetryPort
from vocant.core.models.job import PresignedUpload, StatusReport
from vocant.core.settings import logger

API_KEY_HEADER = "x-api-key"
TRANSIENT_STATUSES = {429, 502, 503, 504}
SNIPPET_LIMIT = 500


class TransientUpstreamError(RemoteServiceError):
    """Retryable failure (timeout, connection error, 429/5xx gateway status).

    Only used inside the retry boundary; it is unwrapped into the
    operation-specific error once attempts are exhausted.
    """

    kind = "transient"


def _snippet(body: Any) -> str:
    if isinstance(body, (bytes, bytearray)):
        body = bytes(body).decode("utf-8", errors="replace")
    return str(body)[:SNIPPET_LIMIT]


def _is_success(status: int) -> bool:
    return 200 <= status < 300


class RemoteJobClient:
    def __init__(
        self,
        http_client: HttpClientPort,
        api_key: str,
        base_url: str,
        config: Optional[OrchestratorConfig] = None,
        retry_port: Optional[RetryPort] = None,
    ) -> None:
        self._http = http_client
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self.config = config or OrchestratorConfig()
        self._retry = retry_port

    # ---------------- URLs & headers -----------------
    def presign_url(self) -> str:
        return f"{self._base_url}/presigned"

    def status_url(self, job_id: str) -> str:
        return f"{self._base_url}/status/{job_id}"

    def download_url(self, download_url_or_job_id: str) -> str:
        if download_url_or_job_id.startswith(("http://", "https://")):
            return download_url_or_job_id
        return f"{self._base_url}/download/{download_url_or_job_id}"

    def _auth_headers(self, **extra: str) -> Dict[str, str]:
        headers = {API_KEY_HEADER: self._api_key}
        headers.update(extra)
        return headers

    # ---------------- Presign -----------------
    async def request_upload(
        self,
        file_name: str,
        file_size: int,
        content_type: str,
        callback_url: Optional[str] = None,
        use_original_filename: bool = False,
    ) -> PresignedUpload:
        """Phase 1 of the upload handshake: obtain a job id and a one-time PUT URL."""
        body: Dict[str, Any] = {
            "fileName": file_name,
            "fileSize": file_size,
            "contentType": content_type,
            "options": {"useOriginalFilename": bool(use_original_filename)},
        }
        if callback_url:
            body["callbackUrl"] = callback_url

        logger.debug(
            f"[job:presign] requesting upload url file_name={file_name} size={file_size} "
            f"content_type={content_type} callback={'yes' if callback_url else 'no'}"
        )
        try:
            resp = await self._http.post(
                self.presign_url(),
                json=body,
                headers=self._auth_headers(**{"Content-Type": "application/json"}),
                timeout=self.config.request_timeout,
            )
        except TransportError as exc:
            raise PresignError(
                f"Presign request failed: {exc.message}",
                upstream_status=exc.upstream_status,
                diagnostic=exc.title,
            ) from exc

        status = resp.get("status", 0)
        if not _is_success(status):
            raise PresignError(
                f"Presign request rejected with HTTP {status}",
                upstream_status=status,
                upstream_body=_snippet(resp.get("body")),
            )
        try:
            presigned = PresignedUpload.model_validate(json.loads(resp.get("body") or b""))
        except (ValueError, ValidationError) as exc:
            # json.JSONDecodeError is a ValueError
            raise PresignError(
                "Presign response is missing jobId/uploadUrl or is not JSON",
                upstream_status=status,
                upstream_body=_snippet(resp.get("body")),
                diagnostic=str(exc),
            ) from exc

        logger.info(f"[job:presign] presign succeeded job_id={presigned.job_id} expires_in={presigned.expires_in}")
        return presigned

    # ---------------- Upload -----------------
    async def upload_payload(
        self,
        upload_url: str,
        payload: bytes,
        content_type: str,
        job_id: Optional[str] = None,
    ) -> None:
        """Phase 2: PUT the whole buffer to the single-use URL. Never retried."""
        headers = {
            "Content-Type": content_type,
            "Content-Length": str(len(payload)),
        }
        logger.debug(f"[job:upload] uploading bytes={len(payload)} job_id={job_id}")
        try:
            resp = await self._http.put(
                upload_url,
                data=payload,
                headers=headers,
                timeout=self.config.upload_timeout,
            )
        except TransportError as exc:
            raise UploadError(
                f"Upload failed: {exc.message}",
                upstream_status=exc.upstream_status,
                diagnostic=exc.title,
                job_id=job_id,
            ) from exc

        status = resp.get("status", 0)
        if not _is_success(status):
            raise UploadError(
                f"Upload rejected with HTTP {status}",
                upstream_status=status,
                upstream_body=_snippet(resp.get("body")),
                job_id=job_id,
            )
        logger.info(f"[job:upload] upload complete job_id={job_id} bytes={len(payload)}")

    # ---------------- Status -----------------
    async def query_status(self, job_id: str) -> StatusReport:
        resp = await self._get(
            self.status_url(job_id),
            self._auth_headers(Accept="application/json"),
            StatusQueryError,
            job_id,
        )
        try:
            report = StatusReport.model_validate(json.loads(resp.get("body") or b""))
        except (ValueError, ValidationError) as exc:
            raise StatusQueryError(
                f"Status response for job {job_id} is not a valid status document",
                upstream_status=resp.get("status"),
                upstream_body=_snippet(resp.get("body")),
                diagnostic=str(exc),
                job_id=job_id,
            ) from exc
        logger.debug(f"[job:poll] status job_id={job_id} state={report.state} download_url_set={bool(report.download_url)}")
        return report

    # ---------------- Fetch -----------------
    async def fetch_result(self, download_url_or_job_id: str, job_id: Optional[str] = None) -> bytes:
        """Download the transcript; accepts a download URL or a bare job id."""
        url = self.download_url(download_url_or_job_id)
        if job_id is None and url != download_url_or_job_id:
            job_id = download_url_or_job_id
        resp = await self._get(url, self._auth_headers(), FetchError, job_id)
        body = resp.get("body") or b""
        if isinstance(body, str):
            body = body.encode("utf-8")
        logger.info(f"[job:fetch] fetched result job_id={job_id} bytes={len(body)}")
        return bytes(body)

    # ---------------- Retry boundary -----------------
    async def _get(
        self,
        url: str,
        headers: Dict[str, str],
        error_cls: Type[RemoteServiceError],
        job_id: Optional[str],
    ) -> Dict[str, Any]:
        """GET with transient-error retry; maps every failure to `error_cls`."""

        async def attempt() -> Dict[str, Any]:
            try:
                resp = await self._http.get(url, headers=headers, timeout=self.config.request_timeout)
            except TransportError as exc:
                raise TransientUpstreamError(
                    exc.message, upstream_status=exc.upstream_status, diagnostic=exc.title, job_id=job_id
                ) from exc
            if resp.get("status") in TRANSIENT_STATUSES:
                raise TransientUpstreamError(
                    f"HTTP {resp.get('status')}",
                    upstream_status=resp.get("status"),
                    upstream_body=_snippet(resp.get("body")),
                    job_id=job_id,
                )
            return resp

        try:
            if self._retry:
                resp = await self._retry.execute(
                    attempt,
                    attempts=self.config.retry_attempts,
                    wait_initial=self.config.retry_wait_initial,
                    wait_max=self.config.retry_wait_max,
                    exception_types=(TransientUpstreamError,),
                )
            else:
                resp = await attempt()
        except TransientUpstreamError as exc:
            logger.warning(f"[job:http] giving up on GET job_id={job_id} err={exc.message}")
            raise error_cls(
                f"Request for job {job_id} failed: {exc.message}",
                upstream_status=exc.upstream_status,
                upstream_body=exc.upstream_body,
                diagnostic=exc.diagnostic,
                job_id=job_id,
            ) from exc

        status = resp.get("status", 0)
        if not _is_success(status):
            raise error_cls(
                f"Request for job {job_id} rejected with HTTP {status}",
                upstream_status=status,
                upstream_body=_snippet(resp.get("body")),
                job_id=job_id,
            )
        return resp
