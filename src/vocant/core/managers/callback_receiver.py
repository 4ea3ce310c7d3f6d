"""CallbackReceiver: push-triggered alternative to polling.

The service POSTs to the receiver when a job finishes. Two body shapes are
accepted:
- JSON notification `{"jobId": ..., ...}` (primary): the transcript is then
  fetched from the download endpoint;
- raw body: the transcript itself, with the job id in the `jobId` query
  parameter or the `x-job-id` header; nothing is fetched.

`receive` raises domain errors; `handle` wraps it and always returns a
structured acknowledgement, so an inbound request never goes unanswered.
"""

from __future__ import annotations

import hmac
import json
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from vocant.core.exceptions import InvalidCallbackError, UnauthorizedError
from vocant.core.managers.remote_job_client import API_KEY_HEADER, RemoteJobClient
from vocant.core.models.outcome import Artifact, Outcome, artifact_file_name
from vocant.core.models.work_item import Operation
from vocant.core.settings import logger

JOB_ID_HEADER = "x-job-id"


class CallbackReceiver:
    def __init__(self, client: RemoteJobClient, shared_secret: str) -> None:
        self._client = client
        self._secret = shared_secret
        if not shared_secret:
            logger.warning("[callback] no shared secret configured; inbound callbacks are not authenticated")

    def authorize(self, headers: Mapping[str, str]) -> None:
        if not self._secret:
            return
        provided = headers.get(API_KEY_HEADER) or ""
        if not hmac.compare_digest(provided.encode("utf-8"), self._secret.encode("utf-8")):
            raise UnauthorizedError("Unauthorized")

    @staticmethod
    def _is_json(content_type: Optional[str], body: Any) -> bool:
        if isinstance(body, dict):
            return True
        return content_type is None or "json" in content_type.lower()

    @staticmethod
    def _parse_notification(body: Any) -> Dict[str, Any]:
        if isinstance(body, dict):
            return body
        try:
            payload = json.loads(body or b"")
        except ValueError as exc:
            raise InvalidCallbackError(f"Invalid webhook data: body is not JSON ({exc})") from exc
        if not isinstance(payload, dict):
            raise InvalidCallbackError("Invalid webhook data: expected a JSON object")
        return payload

    async def receive(
        self,
        headers: Mapping[str, str],
        body: Any,
        content_type: Optional[str] = None,
        query: Optional[Mapping[str, str]] = None,
    ) -> Tuple[Outcome, Any]:
        """Validate and process one notification; returns (outcome, parsed notification)."""
        headers = {k.lower(): v for k, v in headers.items()}
        self.authorize(headers)

        if self._is_json(content_type, body):
            notification = self._parse_notification(body)
            job_id = notification.get("jobId")
            if job_id and isinstance(job_id, int) and not isinstance(job_id, bool):
                job_id = str(job_id)
            if not job_id or not isinstance(job_id, str):
                raise InvalidCallbackError("Invalid webhook data: jobId")
            logger.info(f"[callback] notification received job_id={job_id}")
            data = await self._client.fetch_result(job_id)
        else:
            notification = None
            job_id = (query or {}).get("jobId") or headers.get(JOB_ID_HEADER)
            if not job_id:
                raise InvalidCallbackError("Invalid webhook data: jobId")
            data = body.encode("utf-8") if isinstance(body, str) else bytes(body or b"")
            logger.info(f"[callback] transcript pushed job_id={job_id} bytes={len(data)}")

        outcome = Outcome(
            index=0,
            operation=Operation.fetch,
            success=True,
            job_id=job_id,
            artifact=Artifact(data=data, file_name=artifact_file_name(job_id)),
        )
        return outcome, notification

    async def handle(
        self,
        headers: Mapping[str, str],
        body: Any,
        content_type: Optional[str] = None,
        query: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        try:
            outcome, _ = await self.receive(headers, body, content_type=content_type, query=query)
        except Exception as exc:
            kind = getattr(exc, "kind", "unexpected")
            logger.warning(f"[callback] rejected kind={kind} err={exc}")
            return {
                "status": "error",
                "kind": kind,
                "message": str(exc),
                "originalData": None if isinstance(exc, UnauthorizedError) else self._original_data(body),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        return outcome.model_dump(mode="json", exclude_none=True)

    @staticmethod
    def _original_data(body: Any) -> Any:
        if body is None or isinstance(body, dict):
            return body
        text = body.decode("utf-8", errors="replace") if isinstance(body, (bytes, bytearray)) else str(body)
        try:
            return json.loads(text)
        except ValueError:
            return text[:500]
