"""Two-phase upload: presign, then transfer.

Phase 2 only starts after phase 1 fully succeeded. There is no partial
upload recovery; a failed transfer needs a fresh presign because the
one-time URL may already be consumed or expired.
"""

from __future__ import annotations

from vocant.core.exceptions import MissingPayloadError, VocantError
from vocant.core.managers.remote_job_client import RemoteJobClient
from vocant.core.models.job import Job
from vocant.core.models.outcome import UploadReceipt
from vocant.core.models.work_item import WorkItem
from vocant.core.settings import logger


class UploadHandshake:
    def __init__(self, client: RemoteJobClient) -> None:
        self._client = client

    @staticmethod
    def validate(item: WorkItem) -> None:
        if not item.payload:
            raise MissingPayloadError(f"No audio payload found for item {item.index}")
        if not item.file_name:
            raise MissingPayloadError(f"Item {item.index} has no declared file name")
        if not item.content_type:
            raise MissingPayloadError(f"Item {item.index} has no declared content type")

    async def submit(self, item: WorkItem) -> Job:
        self.validate(item)

        presigned = await self._client.request_upload(
            file_name=item.file_name,
            file_size=item.payload_size,
            content_type=item.content_type,
            callback_url=item.callback_url,
            use_original_filename=item.use_original_filename,
        )
        job = Job.from_presign(presigned)

        try:
            await self._client.upload_payload(
                job.upload_url, item.payload, item.content_type, job_id=job.job_id
            )
        except VocantError as exc:
            logger.warning(f"[job:upload] transfer failed, upload url is spent job_id={job.job_id} err={exc.message}")
            exc.job = job
            raise
        return job

    @staticmethod
    def receipt(item: WorkItem, job: Job) -> UploadReceipt:
        return UploadReceipt(
            file_url=job.file_url,
            expires_in=job.expires_in,
            original_file_name=item.file_name,
            file_size=item.payload_size,
        )
