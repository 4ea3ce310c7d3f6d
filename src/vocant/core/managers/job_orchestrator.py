"""JobOrchestrator: runs one work item through its operation and returns one Outcome.

Operations:
- transcribe: presign + upload, poll until terminal, fetch the transcript
- upload: presign + upload only; completion arrives through the callback receiver
- status: single status query for a known job id
- fetch: download the transcript of a known job id

Errors raised by the pipeline carry the partial job known at that point;
turning them into failure outcomes (or not) is the batch runner's call.
A poll timeout is not raised: it is a per-item failure outcome.
"""

from __future__ import annotations

from typing import Optional

from vocant.core.exceptions import JobTimeoutError, MissingJobIdError, VocantError
from vocant.core.managers.poll_loop import PollLoop
from vocant.core.managers.remote_job_client import RemoteJobClient
from vocant.core.managers.upload_handshake import UploadHandshake
from vocant.core.models.job import JobState
from vocant.core.models.outcome import Artifact, Outcome, artifact_file_name
from vocant.core.models.work_item import Operation, WorkItem
from vocant.core.settings import logger


class JobOrchestrator:
    def __init__(
        self,
        client: RemoteJobClient,
        poll_loop: Optional[PollLoop] = None,
        handshake: Optional[UploadHandshake] = None,
    ) -> None:
        self._client = client
        self._poll = poll_loop or PollLoop(client, client.config)
        self._handshake = handshake or UploadHandshake(client)
        self._handlers = {
            Operation.transcribe: self._transcribe,
            Operation.upload: self._upload,
            Operation.status: self._status,
            Operation.fetch: self._fetch,
        }

    async def process(self, item: WorkItem) -> Outcome:
        logger.debug(f"[job:item] index={item.index} operation={item.operation}")
        return await self._handlers[item.operation](item)

    async def _transcribe(self, item: WorkItem) -> Outcome:
        job = await self._handshake.submit(item)
        result = await self._poll.wait_for_completion(job)

        if result.state == JobState.timedOut:
            timeout = JobTimeoutError(job.job_id, result.waited, self._poll.config.max_wait)
            return Outcome.failure(item.index, item.operation, timeout, job=job)

        try:
            data = await self._client.fetch_result(result.download_url, job_id=job.job_id)
        except VocantError as exc:
            exc.job = job
            raise

        artifact = Artifact(
            data=data,
            file_name=artifact_file_name(job.job_id, item.file_name, item.use_original_filename),
        )
        return Outcome(
            index=item.index,
            operation=item.operation,
            success=True,
            job_id=job.job_id,
            job=job,
            state=job.state,
            waited=result.waited,
            artifact=artifact,
        )

    async def _upload(self, item: WorkItem) -> Outcome:
        job = await self._handshake.submit(item)
        return Outcome(
            index=item.index,
            operation=item.operation,
            success=True,
            job_id=job.job_id,
            job=job,
            state=job.state,
            upload=self._handshake.receipt(item, job),
        )

    @staticmethod
    def _require_job_id(item: WorkItem) -> str:
        if not item.job_id:
            raise MissingJobIdError(f"Item {item.index} ({item.operation}) has no job_id")
        return item.job_id

    async def _status(self, item: WorkItem) -> Outcome:
        job_id = self._require_job_id(item)
        report = await self._client.query_status(job_id)
        return Outcome(
            index=item.index,
            operation=item.operation,
            success=True,
            job_id=job_id,
            status=report,
        )

    async def _fetch(self, item: WorkItem) -> Outcome:
        job_id = self._require_job_id(item)
        data = await self._client.fetch_result(job_id)
        return Outcome(
            index=item.index,
            operation=item.operation,
            success=True,
            job_id=job_id,
            artifact=Artifact(data=data, file_name=artifact_file_name(job_id)),
        )
