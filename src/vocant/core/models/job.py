from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from vocant.core.exceptions import JobStateError


class JobState(StrEnum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    timedOut = "timedOut"


TERMINAL_STATES = {JobState.completed, JobState.failed, JobState.timedOut}


class PresignedUpload(BaseModel):
    """Response of the presign handshake (`POST /presigned`)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    job_id: str = Field(alias="jobId", min_length=1)
    upload_url: str = Field(alias="uploadUrl", min_length=1)
    file_url: Optional[str] = Field(default=None, alias="fileUrl")
    expires_in: Optional[int] = Field(default=None, alias="expiresIn")


class StatusReport(BaseModel):
    """Status document returned by `GET /status/{jobId}`.

    `state` is kept as a plain string so that unknown states reported by the
    service are tolerated and treated as non-terminal by the poll loop.
    Additional keys are preserved for the status-only operation.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    state: str
    download_url: Optional[str] = Field(default=None, alias="downloadUrl")
    message: Optional[str] = None

    def is_completed(self) -> bool:
        # completion without a download location is malformed but retriable
        return self.state == JobState.completed and bool(self.download_url)

    def is_failed(self) -> bool:
        return self.state == JobState.failed


class Job(BaseModel):
    """Locally tracked view of one remote transcription job.

    Notes:
    - `job_id` is assigned by the service and immutable.
    - `upload_url` is single-use and only valid for `expires_in` seconds.
    - `download_url` is set at most once, on the `completed` transition.
    - Only pending jobs transition; terminal states are final.
    """

    job_id: str = Field(frozen=True, min_length=1)
    upload_url: Optional[str] = None
    file_url: Optional[str] = None
    expires_in: Optional[int] = None
    download_url: Optional[str] = None
    state: JobState = JobState.pending
    message: Optional[str] = None
    waited: float = 0.0

    @classmethod
    def from_presign(cls, presigned: PresignedUpload) -> "Job":
        return cls(
            job_id=presigned.job_id,
            upload_url=presigned.upload_url,
            file_url=presigned.file_url,
            expires_in=presigned.expires_in,
        )

    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def _ensure_pending(self, target: JobState) -> None:
        if self.state != JobState.pending:
            raise JobStateError(
                f"Job {self.job_id} cannot transition from {self.state} to {target}",
                job_id=self.job_id,
            )

    def mark_completed(self, download_url: str, waited: float) -> None:
        self._ensure_pending(JobState.completed)
        if self.download_url is not None:
            raise JobStateError(
                f"Job {self.job_id} already has a download location", job_id=self.job_id
            )
        self.download_url = download_url
        self.state = JobState.completed
        self.waited = waited

    def mark_failed(self, message: Optional[str], waited: float) -> None:
        self._ensure_pending(JobState.failed)
        self.state = JobState.failed
        self.message = message
        self.waited = waited

    def mark_timed_out(self, waited: float) -> None:
        self._ensure_pending(JobState.timedOut)
        self.state = JobState.timedOut
        self.waited = waited
