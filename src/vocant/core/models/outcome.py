import base64
import os
import re
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from vocant.core.models.job import Job, JobState, StatusReport
from vocant.core.models.work_item import Operation

TRANSCRIPT_MIME_TYPE = "text/plain"

_EXTENSION = re.compile(r"\.[^/.]+$")


def artifact_file_name(
    job_id: str,
    original_file_name: Optional[str] = None,
    use_original_filename: bool = False,
) -> str:
    """`<base>_transcription.txt` when requested and known, else `transcription_<jobId>.txt`."""
    if use_original_filename and original_file_name:
        base_name = os.path.basename(original_file_name.replace("\\", "/"))
        if base_name:
            return _EXTENSION.sub("", base_name) + "_transcription.txt"
    return f"transcription_{job_id}.txt"


class Artifact(BaseModel):
    """Retrieved transcription. Bytes travel as base64 in JSON."""

    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    data: bytes = Field(repr=False)
    mime_type: str = TRANSCRIPT_MIME_TYPE
    file_name: str

    @property
    def size(self) -> int:
        return len(self.data)

    def encoded(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def text(self, encoding: str = "utf-8") -> str:
        return self.data.decode(encoding)


class UploadReceipt(BaseModel):
    file_url: Optional[str] = None
    expires_in: Optional[int] = None
    original_file_name: Optional[str] = None
    file_size: int
    upload_timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ErrorInfo(BaseModel):
    kind: str
    message: str


class Outcome(BaseModel):
    """Result of processing exactly one work item.

    Success outcomes carry operation-specific data (upload receipt, status
    report or artifact); failure outcomes carry `error` plus whatever partial
    job state was known when processing stopped.
    """

    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    index: int
    operation: Operation
    success: bool
    job_id: Optional[str] = None
    job: Optional[Job] = None
    state: Optional[JobState] = None
    waited: Optional[float] = None
    upload: Optional[UploadReceipt] = None
    status: Optional[StatusReport] = None
    artifact: Optional[Artifact] = None
    error: Optional[ErrorInfo] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def failure(
        cls,
        index: int,
        operation: Operation,
        exc: BaseException,
        job: Optional[Job] = None,
    ) -> "Outcome":
        job = job or getattr(exc, "job", None)
        job_id = job.job_id if job else getattr(exc, "job_id", None)
        return cls(
            index=index,
            operation=operation,
            success=False,
            job_id=job_id,
            job=job,
            state=job.state if job else None,
            waited=job.waited if job else None,
            error=ErrorInfo(kind=getattr(exc, "kind", "unexpected"), message=str(exc)),
        )

    def summary(self) -> dict:
        """JSON-ready view without artifact bytes."""
        return self.model_dump(
            mode="json", exclude_none=True, exclude={"artifact": {"data"}}
        )
