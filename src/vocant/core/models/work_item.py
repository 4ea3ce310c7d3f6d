from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Operation(StrEnum):
    transcribe = "transcribe"  # upload + poll + fetch
    upload = "upload"  # presign + transfer, completion via callback
    status = "status"
    fetch = "fetch"


class WorkItem(BaseModel):
    """One unit of batch input. Immutable once created.

    `payload`, `file_name` and `content_type` describe the audio file for the
    upload operations; `job_id` addresses an existing job for status/fetch.
    Completeness (payload for uploads, job id for status/fetch) is checked
    when the item is processed, not here, so that a bad item fails on its
    own instead of rejecting the whole batch.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    operation: Operation = Operation.transcribe
    payload: Optional[bytes] = Field(default=None, repr=False)
    file_name: Optional[str] = None
    content_type: Optional[str] = None
    callback_url: Optional[str] = None
    use_original_filename: bool = False
    job_id: Optional[str] = None

    @property
    def payload_size(self) -> int:
        return len(self.payload) if self.payload is not None else 0
