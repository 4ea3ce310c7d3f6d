from typing import Any, List, Optional


class VocantError(Exception):
    """Base exception for transcription job orchestration failures.

    Attributes:
        message: Human-readable error description
        diagnostic: Technical diagnostic information for debugging
        job_id: Optional remote job identifier
        job: Partial job state known when the error was raised
        item_index: Index of the work item being processed (set by the batch runner)
    """

    kind = "error"

    def __init__(
        self,
        message: str,
        diagnostic: Optional[str] = None,
        job_id: Optional[str] = None,
    ):
        self.message = message
        self.diagnostic = diagnostic
        self.job_id = job_id
        self.job: Optional[Any] = None
        self.item_index: Optional[int] = None
        super().__init__(message)


class TransportError(VocantError):
    """Raised by transport adapters when a request could not be completed.

    Attributes:
        title: Short classification (e.g. "Upstream Timeout")
        upstream_status: Gateway-style status describing the failure (502, 504, ...)
    """

    kind = "transport"

    def __init__(self, title: str, upstream_status: int, message: str):
        self.title = title
        self.upstream_status = upstream_status
        super().__init__(message=message, diagnostic=title)


class RemoteServiceError(VocantError):
    """Base for errors raised while talking to the remote transcription service.

    Attributes:
        upstream_status: HTTP status code from the service (if applicable)
        upstream_body: Truncated response body from the service (if available)
    """

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        upstream_body: Optional[str] = None,
        diagnostic: Optional[str] = None,
        job_id: Optional[str] = None,
    ):
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body
        super().__init__(message=message, diagnostic=diagnostic, job_id=job_id)


class MissingPayloadError(VocantError):
    kind = "missing_payload"


class PresignError(RemoteServiceError):
    kind = "presign_failed"


class UploadError(RemoteServiceError):
    kind = "upload_failed"


class StatusQueryError(RemoteServiceError):
    kind = "status_query_failed"


class FetchError(RemoteServiceError):
    kind = "fetch_failed"


class JobFailedError(VocantError):
    """Raised when the remote service reports the job as failed."""

    kind = "job_failed"

    def __init__(self, job_id: str, server_message: Optional[str] = None):
        self.server_message = server_message
        message = f"Transcription failed: {job_id}: {server_message or 'Unknown error'}"
        super().__init__(message=message, job_id=job_id)


class JobTimeoutError(VocantError):
    """Local wait budget exhausted before the remote job reached a terminal state.

    The remote job may still be running; this is not a server failure.

    Attributes:
        waited: Seconds waited before giving up
        max_wait: Configured wait budget
    """

    kind = "timeout"

    def __init__(self, job_id: str, waited: float, max_wait: float):
        self.waited = waited
        self.max_wait = max_wait
        message = f"Transcription jobId {job_id} did not complete in time (waited {waited:g}s, limit {max_wait:g}s)"
        super().__init__(message=message, job_id=job_id)


class UnauthorizedError(VocantError):
    kind = "unauthorized"


class InvalidCallbackError(VocantError):
    kind = "invalid_callback"


class JobStateError(VocantError):
    """Illegal job state transition (only pending jobs may transition)."""

    kind = "invalid_state"


class OrchestrationCancelledError(VocantError):
    """Raised by the batch runner when shut down while an item is in flight.

    Attributes:
        completed: Outcomes produced before cancellation
    """

    kind = "cancelled"

    def __init__(self, item_index: Optional[int], completed: List[Any]):
        self.completed = completed
        super().__init__(message=f"Batch cancelled while processing item {item_index}")
        self.item_index = item_index


class ManifestError(VocantError):
    kind = "manifest"


class MissingJobIdError(VocantError):
    """A status or fetch item was submitted without the job id it addresses."""

    kind = "missing_job_id"
