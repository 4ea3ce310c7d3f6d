"""Configuration models for the orchestration core.

Settings come from the environment via `VocantSettings`; the managers only
see this immutable, validated view of the values they need.
"""

from pydantic import BaseModel, Field


class OrchestratorConfig(BaseModel):
    """Configuration for polling, batch isolation and remote request policy.

    Attributes:
        poll_interval: Seconds between status queries (float for test flexibility)
        max_wait: Wait budget in seconds per job; 0 means "do not poll"
        continue_on_fail: Isolation mode for batches
        request_timeout: Per-request timeout for presign, status and fetch calls
        upload_timeout: Per-request timeout for the payload PUT
    """

    poll_interval: float = Field(
        default=5.0,
        gt=0,
        description="Interval in seconds between remote job status queries",
    )

    max_wait: float = Field(
        default=900.0,
        ge=0,
        description="Maximum time in seconds to wait for a job to reach a terminal state",
    )

    continue_on_fail: bool = Field(
        default=False,
        description="Record per-item failures and keep going instead of aborting the batch",
    )

    request_timeout: float = Field(default=30.0, gt=0)

    upload_timeout: float = Field(
        default=600.0,
        gt=0,
        description="Timeout for the payload upload, which scales with file size",
    )

    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for idempotent requests (status, fetch) on transient errors",
    )

    retry_wait_initial: float = Field(default=0.5, gt=0)

    retry_wait_max: float = Field(default=5.0, gt=0)

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @classmethod
    def from_app_settings(cls, settings) -> "OrchestratorConfig":
        """Build the config from a VocantSettings instance."""
        return cls(
            poll_interval=settings.VOCANT_POLL_INTERVAL,
            max_wait=settings.VOCANT_MAX_WAIT,
            continue_on_fail=settings.VOCANT_CONTINUE_ON_FAIL,
            request_timeout=settings.VOCANT_REQUEST_TIMEOUT,
            upload_timeout=settings.VOCANT_UPLOAD_TIMEOUT,
            retry_attempts=settings.VOCANT_RETRY_ATTEMPTS,
            retry_wait_initial=settings.VOCANT_RETRY_WAIT_INITIAL,
            retry_wait_max=settings.VOCANT_RETRY_WAIT_MAX,
        )
