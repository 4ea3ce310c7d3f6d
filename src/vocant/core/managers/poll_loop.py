"""Bounded status polling for a single job.

Sleep-then-query at a fixed interval until the service reports a terminal
state or the wait budget runs out. The wait is an `asyncio` suspension, so
other orchestrations keep running, and cancelling the awaiting task aborts
the current wait immediately.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from vocant.core.config import OrchestratorConfig
from vocant.core.exceptions import JobFailedError, VocantError
from vocant.core.managers.remote_job_client import RemoteJobClient
from vocant.core.models.job import Job, JobState
from vocant.core.settings import logger


class PollResult(BaseModel):
    state: JobState
    download_url: Optional[str] = None
    waited: float
    queries: int


class PollLoop:
    """Drives a pending job to `completed`, `failed` (raised) or `timedOut`.

    `sleep` and `clock` are injectable so tests can run on simulated time.
    The budget is enforced twice: by the sum of poll intervals (`waited`)
    and by elapsed wall-clock time, since slow status queries add up too.
    """

    def __init__(
        self,
        client: RemoteJobClient,
        config: Optional[OrchestratorConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self.config = config or OrchestratorConfig()
        self._sleep = sleep
        self._clock = clock

    async def wait_for_completion(
        self,
        job: Job,
        poll_interval: Optional[float] = None,
        max_wait: Optional[float] = None,
    ) -> PollResult:
        interval = poll_interval if poll_interval is not None else self.config.poll_interval
        budget = max_wait if max_wait is not None else self.config.max_wait
        if interval <= 0:
            raise ValueError("poll_interval must be > 0")
        if budget < 0:
            raise ValueError("max_wait must be >= 0")

        waited = 0.0
        queries = 0
        started = self._clock()
        logger.debug(f"[job:poll] start job_id={job.job_id} interval={interval}s max_wait={budget}s")

        try:
            while waited < budget and self._clock() - started < budget:
                await self._sleep(interval)
                waited += interval

                report = await self._client.query_status(job.job_id)
                queries += 1

                if report.is_completed():
                    job.mark_completed(report.download_url, waited)
                    logger.info(f"[job:poll] completed job_id={job.job_id} waited={waited:g}s queries={queries}")
                    return PollResult(
                        state=JobState.completed,
                        download_url=report.download_url,
                        waited=waited,
                        queries=queries,
                    )

                if report.is_failed():
                    job.mark_failed(report.message, waited)
                    logger.warning(f"[job:poll] remote failure job_id={job.job_id} message={report.message}")
                    raise JobFailedError(job.job_id, report.message)

                if report.state == JobState.completed:
                    logger.debug(f"[job:poll] completed without downloadUrl, still waiting job_id={job.job_id}")

        except asyncio.CancelledError:
            logger.warning(f"[job:poll] cancelled job_id={job.job_id} waited={waited:g}s queries={queries}")
            raise
        except VocantError as exc:
            exc.job = exc.job or job
            raise

        job.mark_timed_out(waited)
        logger.warning(f"[job:poll] wait budget exhausted job_id={job.job_id} waited={waited:g}s queries={queries}")
        return PollResult(state=JobState.timedOut, waited=waited, queries=queries)
