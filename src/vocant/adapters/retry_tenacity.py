from typing import Any, Awaitable, Callable, Sequence, Type

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from vocant.core.settings import logger


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"[retry] attempt={retry_state.attempt_number} failed, backing off "
        f"err={type(exc).__name__}: {exc}"
    )


class TenacityRetryAdapter:
    """RetryPort backed by tenacity's AsyncRetrying.

    Exponential backoff between `wait_initial` and `wait_max`; only exceptions
    matching `exception_types` are retried, anything else surfaces at once.
    """

    def __init__(
        self,
        attempts: int = 3,
        wait_initial: float = 0.5,
        wait_max: float = 5.0,
        exception_types: Sequence[Type[BaseException]] = (Exception,),
    ) -> None:
        self.attempts = attempts
        self.wait_initial = wait_initial
        self.wait_max = wait_max
        self.exception_types = tuple(exception_types)

    @classmethod
    def from_config(cls, config) -> "TenacityRetryAdapter":
        return cls(
            attempts=config.retry_attempts,
            wait_initial=config.retry_wait_initial,
            wait_max=config.retry_wait_max,
        )

    async def execute(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        attempts = kwargs.pop("attempts", self.attempts)
        wait_initial = kwargs.pop("wait_initial", self.wait_initial)
        wait_max = kwargs.pop("wait_max", self.wait_max)
        exception_types = tuple(kwargs.pop("exception_types", self.exception_types))

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=wait_initial, max=wait_max),
            retry=retry_if_exception_type(exception_types),
            before_sleep=_log_retry,
            reraise=True,
        )
        async for attempt in retrying:  # pragma: no cover - control flow instrumentation
            with attempt:
                return await func(*args, **kwargs)
