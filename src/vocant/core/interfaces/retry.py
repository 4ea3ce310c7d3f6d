from typing import Any, Awaitable, Callable, Protocol


class RetryPort(Protocol):
    """Retry strategy injected into the remote job client.

    Only idempotent requests (status queries, result downloads) are routed
    through it. Presign and upload are single attempts because a presign
    creates a job and an upload URL is single-use.
    """

    async def execute(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:  # pragma: no cover - protocol
        """Await `func(*args, **kwargs)`, retrying on the configured exception types.

        Call-time overrides: attempts, wait_initial, wait_max, exception_types.
        The last exception is re-raised once attempts are exhausted.
        """
        ...
