from typing import Awaitable, Callable, Optional, TypeVar

from indexer_service.errors import RetryExhausted

T = TypeVar("T")


async def with_retry(
    budget: int,
    operation: Callable[[], Awaitable[T]],
    on_error: Optional[Callable[[int, Exception], None]] = None,
) -> T:
    """
    Run ``operation`` up to ``budget`` times back to back, no backoff.

    Fixed attempts, not a fixed duration. Raises RetryExhausted carrying the
    last error once every attempt failed.
    """
    if budget < 1:
        raise ValueError(f"retry budget must be at least 1, got {budget}")

    last_exc: Exception | None = None
    for attempt in range(1, budget + 1):
        try:
            return await operation()
        except Exception as e:
            last_exc = e
            if on_error is not None:
                on_error(attempt, e)

    raise RetryExhausted(budget, last_exc)
