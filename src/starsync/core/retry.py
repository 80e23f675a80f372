"""Bounded exponential-backoff retry for async remote calls."""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from ..utils.logging import get_logger


T = TypeVar('T')

logger = get_logger("retry")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry timing for one kind of remote call.

    ``max_attempts`` counts every call, the first one included. The wait
    before attempt ``n + 1`` is ``min_delay * backoff_factor ** (n - 1)``,
    capped by ``max_delay`` when it is set.
    """

    max_attempts: int = 6
    backoff_factor: float = 2.0
    min_delay: float = 1.0
    max_delay: Optional[float] = None

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be at least 1")
        if self.min_delay < 0:
            raise ValueError("min_delay cannot be negative")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt (1-based)."""
        delay = self.min_delay * (self.backoff_factor ** (attempt - 1))
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay


class RetryExhaustedError(Exception):
    """Raised by ``RetryOutcome.unwrap`` when every attempt failed."""

    def __init__(self, description: str, attempts: int, last_error: BaseException):
        super().__init__(f"{description} failed after {attempts} attempts: {last_error}")
        self.description = description
        self.attempts = attempts
        self.last_error = last_error


@dataclass
class RetryOutcome(Generic[T]):
    """Terminal result of a retried call: a value or the last error."""

    description: str
    attempts: int
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise RetryExhaustedError(self.description, self.attempts, self.error) from self.error
        return self.value


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    description: str = "operation",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **log_context
) -> RetryOutcome[T]:
    """Run ``operation`` until it succeeds or ``policy`` runs out of attempts.

    Every ``Exception`` is treated as retryable. The caller decides what an
    exhausted outcome means.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        policy: Attempt budget and backoff timing
        description: Name used in log events and errors
        sleep: Awaitable delay function
        **log_context: Extra key/value pairs attached to retry log events

    Returns:
        RetryOutcome holding the value or the last error
    """
    attempt = 0

    while True:
        attempt += 1
        try:
            value = await operation()
            return RetryOutcome(description=description, attempts=attempt, value=value)

        except Exception as e:
            if attempt >= policy.max_attempts:
                logger.error(
                    "Retries exhausted",
                    operation=description,
                    attempts=attempt,
                    error=str(e),
                    **log_context
                )
                return RetryOutcome(description=description, attempts=attempt, error=e)

            delay = policy.delay_for(attempt)
            logger.warning(
                "Remote call failed, retrying after backoff",
                operation=description,
                attempt=attempt,
                max_attempts=policy.max_attempts,
                backoff_seconds=delay,
                error=str(e),
                **log_context
            )
            await sleep(delay)
