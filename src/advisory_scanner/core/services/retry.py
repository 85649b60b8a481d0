from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from ..domain.errors import SourceError
from ..ports.clock_port import ClockPort, SystemClock


T = TypeVar("T")

BACKOFF_MULTIPLIER = 1.5


def default_should_retry(error: BaseException) -> bool:
    """Retry transient failures; client, auth and parse errors are final."""
    if isinstance(error, SourceError):
        return error.retryable
    return True


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    should_retry: Callable[[BaseException], bool] = field(default=default_should_retry)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be >= 0")

    def delay_for(self, attempt: int) -> float:
        """Backoff before the attempt after ``attempt`` (1-indexed)."""
        return self.base_delay_seconds * BACKOFF_MULTIPLIER ** (attempt - 1)


class RetryExecutor:
    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        clock: Optional[ClockPort] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._clock = clock or SystemClock()
        self._logger = logger or logging.getLogger(__name__)

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        operation_name: str,
        policy: Optional[RetryPolicy] = None,
    ) -> T:
        policy = policy or self._policy
        attempt = 1
        while True:
            try:
                result = await operation()
            except Exception as e:
                is_last = attempt >= policy.max_attempts
                if is_last or not policy.should_retry(e):
                    self._logger.error("%s failed after %d attempts: %s", operation_name, attempt, e)
                    raise
                delay = policy.delay_for(attempt)
                self._logger.warning(
                    "%s attempt %d failed, retrying in %.2fs: %s", operation_name, attempt, delay, e
                )
                await self._clock.sleep(delay)
                attempt += 1
                continue
            if attempt > 1:
                self._logger.info("%s succeeded on attempt %d", operation_name, attempt)
            return result
