"""Bounded exponential-backoff retry for remote generation calls.

The policy wraps a zero-argument coroutine function that performs exactly one
remote call and returns a :class:`GenerationResult`.  Only ``RATE_LIMITED``
outcomes are retried; the request payload is never inspected, so every
request kind shares the same policy.

With ``max_retries=3`` and ``initial_delay_ms=2000`` an operation that is
always rate limited is invoked four times, waiting 2 s, 4 s and 8 s in
between, and the last rate-limited result is returned to the caller.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .config import LemStudioConfig
from .model_adapters import GenerationResult, OutcomeKind

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[GenerationResult]]
Sleep = Callable[[float], Awaitable[None]]


class RetryPolicy:
    """Retry rate-limited calls with exponential backoff.

    Attributes:
        max_retries: Retries allowed after the first attempt.
        initial_delay_ms: Delay before the first retry; doubles per retry.
    """

    def __init__(
        self,
        max_retries: int = 3,
        initial_delay_ms: int = 2000,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        if initial_delay_ms < 0:
            raise ValueError(f"initial_delay_ms must be >= 0, got {initial_delay_ms}")
        self.max_retries = max_retries
        self.initial_delay_ms = initial_delay_ms
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: LemStudioConfig, sleep: Sleep = asyncio.sleep) -> "RetryPolicy":
        return cls(
            max_retries=config.max_retries,
            initial_delay_ms=config.initial_retry_delay_ms,
            sleep=sleep,
        )

    def delay_ms(self, attempt: int) -> int:
        """Backoff delay after the given zero-based failed attempt."""
        return self.initial_delay_ms * 2**attempt

    async def execute(self, operation: Operation) -> GenerationResult:
        """Run the operation, retrying while it reports rate limiting.

        Args:
            operation: Zero-argument coroutine function making one remote call

        Returns:
            The first non-rate-limited result, or the last rate-limited
            result once the retry budget is exhausted
        """
        attempt = 0
        while True:
            result = await operation()
            if result.outcome is not OutcomeKind.RATE_LIMITED:
                return result
            if attempt >= self.max_retries:
                logger.error(f"Rate limit persisted after {attempt + 1} attempt(s), giving up")
                return result

            delay = self.delay_ms(attempt)
            logger.warning(
                f"Rate limited (attempt {attempt + 1}/{self.max_retries + 1}), "
                f"retrying in {delay} ms"
            )
            await self._sleep(delay / 1000)
            attempt += 1
