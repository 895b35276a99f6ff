"""Generic exponential-backoff-with-jitter executor.

Knows nothing about files: it runs an async operation up to
``max_retries + 1`` times and re-raises the last error when every attempt
fails. The uploader uses it per transfer and the recovery controller
reuses it for each pass.

Backoff after failed attempt ``n`` (0-based)::

    delay = min(base_delay * 2**n + uniform(0, jitter_ratio * base_delay * 2**n),
                max_delay)
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)
from tenacity.wait import wait_base

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 5
DEFAULT_BASE_DELAY = 1.5
DEFAULT_MAX_DELAY = 30.0
DEFAULT_JITTER_RATIO = 0.3


class wait_exponential_capped_jitter(wait_base):
    """Tenacity wait strategy: doubling delay, proportional jitter, hard cap.

    Unlike ``tenacity.wait_exponential_jitter`` the jitter scales with the
    exponential term instead of being a fixed absolute amount.
    """

    def __init__(
        self,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        jitter_ratio: float = DEFAULT_JITTER_RATIO,
        uniform: Callable[[float, float], float] = random.uniform,
    ) -> None:
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter_ratio = jitter_ratio
        self._uniform = uniform

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds after failed attempt *attempt* (0-based)."""
        exponential = self.base_delay * (2**attempt)
        jitter = self._uniform(0, self.jitter_ratio * exponential)
        return min(exponential + jitter, self.max_delay)

    def __call__(self, retry_state: RetryCallState) -> float:
        return self.delay_for(retry_state.attempt_number - 1)


def _log_before_sleep(description: str, total: int) -> Callable[[RetryCallState], None]:
    def _log(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "%s failed (attempt %d/%d): %s -- retrying in %.2fs",
            description,
            retry_state.attempt_number,
            total,
            exc,
            delay,
        )

    return _log


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    jitter_ratio: float = DEFAULT_JITTER_RATIO,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    description: str = "operation",
) -> T:
    """Run *operation* with bounded exponential backoff.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        max_retries: Retries after the first attempt (total calls
            ``max_retries + 1``).
        base_delay: Seconds before the first retry, before jitter.
        max_delay: Upper bound on any single delay.
        jitter_ratio: Jitter drawn uniformly from ``[0, ratio * exponential]``.
        sleep: Awaitable sleep used between attempts (injectable for tests).
        description: Label for log messages.

    Returns:
        Whatever *operation* returns on its first successful attempt.

    Raises:
        Exception: The last error raised by *operation* once attempts are
            exhausted.
        ValueError: If *max_retries* is negative.
    """
    if max_retries < 0:
        raise ValueError(f"max_retries must be >= 0, got {max_retries}")

    total = max_retries + 1
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(total),
        wait=wait_exponential_capped_jitter(base_delay, max_delay, jitter_ratio),
        retry=retry_if_exception_type(Exception),
        before_sleep=_log_before_sleep(description, total),
        sleep=sleep,
        reraise=True,
    ):
        with attempt:
            result = await operation()
            if attempt.retry_state.attempt_number > 1:
                logger.info(
                    "%s succeeded on attempt %d/%d",
                    description,
                    attempt.retry_state.attempt_number,
                    total,
                )
            return result

    raise AssertionError("unreachable: AsyncRetrying exhausted without raising")
