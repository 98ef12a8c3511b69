"""
Retry with exponential backoff — used for every registry call.

Policy:
    - retry only transient failures (network errors, 5xx responses)
    - never retry 4xx responses
    - at most ``max_attempts`` calls in total (default 3)
    - delay before attempt n+1 is ``base_delay * 2 ** (n - 1)``: 1, 2, 4 ...
    - ``on_retry`` is called before each delay so progress is visible
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]
RetryHook = Callable[[int, int, float], None]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and backoff curve.

    Args:
        max_attempts: Total calls allowed, including the first.
        base_delay: Delay in seconds before the first retry.
        max_delay: Upper bound for any single delay.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0

    @property
    def max_retries(self) -> int:
        return max(self.max_attempts - 1, 0)

    def delay_for(self, retry: int) -> float:
        """Delay before the ``retry``-th retry (1-based)."""
        return min(self.base_delay * (2 ** (retry - 1)), self.max_delay)


def is_transient(error: BaseException) -> bool:
    """Network-level failures and 5xx responses are worth retrying."""
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return False


async def retry_async(
    call: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    sleep: SleepFn = asyncio.sleep,
    on_retry: RetryHook | None = None,
    should_retry: Callable[[BaseException], bool] = is_transient,
) -> T:
    """Run ``call`` until it succeeds, fails terminally, or the budget is spent.

    The last exception is re-raised unchanged once attempts run out.
    """
    policy = policy or RetryPolicy()
    attempt = 1
    while True:
        try:
            return await call()
        except Exception as e:
            if attempt >= policy.max_attempts or not should_retry(e):
                raise
            delay = policy.delay_for(attempt)
            logger.debug("Attempt %d/%d failed: %s", attempt, policy.max_attempts, e)
            if on_retry is not None:
                on_retry(attempt, policy.max_retries, delay)
            await sleep(delay)
            attempt += 1
