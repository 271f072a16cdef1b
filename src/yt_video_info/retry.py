"""
retry.py — Resilient fetch: bounded retries with jittered exponential backoff.

with_retry() runs an async operation up to `max_retries + 1` times.  Between
attempts it suspends the current task (asyncio.sleep by default) for

    min(base_delay * factor ** attempt, max_delay) + uniform(0, 0.3 * delay)

seconds, so concurrent callers don't retry in lock-step.

Two call styles are supported:

    - Unconditional (RetryPolicy.retry_on is None): every failure is retried
      up to the cap.  This is the default.
    - Gated: a predicate such as is_retryable_error() decides whether a
      failure is worth another attempt; anything it rejects propagates
      immediately.

The scheduling itself is delegated to tenacity.AsyncRetrying; this module
only supplies the policy (stop, wait, retry predicate).
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
)

from yt_video_info.errors import VideoInfoError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]

# Substrings of low-level socket / resolver errors that are worth retrying.
_TRANSIENT_MESSAGE_MARKERS = (
    "econnreset",
    "etimedout",
    "enotfound",
    "connection reset",
    "timed out",
    "name or service not known",
    "temporary failure in name resolution",
)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry settings for one call site.  Delays are in seconds.

    Attributes:
        max_retries:  Retries after the first attempt (total = max_retries + 1).
        base_delay:   Delay before the first retry, before jitter.
        max_delay:    Cap on the exponential part of the delay.
        factor:       Growth factor per attempt.
        jitter_ratio: Jitter is drawn from uniform(0, jitter_ratio * delay).
        retry_on:     Optional predicate; None means retry every failure.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    factor: float = 2.0
    jitter_ratio: float = 0.3
    retry_on: Callable[[BaseException], bool] | None = None

    def backoff(self, attempt: int) -> float:
        """Capped exponential delay for the given zero-based attempt."""
        return min(self.base_delay * self.factor ** attempt, self.max_delay)

    def jitter(self, delay: float) -> float:
        return random.uniform(0, self.jitter_ratio * delay)

    def compute_delay(self, attempt: int) -> float:
        delay = self.backoff(attempt)
        return delay + self.jitter(delay)

    def _wait(self, retry_state: RetryCallState) -> float:
        # tenacity counts attempts from 1; the failed attempt is the one
        # that just finished.
        return self.compute_delay(retry_state.attempt_number - 1)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.debug(
        "Operation failed, retrying",
        attempt=retry_state.attempt_number,
        delay=round(retry_state.next_action.sleep, 3) if retry_state.next_action else None,
        error=str(exc),
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    sleep: SleepFunc = asyncio.sleep,
) -> T:
    """
    Await operation(), retrying failures according to policy.

    Args:
        operation: Zero-argument coroutine function.  Called once per attempt.
        policy:    Retry settings; defaults to RetryPolicy().
        sleep:     Awaitable sleep used between attempts.  Injectable so
                   tests can record delays instead of waiting.

    Returns:
        Whatever the first successful attempt returned.

    Raises:
        The exception from the last attempt, unchanged, once retries are
        exhausted, or immediately if policy.retry_on rejects it.
    """
    policy = policy or RetryPolicy()
    if policy.retry_on is None:
        retry_condition = retry_if_exception_type(Exception)
    else:
        retry_condition = retry_if_exception(policy.retry_on)

    retrying = AsyncRetrying(
        sleep=sleep,
        stop=stop_after_attempt(policy.max_retries + 1),
        wait=policy._wait,
        retry=retry_condition,
        before_sleep=_log_retry,
        reraise=True,
    )
    return await retrying(operation)


# ---------------------------------------------------------------------------
# Retryability classification
# ---------------------------------------------------------------------------

def _is_retryable_status(status: int) -> bool:
    return status >= 500 or status in (429, 408)


def is_retryable_error(exc: BaseException) -> bool:
    """
    Decide whether a failure is transient.

    True for: classified errors with a retryable code (NETWORK_ERROR,
    RATE_LIMITED, TIMEOUT); HTTP responses with status >= 500, 429 or 408;
    connection, read and timeout failures; anything whose message looks like
    a reset / timeout / DNS failure.
    """
    if isinstance(exc, VideoInfoError):
        return exc.is_retryable
    if isinstance(exc, httpx.HTTPStatusError):
        return _is_retryable_status(exc.response.status_code)
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True

    message = str(exc).lower()
    if any(marker in message for marker in _TRANSIENT_MESSAGE_MARKERS):
        return True

    status = getattr(exc, "status_code", getattr(exc, "status", None))
    if isinstance(status, int) and not isinstance(status, bool):
        return _is_retryable_status(status)
    return False
