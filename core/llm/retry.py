"""
Retry policy for model calls.

Connection failures, request/lock timeouts (408/409), rate limits (429)
and server errors (5xx) are retried with exponential backoff. The
`x-should-retry` response header overrides the status-code rules, and
`retry-after` (whole seconds) overrides the computed delay.
"""

import asyncio
import logging
import os
from typing import Awaitable, Callable, TypeVar

import anthropic

from config.defaults import (
    DEFAULT_MAX_RETRIES,
    RETRY_BASE_DELAY_MS,
    RETRY_MAX_DELAY_MS,
    SWE_BENCH_MAX_RETRIES,
)

from ..abort import AbortSignal, race_abort

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]

RETRYABLE_STATUS_CODES = frozenset({408, 409, 429})
OVERLOADED_ERROR_MARKER = '"type":"overloaded_error"'


def is_swe_bench() -> bool:
    return os.environ.get("SWE_BENCH", "").lower() in ("1", "true", "yes")


def get_max_retries() -> int:
    return SWE_BENCH_MAX_RETRIES if is_swe_bench() else DEFAULT_MAX_RETRIES


def _is_overloaded(error: anthropic.APIError) -> bool:
    body = error.body
    if isinstance(body, dict):
        inner = body.get("error")
        if isinstance(inner, dict) and inner.get("type") == "overloaded_error":
            return True
    return OVERLOADED_ERROR_MARKER in (error.message or "")


def _header(error: anthropic.APIError, name: str) -> str | None:
    if isinstance(error, anthropic.APIStatusError):
        return error.response.headers.get(name)
    return None


def should_retry(error: anthropic.APIError) -> bool:
    if _is_overloaded(error):
        return is_swe_bench()

    hint = _header(error, "x-should-retry")
    if hint == "true":
        return True
    if hint == "false":
        return False

    if isinstance(error, anthropic.APIConnectionError):
        return True
    if not isinstance(error, anthropic.APIStatusError):
        return False

    status = error.status_code
    return status in RETRYABLE_STATUS_CODES or status >= 500


def get_retry_delay(attempt: int, retry_after: str | None = None) -> float:
    """
    Delay before the next attempt, in milliseconds.

    Args:
        attempt: 1-based number of the attempt that just failed
        retry_after: Value of the retry-after header, if any

    Returns:
        Delay in milliseconds
    """
    if retry_after:
        try:
            return int(float(retry_after)) * 1000
        except (ValueError, OverflowError):
            pass
    return min(RETRY_BASE_DELAY_MS * 2 ** (attempt - 1), RETRY_MAX_DELAY_MS)


async def with_retry(
    operation: Callable[[int], Awaitable[T]],
    *,
    max_retries: int | None = None,
    signal: AbortSignal | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """
    Run an operation, retrying retryable API errors.

    Args:
        operation: Coroutine factory receiving the 1-based attempt number
        max_retries: Retries after the first attempt (defaults by mode)
        signal: Abort signal; backoff sleeps end early when it fires
        sleep: Sleep function taking seconds

    Returns:
        The operation's result

    Raises:
        The last error once retries are exhausted or the error is terminal
    """
    if max_retries is None:
        max_retries = get_max_retries()

    attempt = 1
    while True:
        try:
            return await operation(attempt)
        except anthropic.APIError as error:
            if attempt > max_retries or not should_retry(error):
                raise
            delay_ms = get_retry_delay(attempt, _header(error, "retry-after"))
            logger.warning(
                "API error (%s), retrying in %.1fs (attempt %d/%d)",
                error.message,
                delay_ms / 1000,
                attempt,
                max_retries,
            )
            await race_abort(sleep(delay_ms / 1000), signal)
            attempt += 1
