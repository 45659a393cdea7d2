"""Bounded retry with exponential backoff for startup probes."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def _log_failure(retry_state: RetryCallState) -> None:
    logger.error("%s", retry_state.outcome.exception())


def _log_backoff(retry_state: RetryCallState) -> None:
    logger.info("Retry after %s seconds", retry_state.next_action.sleep)


async def retry(
    retries: int,
    operation: Callable[[], Awaitable[T]],
    unit: float = 1.0,
) -> T:
    """Run an operation until it succeeds or the retries are used up.

    Waits 2, 4, 8, ... units before the successive retries.

    Args:
        retries: Number of extra attempts after the first one
        operation: Zero-argument callable returning an awaitable
        unit: Length of one backoff step in seconds

    Returns:
        Result of the first successful attempt

    Raises:
        The exception of the last attempt once all attempts failed.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(retries + 1),
        wait=wait_exponential(multiplier=2 * unit, exp_base=2),
        sleep=_sleep,
        after=_log_failure,
        before_sleep=_log_backoff,
        reraise=True,
    )
    return await retrying(operation)
