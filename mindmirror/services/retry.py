# retry with exponential backoff for rate-limited model calls
# only quota errors are retried - anything else fails fast

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_SIGNALS = ("429", "Too Many Requests", "RESOURCE_EXHAUSTED")


def is_rate_limited(error: BaseException) -> bool:
    """true when the error message carries a quota / rate-limit signal"""
    message = str(error)
    return any(signal in message for signal in RATE_LIMIT_SIGNALS)


def _retry_logger(max_attempts: int) -> Callable[[RetryCallState], None]:
    def log_retry(retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            f"Rate limited. Retrying in {delay:g}s... "
            f"(attempt {retry_state.attempt_number}/{max_attempts})"
        )
    return log_retry


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay_ms: int = 2000,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """await operation(), retrying rate-limited failures.

    waits initial_delay_ms * 2**n between attempts (n counts from zero), so 2s then 4s
    with the defaults. no wait follows the final attempt; its error is re-raised.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    retrying = AsyncRetrying(
        sleep=sleep,
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=initial_delay_ms / 1000),
        retry=retry_if_exception(is_rate_limited),
        before_sleep=_retry_logger(max_attempts),
        reraise=True,
    )
    try:
        return await retrying(operation)
    except Exception as e:
        if is_rate_limited(e):
            logger.error(f"Rate limit persisted after {max_attempts} attempts")
        raise
