"""
Retry policy for exchange calls.

Only temporary failures are retried: rate limits, timeouts and venue
maintenance. Anything else is re-raised on the first attempt.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import httpx

from okxauto.constants import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY, TEMPORARY_ERROR_MARKERS
from okxauto.exceptions import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    max_retries: int = DEFAULT_MAX_RETRIES
    delay_seconds: float = DEFAULT_RETRY_DELAY


DEFAULT_RETRY_CONFIG = RetryConfig()


def message_is_temporary(message: str) -> bool:
    """Case-insensitive substring match against the temporary-error markers."""
    text = message.lower()
    return any(marker in text for marker in TEMPORARY_ERROR_MARKERS)


def is_temporary_error(error: BaseException) -> bool:
    """
    Classify a failure as temporary (retry) or permanent (abort).

    A structured `temporary` flag on the error wins; otherwise httpx timeouts
    are temporary and everything else falls back to the message text.
    """
    if error is None:
        return False
    flag = getattr(error, "temporary", None)
    if flag is not None:
        return bool(flag)
    if isinstance(error, httpx.TimeoutException):
        return True
    return message_is_temporary(str(error))


async def retry_operation(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
) -> T:
    """
    Run an async operation with the fixed-delay retry policy.

    Raises:
        The raised error itself if it is not temporary.
        RetryExhaustedError wrapping the last error once attempts run out.
    """
    last_error: Exception = None

    for attempt in range(config.max_retries):
        if attempt > 0:
            logger.info(f"Retrying operation (attempt {attempt + 1}/{config.max_retries})...")
            await asyncio.sleep(config.delay_seconds)

        try:
            return await operation()
        except Exception as e:
            last_error = e
            if not is_temporary_error(e):
                raise
            logger.warning(f"Operation failed (attempt {attempt + 1}/{config.max_retries}): {e}")

    raise RetryExhaustedError(config.max_retries, last_error) from last_error
