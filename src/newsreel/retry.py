"""
Bounded retry for lookups that may come back empty.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

logger = logging.getLogger("newsreel")

T = TypeVar("T")


async def retry_until_found(
    operation: Callable[[], Awaitable[Optional[T]]],
    max_attempts: int = 3,
    backoff: float = 1.0,
) -> Optional[T]:
    """Call operation until it returns something other than None.

    Waits a fixed `backoff` seconds between attempts and gives up after
    `max_attempts`, returning None. Exceptions raised by operation propagate.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(backoff),
        retry=retry_if_result(lambda result: result is None),
        before_sleep=before_sleep_log(logger, logging.INFO),
    )
    try:
        return await retrying(operation)
    except RetryError:
        return None
