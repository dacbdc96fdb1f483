"""Retry utilities for async HTTP operations.

Only transport-level failures are retried. An upstream that answers (4xx,
503) has made a decision and repeating the call would just delay the
fallback path the caller is waiting on.
"""

from __future__ import annotations

import asyncio
import logging

from aiohttp import ClientConnectionError, ClientPayloadError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

TRANSIENT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    ClientConnectionError,
    ClientPayloadError,
    asyncio.TimeoutError,
)


def retry_async(
    max_retries: int = 2,
    retry_delay: float = 0.25,
    backoff_factor: float = 2.0,
    retry_exceptions: tuple[type[BaseException], ...] = TRANSIENT_EXCEPTIONS,
):
    """Factory that returns a tenacity retry decorator for coroutine functions.

    Args:
        max_retries: Retry attempts in addition to the first attempt.
        retry_delay: Initial delay multiplier in seconds.
        backoff_factor: Exponential backoff base.
        retry_exceptions: Exception types that trigger a retry.

    Example:
        @retry_async(max_retries=1)
        async def fetch_services():
            ...
    """
    return retry(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=retry_delay, exp_base=backoff_factor),
        retry=retry_if_exception_type(retry_exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
