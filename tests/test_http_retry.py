import asyncio

import aiohttp
import pytest

from core.exceptions import ServiceUnavailableException
from core.http.retry import retry_async


@pytest.mark.asyncio
async def test_retry_async_retries_until_success() -> None:
    attempts = 0

    @retry_async(max_retries=2, retry_delay=0)
    async def flaky():
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise asyncio.TimeoutError()
        return "ok"

    result = await flaky()
    assert result == "ok"
    assert attempts == 3


@pytest.mark.asyncio
async def test_retry_async_raises_after_exhaustion() -> None:
    attempts = 0

    @retry_async(max_retries=1, retry_delay=0)
    async def always_fail():
        nonlocal attempts
        attempts += 1
        raise aiohttp.ServerDisconnectedError()

    with pytest.raises(aiohttp.ServerDisconnectedError):
        await always_fail()

    assert attempts == 2


@pytest.mark.asyncio
async def test_retry_async_does_not_retry_unavailable_upstream() -> None:
    attempts = 0

    @retry_async(max_retries=3, retry_delay=0)
    async def at_capacity():
        nonlocal attempts
        attempts += 1
        raise ServiceUnavailableException("503")

    with pytest.raises(ServiceUnavailableException):
        await at_capacity()

    assert attempts == 1
