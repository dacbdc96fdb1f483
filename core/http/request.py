"""
Shared JSON GET helper for the salon API client.

Every endpoint reports upstream failures through the same exception types:
503 is ``ServiceUnavailableException`` (callers degrade instead of retrying),
429 is ``RateLimitException`` and anything else unexpected is
``ExternalServiceException``.
"""

from __future__ import annotations

import logging
from typing import Any

from core.exceptions import (
    ExternalServiceException,
    RateLimitException,
    ServiceUnavailableException,
)

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 5


def _retry_after(headers: Any) -> int:
    try:
        return int(headers.get("Retry-After", DEFAULT_RETRY_AFTER))
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER


async def _raise_for_status(response: Any, url: str, service_name: str) -> None:
    status = response.status
    if status == 200:
        return
    details: dict[str, Any] = {
        "status": status,
        "url": str(getattr(response, "url", url)),
    }
    if status == 503:
        msg = f"{service_name} unavailable: 503"
        raise ServiceUnavailableException(msg, details)
    if status == 429:
        details["retry_after"] = _retry_after(response.headers)
        msg = f"{service_name} error: 429"
        raise RateLimitException(msg, details)
    details["body"] = await response.text()
    msg = f"{service_name} error: {status}"
    raise ExternalServiceException(msg, details)


async def get_json(
    url: str,
    *,
    session: Any,
    params: dict[str, Any] | None = None,
    service_name: str = "Salon API",
    timeout: Any | None = None,
) -> Any:
    """GET ``url`` and return the decoded JSON body of a 200 response."""
    request_kwargs: dict[str, Any] = {"params": params}
    if timeout is not None:
        request_kwargs["timeout"] = timeout

    async with session.get(url, **request_kwargs) as response:
        await _raise_for_status(response, url, service_name)
        try:
            data = await response.json()
        except ValueError as exc:
            msg = f"{service_name} error: invalid JSON"
            raise ExternalServiceException(msg, {"url": url}) from exc
    logger.debug("%s answered %s", service_name, url)
    return data
