"""API utilities for FastAPI route handling."""

import functools
import logging
from collections.abc import Callable
from typing import NamedTuple

from fastapi import HTTPException, status

from core.exceptions import (
    ExternalServiceException,
    NearbySearchException,
    RateLimitException,
    ResourceNotFoundException,
    ServiceUnavailableException,
    ValidationException,
)


class ErrorMapping(NamedTuple):
    exc_type: type[NearbySearchException]
    status_code: int
    level: int
    label: str
    detail_prefix: str = ""


# First match wins, so subclasses come before their bases.
ERROR_MAPPINGS: tuple[ErrorMapping, ...] = (
    ErrorMapping(
        ValidationException,
        status.HTTP_400_BAD_REQUEST,
        logging.WARNING,
        "Validation error",
    ),
    ErrorMapping(
        ResourceNotFoundException,
        status.HTTP_404_NOT_FOUND,
        logging.INFO,
        "Resource not found",
    ),
    ErrorMapping(
        RateLimitException,
        status.HTTP_429_TOO_MANY_REQUESTS,
        logging.WARNING,
        "Rate limit exceeded",
    ),
    ErrorMapping(
        ServiceUnavailableException,
        status.HTTP_503_SERVICE_UNAVAILABLE,
        logging.WARNING,
        "Upstream unavailable",
    ),
    ErrorMapping(
        ExternalServiceException,
        status.HTTP_502_BAD_GATEWAY,
        logging.ERROR,
        "External service error",
        "External service error: ",
    ),
    ErrorMapping(
        NearbySearchException,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        logging.ERROR,
        "Application error",
    ),
)


def _to_http_error(
    logger: logging.Logger,
    endpoint: str,
    exc: NearbySearchException,
) -> HTTPException:
    mapping = next(m for m in ERROR_MAPPINGS if isinstance(exc, m.exc_type))
    logger.log(
        mapping.level,
        "%s in %s: %s",
        mapping.label,
        endpoint,
        exc.message,
        exc_info=mapping.level >= logging.ERROR,
    )
    return HTTPException(
        status_code=mapping.status_code,
        detail=f"{mapping.detail_prefix}{exc.message}",
    )


def api_route(logger: logging.Logger):
    """
    Decorator for FastAPI endpoints that maps domain errors to HTTP errors.

    ``HTTPException`` passes through unchanged, domain errors follow
    ``ERROR_MAPPINGS`` and anything else becomes a logged 500.

    Usage:
        @router.get("/api/search/example")
        @api_route(logger)
        async def my_endpoint():
            ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except NearbySearchException as e:
                raise _to_http_error(logger, func.__name__, e) from e
            except Exception as e:
                logger.exception("Unexpected error in %s", func.__name__)
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail=str(e),
                ) from e

        return wrapper

    return decorator
