"""
Reverse geocoding with graceful degradation.

:meth:`ReverseGeocoder.resolve` always produces a display string. When the
geocoder is unavailable or the call fails, the text is synthesized from the
fix accuracy instead. In both cases the result is written to the location
cache and handed to ``on_resolved`` so the caller can run its search.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import aiohttp
from redis.exceptions import RedisError

from core.async_bridge import invoke_callback
from core.clients.salon_api import SalonApiClient
from core.exceptions import ExternalServiceError, ServiceUnavailableError
from location.cache import LocationCache
from location.models import LocationFix

logger = logging.getLogger(__name__)


def fallback_address(accuracy_meters: float) -> str:
    """
    >>> fallback_address(42.4)
    'Current Location (±42m)'
    """
    return f"Current Location (±{round(accuracy_meters)}m)"


class ReverseGeocoder:
    def __init__(
        self,
        client: SalonApiClient,
        cache: LocationCache,
        *,
        on_resolved: Callable[[LocationFix, str], Any] | None = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self._on_resolved = on_resolved

    async def lookup(self, fix: LocationFix) -> str:
        """Geocode ``fix`` without side effects, degrading to fallback text."""
        lat, lng = fix.coordinate.as_tuple()
        try:
            return await self._client.reverse_geocode(lat, lng)
        except ServiceUnavailableError:
            logger.warning(
                "Geocoding service unavailable, using fallback address",
            )
        except (ExternalServiceError, aiohttp.ClientError, TimeoutError) as exc:
            logger.warning("Reverse geocode failed, using fallback address: %s", exc)
        return fallback_address(fix.accuracy_meters)

    async def resolve(self, fix: LocationFix) -> str:
        address = await self.lookup(fix)
        try:
            await self._cache.set(fix, address)
        except RedisError as exc:
            logger.warning("Could not persist resolved location: %s", exc)
        await invoke_callback(self._on_resolved, fix, address)
        return address


__all__ = ["ReverseGeocoder", "fallback_address"]
