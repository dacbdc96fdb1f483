"""Last-known location cache with freshness and accuracy rules."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from core.constants import (
    CACHED_LOCATION_MAX_ACCURACY_METERS,
    CACHED_LOCATION_MAX_AGE_SECONDS,
)
from location.models import CachedLocation, LocationFix
from location.preferences import Preferences

logger = logging.getLogger(__name__)


def is_usable(cached: CachedLocation, now: float) -> bool:
    """A cached fix is reusable iff younger than 5 minutes and within 50 m."""
    return (
        cached.age_seconds(now) < CACHED_LOCATION_MAX_AGE_SECONDS
        and cached.accuracy_meters <= CACHED_LOCATION_MAX_ACCURACY_METERS
    )


class LocationCache:
    """
    Persists the last resolved location.

    Entries are never deleted; an entry that fails :func:`is_usable` is
    simply reported as absent.
    """

    def __init__(
        self,
        preferences: Preferences,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._preferences = preferences
        self._clock = clock

    async def get(self) -> CachedLocation | None:
        cached = await self._preferences.get_cached_location()
        if cached is None:
            logger.debug("Location cache miss: empty")
            return None
        if not is_usable(cached, self._clock()):
            logger.debug(
                "Location cache miss: age=%.0fs accuracy=%.0fm",
                cached.age_seconds(self._clock()),
                cached.accuracy_meters,
            )
            return None
        logger.debug("Location cache hit: %s", cached.address)
        return cached

    async def set(self, fix: LocationFix, address: str) -> CachedLocation:
        cached = CachedLocation(
            address=address,
            lat=fix.coordinate.lat,
            lng=fix.coordinate.lng,
            accuracy_meters=fix.accuracy_meters,
            timestamp=self._clock(),
        )
        await self._preferences.set_cached_location(cached)
        return cached
