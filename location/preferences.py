"""
Typed access to persisted user preferences.

Every flag the search input reads on load lives behind :class:`Preferences`:
the search radius preset, the cached location fix, whether location
permission was granted before, saved locations, and recent locations. Values
are stored as strings in a :class:`KeyValueStore`.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic import TypeAdapter, ValidationError

from core.constants import (
    DEFAULT_SEARCH_RADIUS_KM,
    RECENT_LOCATIONS_LIMIT,
    SEARCH_RADIUS_PRESETS,
)
from core.exceptions import ValidationException
from core.redis import get_shared_redis
from location.models import CachedLocation, RecentLocation, SavedLocation

logger = logging.getLogger(__name__)

RADIUS_KEY = "search_radius"
CACHED_LOCATION_KEY = "cached_location"
PERMISSION_GRANTED_KEY = "location_permission_granted"
SAVED_LOCATIONS_KEY = "saved_locations"
RECENT_LOCATIONS_KEY = "recent_locations"

_saved_list = TypeAdapter(list[SavedLocation])
_recent_list = TypeAdapter(list[RecentLocation])


class KeyValueStore(Protocol):
    """Persistent string key-value store."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...


class MemoryKeyValueStore:
    """Process-local store; contents are lost on exit."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)


class RedisKeyValueStore:
    """Store backed by the shared Redis client, namespaced per user/device."""

    def __init__(self, namespace: str = "default") -> None:
        self._prefix = f"nearby:prefs:{namespace}:"

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> str | None:
        client = await get_shared_redis()
        return await client.get(self._key(key))

    async def set(self, key: str, value: str) -> None:
        client = await get_shared_redis()
        await client.set(self._key(key), value)


def is_radius_preset(value: Any) -> bool:
    try:
        radius = float(value)
    except (TypeError, ValueError):
        return False
    return radius in SEARCH_RADIUS_PRESETS


class Preferences:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @property
    def store(self) -> KeyValueStore:
        return self._store

    async def get_radius(self) -> float:
        raw = await self._store.get(RADIUS_KEY)
        if raw is None:
            return DEFAULT_SEARCH_RADIUS_KM
        if not is_radius_preset(raw):
            logger.debug("Ignoring stored radius %r; not a preset", raw)
            return DEFAULT_SEARCH_RADIUS_KM
        return float(raw)

    async def set_radius(self, radius_km: float) -> None:
        if not is_radius_preset(radius_km):
            msg = f"Radius must be one of {list(SEARCH_RADIUS_PRESETS)} km"
            raise ValidationException(msg, {"radius": radius_km})
        await self._store.set(RADIUS_KEY, str(float(radius_km)))

    async def permission_granted(self) -> bool:
        return (await self._store.get(PERMISSION_GRANTED_KEY)) == "true"

    async def set_permission_granted(self, granted: bool) -> None:
        await self._store.set(PERMISSION_GRANTED_KEY, "true" if granted else "false")

    async def get_cached_location(self) -> CachedLocation | None:
        raw = await self._store.get(CACHED_LOCATION_KEY)
        if not raw:
            return None
        try:
            return CachedLocation.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding corrupt cached location entry")
            return None

    async def set_cached_location(self, cached: CachedLocation) -> None:
        await self._store.set(CACHED_LOCATION_KEY, cached.model_dump_json())

    async def saved_locations(self) -> list[SavedLocation]:
        raw = await self._store.get(SAVED_LOCATIONS_KEY)
        if not raw:
            return []
        try:
            return _saved_list.validate_json(raw)
        except ValidationError:
            logger.warning("Discarding corrupt saved locations entry")
            return []

    async def save_location(self, location: SavedLocation) -> list[SavedLocation]:
        """Insert or replace a saved location.

        Home and work are singletons: saving a new one replaces the old.
        """
        existing = await self.saved_locations()
        kept = [
            item
            for item in existing
            if item.id != location.id
            and (location.kind == "custom" or item.kind != location.kind)
        ]
        kept.append(location)
        await self._store.set(SAVED_LOCATIONS_KEY, _saved_list.dump_json(kept).decode())
        return kept

    async def recent_locations(self) -> list[RecentLocation]:
        raw = await self._store.get(RECENT_LOCATIONS_KEY)
        if not raw:
            return []
        try:
            return _recent_list.validate_json(raw)
        except ValidationError:
            logger.warning("Discarding corrupt recent locations entry")
            return []

    async def remember_location(self, location: RecentLocation) -> list[RecentLocation]:
        """Move ``location`` to the front of the recent list (deduplicated by id)."""
        existing = await self.recent_locations()
        recent = [location, *(item for item in existing if item.id != location.id)]
        recent = recent[:RECENT_LOCATIONS_LIMIT]
        await self._store.set(RECENT_LOCATIONS_KEY, _recent_list.dump_json(recent).decode())
        return recent
