from unittest.mock import AsyncMock, patch

import pytest

from core.exceptions import ValidationException
from location.models import CachedLocation, RecentLocation, SavedLocation
from location.preferences import (
    CACHED_LOCATION_KEY,
    RADIUS_KEY,
    MemoryKeyValueStore,
    Preferences,
    RedisKeyValueStore,
)


@pytest.mark.asyncio
async def test_radius_defaults_and_persists(preferences, store) -> None:
    assert await preferences.get_radius() == 0.5

    await preferences.set_radius(2)

    assert store.snapshot()[RADIUS_KEY] == "2.0"
    assert await preferences.get_radius() == 2.0


@pytest.mark.asyncio
async def test_radius_rejects_non_preset(preferences) -> None:
    with pytest.raises(ValidationException):
        await preferences.set_radius(0.75)


@pytest.mark.asyncio
async def test_invalid_stored_radius_reads_as_default() -> None:
    preferences = Preferences(MemoryKeyValueStore({RADIUS_KEY: "7"}))

    assert await preferences.get_radius() == 0.5


@pytest.mark.asyncio
async def test_permission_flag_round_trip(preferences) -> None:
    assert await preferences.permission_granted() is False

    await preferences.set_permission_granted(True)
    assert await preferences.permission_granted() is True

    await preferences.set_permission_granted(False)
    assert await preferences.permission_granted() is False


@pytest.mark.asyncio
async def test_corrupt_cached_location_is_treated_as_absent() -> None:
    preferences = Preferences(MemoryKeyValueStore({CACHED_LOCATION_KEY: "{not json"}))

    assert await preferences.get_cached_location() is None


@pytest.mark.asyncio
async def test_cached_location_is_stored_as_json(preferences) -> None:
    cached = CachedLocation(
        address="Indiranagar, Bengaluru",
        lat=12.97,
        lng=77.64,
        accuracy_meters=20,
        timestamp=1_700_000_000,
    )

    await preferences.set_cached_location(cached)

    assert await preferences.get_cached_location() == cached


@pytest.mark.asyncio
async def test_saving_home_replaces_previous_home(preferences) -> None:
    await preferences.save_location(
        SavedLocation(id="h1", kind="home", label="Home", address="Old", lat=1, lng=1),
    )
    await preferences.save_location(
        SavedLocation(id="w1", kind="work", label="Work", address="Office", lat=2, lng=2),
    )
    saved = await preferences.save_location(
        SavedLocation(id="h2", kind="home", label="Home", address="New", lat=3, lng=3),
    )

    assert [item.id for item in saved] == ["w1", "h2"]
    assert [item.id for item in await preferences.saved_locations()] == ["w1", "h2"]


@pytest.mark.asyncio
async def test_recent_locations_dedupe_and_cap(preferences) -> None:
    for index in range(12):
        await preferences.remember_location(
            RecentLocation(id=f"r{index}", title=f"Place {index}"),
        )
    recent = await preferences.remember_location(RecentLocation(id="r5", title="Place 5"))

    assert len(recent) == 10
    assert recent[0].id == "r5"
    assert [item.id for item in recent].count("r5") == 1
    assert "r0" not in [item.id for item in recent]


@pytest.mark.asyncio
async def test_redis_store_namespaces_keys() -> None:
    client = AsyncMock()
    client.get = AsyncMock(return_value="1.0")

    with patch(
        "location.preferences.get_shared_redis",
        AsyncMock(return_value=client),
    ):
        store = RedisKeyValueStore("device-42")
        await store.set(RADIUS_KEY, "1.0")
        value = await store.get(RADIUS_KEY)

    client.set.assert_awaited_once_with("nearby:prefs:device-42:search_radius", "1.0")
    client.get.assert_awaited_once_with("nearby:prefs:device-42:search_radius")
    assert value == "1.0"
