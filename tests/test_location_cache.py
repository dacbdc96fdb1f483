import pytest

from location.cache import LocationCache, is_usable
from location.models import CachedLocation, Coordinate, FixSource, LocationFix

NOW = 1_700_000_000.0


def _cached(age_seconds: float, accuracy: float) -> CachedLocation:
    return CachedLocation(
        address="HSR Layout, Bengaluru",
        lat=12.91,
        lng=77.64,
        accuracy_meters=accuracy,
        timestamp=NOW - age_seconds,
    )


@pytest.mark.parametrize(
    ("age_seconds", "accuracy", "usable"),
    [
        (4 * 60, 40, True),
        (6 * 60, 10, False),
        (2 * 60, 60, False),
        (0, 50, True),
        (5 * 60, 10, False),
    ],
)
def test_is_usable(age_seconds, accuracy, usable) -> None:
    assert is_usable(_cached(age_seconds, accuracy), NOW) is usable


@pytest.mark.asyncio
async def test_get_returns_only_usable_entries(preferences) -> None:
    cache = LocationCache(preferences, clock=lambda: NOW)

    assert await cache.get() is None

    await preferences.set_cached_location(_cached(6 * 60, 10))
    assert await cache.get() is None

    await preferences.set_cached_location(_cached(60, 30))
    hit = await cache.get()
    assert hit is not None
    assert hit.to_fix().source is FixSource.CACHE


@pytest.mark.asyncio
async def test_set_overwrites_with_current_timestamp(preferences) -> None:
    cache = LocationCache(preferences, clock=lambda: NOW)
    await preferences.set_cached_location(_cached(10, 5))
    fix = LocationFix(Coordinate(12.97, 77.59), 25, timestamp=NOW - 999)

    stored = await cache.set(fix, "MG Road, Bengaluru")

    assert stored.timestamp == NOW
    assert stored.address == "MG Road, Bengaluru"
    assert (await cache.get()) == stored
