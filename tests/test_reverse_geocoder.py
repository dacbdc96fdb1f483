from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from core.exceptions import ExternalServiceException, ServiceUnavailableException
from location.cache import LocationCache
from location.geocoding import ReverseGeocoder, fallback_address
from location.models import Coordinate, LocationFix

NOW = 1_700_000_000.0


def _fix(accuracy: float = 37.6) -> LocationFix:
    return LocationFix(Coordinate(12.9716, 77.5946), accuracy, NOW)


def _geocoder(preferences, client, resolved):
    cache = LocationCache(preferences, clock=lambda: NOW)

    async def on_resolved(fix, address):
        resolved.append((fix, address))

    return ReverseGeocoder(client, cache, on_resolved=on_resolved), cache


@pytest.mark.asyncio
async def test_resolve_uses_service_address(preferences) -> None:
    client = MagicMock()
    client.reverse_geocode = AsyncMock(return_value="Cubbon Park, Bengaluru")
    resolved: list = []
    geocoder, cache = _geocoder(preferences, client, resolved)

    address = await geocoder.resolve(_fix())

    assert address == "Cubbon Park, Bengaluru"
    client.reverse_geocode.assert_awaited_once_with(12.9716, 77.5946)
    assert (await cache.get()).address == "Cubbon Park, Bengaluru"
    assert resolved == [(_fix(), "Cubbon Park, Bengaluru")]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        ServiceUnavailableException("503"),
        ExternalServiceException("bad payload"),
        aiohttp.ClientConnectionError("offline"),
        TimeoutError(),
    ],
)
async def test_resolve_falls_back_and_still_searches(preferences, error) -> None:
    client = MagicMock()
    client.reverse_geocode = AsyncMock(side_effect=error)
    resolved: list = []
    geocoder, _cache = _geocoder(preferences, client, resolved)

    address = await geocoder.resolve(_fix(37.6))

    assert address == "Current Location (±38m)"
    stored = await preferences.get_cached_location()
    assert stored.address == address
    assert stored.accuracy_meters == 37.6
    assert resolved == [(_fix(37.6), address)]


@pytest.mark.asyncio
async def test_cache_write_failure_does_not_block_search(preferences) -> None:
    client = MagicMock()
    client.reverse_geocode = AsyncMock(return_value="Jayanagar")
    resolved: list = []
    geocoder, cache = _geocoder(preferences, client, resolved)
    cache.set = AsyncMock(side_effect=RedisConnectionError("down"))

    assert await geocoder.resolve(_fix()) == "Jayanagar"
    assert resolved == [(_fix(), "Jayanagar")]


def test_fallback_address_rounds_accuracy() -> None:
    assert fallback_address(12.5) == "Current Location (±12m)"
    assert fallback_address(480.7) == "Current Location (±481m)"
