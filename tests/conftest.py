import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from network_blocker import install_network_blocker

from core.http.circuit_breaker import catalog_breaker, geocode_breaker
from location.preferences import MemoryKeyValueStore, Preferences
from search.api import reset_catalog


@pytest.fixture(autouse=True)
def _default_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NEARBY_API_BASE_URL", "http://salon.test/api")
    for name in (
        "NEARBY_DEBOUNCE_MS",
        "NEARBY_AUTOCOMPLETE_LIMIT",
        "NEARBY_SETTLE_DELAY_MS",
        "NEARBY_USER_AGENT",
        "CORS_ALLOWED_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
    install_network_blocker(monkeypatch)


@pytest.fixture(autouse=True)
def _reset_shared_state():
    geocode_breaker.reset()
    catalog_breaker.reset()
    reset_catalog()
    yield
    geocode_breaker.reset()
    catalog_breaker.reset()
    reset_catalog()


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def preferences(store: MemoryKeyValueStore) -> Preferences:
    return Preferences(store)
