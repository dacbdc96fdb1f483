import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.exceptions import ExternalServiceException, ServiceUnavailableException
from search.catalog import ServiceCatalog
from search.models import SearchForm, SuggestionType
from search.suggestions import SuggestionAggregator

SERVICES = [
    {"id": "s1", "name": "Haircut", "category": "hair", "description": "Wash and cut"},
    {"id": "s2", "name": "Hair Spa", "category": "hair"},
]
SALONS = [{"id": "b1", "name": "Hair Lounge", "address": "Indiranagar"}]


def _client(salons=None, salon_error=None, services=None):
    client = MagicMock()
    client.list_services = AsyncMock(return_value=SERVICES if services is None else services)
    client.search_salons = AsyncMock(
        return_value=SALONS if salons is None else salons,
        side_effect=salon_error,
    )
    return client


def _aggregator(client, **kwargs):
    published: list[list] = []
    aggregator = SuggestionAggregator(
        client,
        ServiceCatalog(client),
        on_change=published.append,
        **kwargs,
    )
    return aggregator, published


@pytest.mark.asyncio
async def test_three_quick_keystrokes_issue_one_query() -> None:
    client = _client()
    aggregator, published = _aggregator(client)

    for text in ("h", "ha", "hai"):
        await aggregator.on_input(text)
        await asyncio.sleep(0.08)
    await aggregator.wait()

    client.search_salons.assert_awaited_once_with("hai", limit=3)
    assert len(published) == 1


@pytest.mark.asyncio
async def test_merged_ranking_order() -> None:
    aggregator, _published = _aggregator(_client(), debounce_seconds=0.01)

    await aggregator.on_input("hair")
    await aggregator.wait()

    assert [(s.type, s.id, s.relevance_score) for s in aggregator.suggestions] == [
        (SuggestionType.CATEGORY, "hair", 100),
        (SuggestionType.SERVICE, "s1", 95),
        (SuggestionType.SERVICE, "s2", 95),
        (SuggestionType.CATEGORY, "hair-removal", 90),
        (SuggestionType.SALON, "b1", 80),
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [ServiceUnavailableException("503"), ExternalServiceException("500")],
)
async def test_salon_failure_degrades_to_empty_pass(error) -> None:
    aggregator, _published = _aggregator(
        _client(salon_error=error),
        debounce_seconds=0.01,
    )

    await aggregator.on_input("massage")
    await aggregator.wait()

    assert [s.id for s in aggregator.suggestions] == ["massage"]


@pytest.mark.asyncio
async def test_catalog_is_loaded_once() -> None:
    client = _client()
    aggregator, _published = _aggregator(client, debounce_seconds=0.01)

    for text in ("nails", "hair"):
        await aggregator.on_input(text)
        await aggregator.wait()

    client.list_services.assert_awaited_once()


@pytest.mark.asyncio
async def test_no_query_until_focused() -> None:
    client = _client()
    aggregator, published = _aggregator(client, debounce_seconds=0.01)

    await aggregator.on_input("")
    assert published == [[]]

    await aggregator.focus()
    assert aggregator.suggestions[0].type is SuggestionType.ALL
    client.search_salons.assert_not_awaited()


@pytest.mark.asyncio
async def test_stale_results_are_discarded() -> None:
    gate = asyncio.Event()

    async def search_salons(query, limit):
        if query == "ha":
            await gate.wait()
        return [{"id": query, "name": query}]

    client = _client()
    client.search_salons = AsyncMock(side_effect=search_salons)
    aggregator, _published = _aggregator(client, debounce_seconds=0.01)

    await aggregator.on_input("ha")
    await asyncio.sleep(0.05)
    await aggregator.on_input("hair")
    gate.set()
    await aggregator.wait()
    await asyncio.sleep(0.01)

    assert "ha" not in [s.id for s in aggregator.suggestions]
    assert "hair" in [s.id for s in aggregator.suggestions]


@pytest.mark.asyncio
async def test_late_response_from_uncancelled_query_is_ignored() -> None:
    gate = asyncio.Event()

    async def search_salons(query, limit):
        if query == "ha":
            await gate.wait()
        return [{"id": f"salon-{query}", "name": query}]

    client = _client()
    client.search_salons = AsyncMock(side_effect=search_salons)
    aggregator, published = _aggregator(client, debounce_seconds=0.01)

    older = asyncio.create_task(aggregator._query("ha"))
    await asyncio.sleep(0)
    await aggregator._query("hair")
    gate.set()
    await older

    ids = [s.id for s in aggregator.suggestions]
    assert "salon-hair" in ids
    assert "salon-ha" not in ids
    assert len(published) == 1


@pytest.mark.asyncio
async def test_blur_cancels_pending_query() -> None:
    client = _client()
    aggregator, _published = _aggregator(client, debounce_seconds=0.05)

    await aggregator.focus()
    await aggregator.on_input("nai")
    await aggregator.blur()
    await asyncio.sleep(0.1)

    client.search_salons.assert_not_awaited()
    assert aggregator.suggestions == []
    assert not aggregator.is_open


@pytest.mark.asyncio
async def test_select_closes_panel_and_returns_form() -> None:
    aggregator, _published = _aggregator(_client(), debounce_seconds=0.01)
    await aggregator.focus()
    category = next(s for s in aggregator.suggestions if s.id == "nails")

    updated = await aggregator.select(category, SearchForm(categories=["hair"]))

    assert updated.categories == ["hair", "nails"]
    assert aggregator.suggestions == []
