"""
Service field suggestions.

Empty input produces a fixed panel of categories. Non-empty input is scored
by three passes (categories, local services, remote salons) whose results are
concatenated in that order, stably sorted by score, and capped.

Scores
------

========================  =====
Match                     Score
========================  =====
category exact            100
category prefix           90
category substring        70
service name prefix       95
service name substring    85
service category          75
service description       60
salon name                80
salon other               60
========================  =====
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any

import aiohttp

from config import get_suggestion_debounce_seconds
from core.async_bridge import invoke_callback
from core.clients.salon_api import SalonApiClient
from core.constants import (
    MAX_SALON_SUGGESTIONS,
    MAX_SERVICE_SUGGESTIONS,
    MAX_SUGGESTIONS,
)
from core.debounce import Debouncer, RequestSequencer
from core.exceptions import ExternalServiceError
from search.catalog import CATEGORIES, Category, Service, ServiceCatalog, category_label
from search.models import SearchForm, Suggestion, SuggestionType
from search.query_builder import select_category

logger = logging.getLogger(__name__)

ALL_SUGGESTION_ID = "all"


def _category_suggestion(category: Category, score: float | None = None) -> Suggestion:
    return Suggestion(
        type=SuggestionType.CATEGORY,
        id=category.id,
        title=category.label,
        subtitle=category.group,
        relevance_score=score,
        payload={"categoryId": category.id},
    )


def empty_query_suggestions(
    categories: Sequence[Category] = CATEGORIES,
) -> list[Suggestion]:
    """Deterministic panel shown for an empty, focused service field."""
    popular = [c for c in categories if c.popular]
    remaining = [c for c in categories if not c.popular]

    suggestions = [
        Suggestion(
            type=SuggestionType.ALL,
            id=ALL_SUGGESTION_ID,
            title="All treatments",
            subtitle="Browse everything nearby",
        ),
        Suggestion(type=SuggestionType.HEADER, id="header_top", title="Top categories"),
    ]
    suggestions.extend(_category_suggestion(c) for c in popular)
    if remaining:
        suggestions.append(
            Suggestion(
                type=SuggestionType.HEADER,
                id="header_more",
                title="More services",
            ),
        )
        suggestions.extend(_category_suggestion(c) for c in remaining)
    return suggestions


def score_categories(
    query: str,
    categories: Iterable[Category] = CATEGORIES,
) -> list[Suggestion]:
    needle = query.strip().lower()
    if not needle:
        return []
    matches = []
    for category in categories:
        label = category.label.lower()
        if needle in (label, category.id):
            score = 100
        elif label.startswith(needle) or category.id.startswith(needle):
            score = 90
        elif needle in label or needle in category.id:
            score = 70
        else:
            continue
        matches.append(_category_suggestion(category, score))
    return matches


def score_services(
    query: str,
    services: Iterable[Service],
    limit: int = MAX_SERVICE_SUGGESTIONS,
) -> list[Suggestion]:
    needle = query.strip().lower()
    if not needle:
        return []
    matches = []
    for service in services:
        name = service.name.lower()
        if name.startswith(needle):
            score = 95
        elif needle in name:
            score = 85
        elif needle in service.category.lower():
            score = 75
        elif needle in service.description.lower():
            score = 60
        else:
            continue
        matches.append(
            Suggestion(
                type=SuggestionType.SERVICE,
                id=service.id,
                title=service.name,
                subtitle=category_label(service.category),
                relevance_score=score,
                payload={"serviceId": service.id, "name": service.name},
            ),
        )
    matches.sort(key=lambda s: -(s.relevance_score or 0))
    return matches[:limit]


def score_salons(query: str, salons: Iterable[dict[str, Any]]) -> list[Suggestion]:
    """Remote results are already filtered, so a non-name match still scores."""
    needle = query.strip().lower()
    matches = []
    for salon in salons:
        salon_id = salon.get("id")
        name = str(salon.get("name") or "")
        if salon_id is None or not name:
            continue
        matches.append(
            Suggestion(
                type=SuggestionType.SALON,
                id=str(salon_id),
                title=name,
                subtitle=str(salon.get("address") or ""),
                relevance_score=80 if needle and needle in name.lower() else 60,
                payload={
                    "salonId": str(salon_id),
                    "name": name,
                    "address": salon.get("address"),
                    "rating": salon.get("rating"),
                    "image": salon.get("image"),
                },
            ),
        )
    return matches


def rank_suggestions(
    *passes: Sequence[Suggestion],
    limit: int = MAX_SUGGESTIONS,
) -> list[Suggestion]:
    """Concatenate passes in order, stable-sort by score, and cap."""
    merged = [suggestion for batch in passes for suggestion in batch]
    merged.sort(key=lambda s: -(s.relevance_score or 0))
    return merged[:limit]


def apply_selection(form: SearchForm, suggestion: Suggestion) -> SearchForm | None:
    """
    Return the form after picking ``suggestion``, or None for entries that
    cannot be selected (headers and errors).
    """
    if suggestion.type is SuggestionType.ALL:
        return form.model_copy(update={"service_text": "", "categories": []})
    if suggestion.type is SuggestionType.CATEGORY:
        category_id = str(suggestion.payload.get("categoryId", suggestion.id))
        return form.model_copy(
            update={
                "service_text": "",
                "categories": select_category(form.categories, category_id),
            },
        )
    if suggestion.type is SuggestionType.SERVICE:
        service_id = str(suggestion.payload.get("serviceId", suggestion.id))
        return form.model_copy(
            update={
                "service_text": suggestion.title,
                "specific_services": [service_id],
            },
        )
    if suggestion.type is SuggestionType.SALON:
        return form.model_copy(update={"service_text": suggestion.title})
    return None


class SuggestionAggregator:
    """Debounced, race-safe suggestions for the service field."""

    def __init__(
        self,
        client: SalonApiClient,
        catalog: ServiceCatalog,
        *,
        debounce_seconds: float | None = None,
        on_change: Callable[[list[Suggestion]], Any] | None = None,
        categories: Sequence[Category] = CATEGORIES,
    ) -> None:
        self._client = client
        self._catalog = catalog
        self._categories = categories
        self._on_change = on_change
        self._debouncer = Debouncer(
            debounce_seconds
            if debounce_seconds is not None
            else get_suggestion_debounce_seconds(),
            name="service-suggestions",
        )
        self._sequencer = RequestSequencer()
        self._focused = False
        self.suggestions: list[Suggestion] = []
        self.is_open = False

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    async def _publish(self, suggestions: list[Suggestion]) -> None:
        self.suggestions = list(suggestions)
        self.is_open = bool(self.suggestions)
        await invoke_callback(self._on_change, self.suggestions)

    async def _salon_pass(self, query: str) -> list[Suggestion]:
        try:
            salons = await self._client.search_salons(query, limit=MAX_SALON_SUGGESTIONS)
        except (ExternalServiceError, aiohttp.ClientError, TimeoutError) as exc:
            logger.warning("Salon suggestions unavailable for %r: %s", query, exc)
            return []
        return score_salons(query, salons)

    async def suggest(self, query: str) -> list[Suggestion]:
        """Ranked suggestions for ``query`` without debouncing."""
        if not query.strip():
            return empty_query_suggestions(self._categories)
        services, salon_hits = await asyncio.gather(
            self._catalog.services(),
            self._salon_pass(query),
        )
        return rank_suggestions(
            score_categories(query, self._categories),
            score_services(query, services),
            salon_hits,
        )

    async def focus(self, text: str = "") -> None:
        self._focused = True
        await self.on_input(text)

    async def on_input(self, text: str) -> None:
        if not text.strip():
            self._debouncer.cancel()
            self._sequencer.invalidate()
            await self._publish(
                empty_query_suggestions(self._categories) if self._focused else [],
            )
            return
        self._debouncer.schedule(self._query, text)

    async def _query(self, text: str) -> None:
        ticket = self._sequencer.issue()
        suggestions = await self.suggest(text)
        if not self._sequencer.is_latest(ticket):
            logger.debug("Discarding stale suggestions for %r", text)
            return
        await self._publish(suggestions)

    async def select(
        self,
        suggestion: Suggestion,
        form: SearchForm,
    ) -> SearchForm | None:
        updated = apply_selection(form, suggestion)
        if updated is not None:
            await self.close()
        return updated

    async def blur(self) -> None:
        await self.close()

    async def close(self) -> None:
        self._focused = False
        self._debouncer.cancel()
        self._sequencer.invalidate()
        if self.suggestions or self.is_open:
            await self._publish([])

    async def wait(self) -> None:
        await self._debouncer.wait()


__all__ = [
    "ALL_SUGGESTION_ID",
    "SuggestionAggregator",
    "apply_selection",
    "empty_query_suggestions",
    "rank_suggestions",
    "score_categories",
    "score_salons",
    "score_services",
]
