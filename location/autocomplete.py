"""
Location field suggestions.

An empty, focused field shows structural entries: "use current location"
(only after permission was granted once), saved locations, prompts to add a
missing home or work address, then the most recent picks. Typing switches to
debounced forward geocoding biased towards the current coordinate.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import aiohttp

from config import get_autocomplete_limit, get_suggestion_debounce_seconds
from core.async_bridge import invoke_callback
from core.clients.salon_api import SalonApiClient
from core.constants import AUTOCOMPLETE_CACHE_SIZE, RECENT_LOCATIONS_SHOWN
from core.debounce import Debouncer, RequestSequencer
from core.exceptions import (
    ExternalServiceError,
    ServiceUnavailableError,
    ValidationError,
)
from location.geo_utils import make_coordinate, normalize_address
from location.models import Coordinate, RecentLocation
from location.preferences import Preferences
from search.models import Suggestion, SuggestionType

logger = logging.getLogger(__name__)

CURRENT_LOCATION_ID = "current_location"
LOCATION_UNAVAILABLE_ID = "location_unavailable"


@dataclass(frozen=True)
class LocationSelection:
    address: str
    coordinate: Coordinate | None
    suggestion: Suggestion


@dataclass(frozen=True)
class UseCurrentLocation:
    pass


@dataclass(frozen=True)
class OpenSaveFlow:
    kind: str


SelectionOutcome = LocationSelection | UseCurrentLocation | OpenSaveFlow


def current_location_suggestion() -> Suggestion:
    return Suggestion(
        type=SuggestionType.CURRENT,
        id=CURRENT_LOCATION_ID,
        title="Use current location",
        subtitle="Find places near you",
    )


def unavailable_suggestion(*, outage: bool) -> Suggestion:
    subtitle = (
        "Location search is temporarily unavailable. Try your current location."
        if outage
        else "Could not search addresses. Check your connection and try again."
    )
    return Suggestion(
        type=SuggestionType.ERROR,
        id=LOCATION_UNAVAILABLE_ID,
        title="Location search unavailable",
        subtitle=subtitle,
    )


def _result_to_suggestion(item: dict[str, Any]) -> Suggestion | None:
    item_id = item.get("id")
    title = item.get("title")
    if item_id is None or not title:
        return None
    subtitle = item.get("subtitle") or ""
    address = f"{title}, {subtitle}" if subtitle else str(title)
    return Suggestion(
        type=SuggestionType.LOCATION,
        id=str(item_id),
        title=str(title),
        subtitle=str(subtitle),
        payload={"address": address, "lat": item.get("lat"), "lng": item.get("lng")},
    )


def _payload_location(suggestion: Suggestion) -> tuple[str, Coordinate | None]:
    payload = suggestion.payload
    address = str(payload.get("address") or suggestion.title)
    if payload.get("lat") is None or payload.get("lng") is None:
        return address, None
    try:
        return address, make_coordinate(payload["lat"], payload["lng"])
    except ValidationError:
        logger.warning("Ignoring invalid coordinate on %s", suggestion.id)
        return address, None


class LocationAutocompleteClient:
    def __init__(
        self,
        client: SalonApiClient,
        preferences: Preferences,
        *,
        debounce_seconds: float | None = None,
        limit: int | None = None,
        cache_size: int = AUTOCOMPLETE_CACHE_SIZE,
        on_change: Callable[[list[Suggestion]], Any] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._preferences = preferences
        self._limit = limit if limit is not None else get_autocomplete_limit()
        self._debouncer = Debouncer(
            debounce_seconds
            if debounce_seconds is not None
            else get_suggestion_debounce_seconds(),
            name="location-autocomplete",
        )
        self._sequencer = RequestSequencer()
        self._cache: OrderedDict[str, list[Suggestion]] = OrderedDict()
        self._cache_size = cache_size
        self._on_change = on_change
        self._clock = clock
        self._bias: Coordinate | None = None
        self.suggestions: list[Suggestion] = []
        self.is_open = False

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def set_bias(self, coordinate: Coordinate | None) -> None:
        self._bias = coordinate

    async def _publish(self, suggestions: list[Suggestion]) -> None:
        self.suggestions = list(suggestions)
        self.is_open = bool(self.suggestions)
        await invoke_callback(self._on_change, self.suggestions)

    def _cache_get(self, key: str) -> list[Suggestion] | None:
        cached = self._cache.get(key)
        if cached is not None:
            self._cache.move_to_end(key)
        return cached

    def _cache_put(self, key: str, suggestions: list[Suggestion]) -> None:
        self._cache[key] = suggestions
        self._cache.move_to_end(key)
        while len(self._cache) > self._cache_size:
            self._cache.popitem(last=False)

    async def structural_suggestions(self) -> list[Suggestion]:
        suggestions: list[Suggestion] = []
        if await self._preferences.permission_granted():
            suggestions.append(current_location_suggestion())

        saved = await self._preferences.saved_locations()
        suggestions.extend(
            Suggestion(
                type=SuggestionType.SAVED,
                id=item.id,
                title=item.label,
                subtitle=item.address,
                payload={
                    "address": item.address,
                    "lat": item.lat,
                    "lng": item.lng,
                    "kind": item.kind,
                },
            )
            for item in saved
        )
        kinds = {item.kind for item in saved}
        for kind in ("home", "work"):
            if kind not in kinds:
                suggestions.append(
                    Suggestion(
                        type=SuggestionType.ADD_SAVED,
                        id=f"add_{kind}",
                        title=f"Add {kind}",
                        subtitle=f"Save your {kind} address",
                        payload={"kind": kind},
                    ),
                )

        recent = await self._preferences.recent_locations()
        suggestions.extend(
            Suggestion(
                type=SuggestionType.LOCATION,
                id=item.id,
                title=item.title,
                subtitle=item.subtitle,
                payload={
                    "address": item.address or item.title,
                    "lat": item.lat,
                    "lng": item.lng,
                    "recent": True,
                },
            )
            for item in recent[:RECENT_LOCATIONS_SHOWN]
        )
        return suggestions

    async def focus(self, text: str = "") -> None:
        await self.on_input(text)

    async def on_input(self, text: str) -> None:
        """Handle a change of the location field text."""
        query = text.strip()
        if not query:
            self._debouncer.cancel()
            self._sequencer.invalidate()
            await self._publish(await self.structural_suggestions())
            return

        key = normalize_address(query)
        cached = self._cache_get(key)
        if cached is not None:
            logger.debug("Autocomplete cache hit for %r", key)
            self._debouncer.cancel()
            self._sequencer.invalidate()
            await self._publish(cached)
            return

        self._debouncer.schedule(self._fetch, query, key)

    async def _fetch(self, query: str, key: str) -> None:
        ticket = self._sequencer.issue()
        proximity = self._bias.as_tuple() if self._bias is not None else None
        try:
            results = await self._client.autocomplete(
                query,
                limit=self._limit,
                proximity=proximity,
            )
        except ServiceUnavailableError:
            if self._sequencer.is_latest(ticket):
                logger.warning("Location autocomplete unavailable for %r", query)
                await self._publish([unavailable_suggestion(outage=True)])
            return
        except (ExternalServiceError, aiohttp.ClientError, TimeoutError) as exc:
            if self._sequencer.is_latest(ticket):
                logger.warning("Location autocomplete failed for %r: %s", query, exc)
                await self._publish([unavailable_suggestion(outage=False)])
            return

        if not self._sequencer.is_latest(ticket):
            logger.debug("Discarding stale autocomplete response for %r", query)
            return

        suggestions = [
            suggestion
            for suggestion in map(_result_to_suggestion, results)
            if suggestion is not None
        ]
        self._cache_put(key, suggestions)
        await self._publish(suggestions)

    async def select(self, suggestion: Suggestion) -> SelectionOutcome | None:
        """
        Resolve a picked suggestion.

        Address picks return a :class:`LocationSelection`, are remembered as
        recent locations, and close the panel. "Add home/work" returns
        :class:`OpenSaveFlow` and informational entries return None.
        """
        if suggestion.type is SuggestionType.ERROR:
            return None
        if suggestion.type is SuggestionType.ADD_SAVED:
            return OpenSaveFlow(kind=str(suggestion.payload.get("kind", "custom")))

        await self.close()
        if suggestion.type is SuggestionType.CURRENT:
            return UseCurrentLocation()

        stored = await self._stored_location(suggestion)
        if stored is not None:
            address, coordinate = stored
        else:
            address, coordinate = _payload_location(suggestion)

        await self._preferences.remember_location(
            RecentLocation(
                id=suggestion.id,
                title=suggestion.title,
                subtitle=suggestion.subtitle,
                address=address,
                lat=coordinate.lat if coordinate else None,
                lng=coordinate.lng if coordinate else None,
                timestamp=self._clock(),
            ),
        )
        return LocationSelection(
            address=address,
            coordinate=coordinate,
            suggestion=suggestion,
        )

    async def _stored_location(
        self,
        suggestion: Suggestion,
    ) -> tuple[str, Coordinate | None] | None:
        """Saved and recent entries resolve from preferences, not the payload."""
        if suggestion.type is SuggestionType.SAVED:
            for saved in await self._preferences.saved_locations():
                if saved.id == suggestion.id:
                    return saved.address, saved.coordinate
        elif suggestion.payload.get("recent"):
            for recent in await self._preferences.recent_locations():
                if recent.id == suggestion.id:
                    return recent.address or recent.title, recent.coordinate
        return None

    async def blur(self) -> None:
        await self.close()

    async def close(self) -> None:
        self._debouncer.cancel()
        self._sequencer.invalidate()
        if self.suggestions or self.is_open:
            await self._publish([])

    async def wait(self) -> None:
        await self._debouncer.wait()


__all__ = [
    "CURRENT_LOCATION_ID",
    "LOCATION_UNAVAILABLE_ID",
    "LocationAutocompleteClient",
    "LocationSelection",
    "OpenSaveFlow",
    "SelectionOutcome",
    "UseCurrentLocation",
]
