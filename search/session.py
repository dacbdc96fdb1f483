"""
Search input session.

Wires the location components and both suggestion streams into a single
:class:`SearchForm` and emits :class:`SearchParams` through ``on_search``.

On load, a usable cached location triggers an immediate proximity search in
the background. Without one, a previously granted location permission
triggers detection after a short settle delay; otherwise the session waits
for the user.

Editing the location text by hand cancels any in-flight position request and
drops the coordinate, so searches fall back to keyword mode until a location
is picked.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from config import get_location_settle_delay_seconds
from core.async_bridge import invoke_callback
from core.clients.salon_api import SalonApiClient
from location.acquisition import (
    FailureReason,
    GeolocationAcquirer,
    PositionProvider,
    WatchHandle,
)
from location.autocomplete import (
    LocationAutocompleteClient,
    LocationSelection,
    OpenSaveFlow,
    UseCurrentLocation,
)
from location.cache import LocationCache
from location.geo_utils import is_same_location
from location.geocoding import ReverseGeocoder
from location.models import LocationFix
from location.preferences import Preferences
from search.catalog import ServiceCatalog
from search.models import KeywordSearchParams, ProximitySearchParams, SearchForm, Suggestion
from search.query_builder import (
    active_filter_count,
    build_search_params,
    clear_filters,
    toggle_category,
)
from search.suggestions import SuggestionAggregator

logger = logging.getLogger(__name__)

SearchParamsT = ProximitySearchParams | KeywordSearchParams


class SearchSession:
    def __init__(
        self,
        *,
        client: SalonApiClient,
        preferences: Preferences,
        provider: PositionProvider,
        on_search: Callable[[SearchParamsT], Any] | None = None,
        on_manual_entry: Callable[[FailureReason], Any] | None = None,
        on_save_location: Callable[[str], Any] | None = None,
        debounce_seconds: float | None = None,
        settle_delay: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.preferences = preferences
        self._on_search = on_search
        self._on_manual_entry = on_manual_entry
        self._on_save_location = on_save_location
        self._sleep = sleep
        self._settle_delay = (
            settle_delay
            if settle_delay is not None
            else get_location_settle_delay_seconds()
        )

        self.cache = LocationCache(preferences, clock=clock)
        self.acquirer = GeolocationAcquirer(
            provider,
            on_failure=self._handle_acquisition_failure,
            sleep=sleep,
            clock=clock,
        )
        self.geocoder = ReverseGeocoder(
            client,
            self.cache,
            on_resolved=self._handle_location_resolved,
        )
        self.catalog = ServiceCatalog(client)
        self.suggestions = SuggestionAggregator(
            client,
            self.catalog,
            debounce_seconds=debounce_seconds,
        )
        self.locations = LocationAutocompleteClient(
            client,
            preferences,
            debounce_seconds=debounce_seconds,
            clock=clock,
        )

        self.form = SearchForm()
        self.manual_entry_open = False
        self.last_params: SearchParamsT | None = None
        self._manual_location = False
        self._watch: WatchHandle | None = None
        self._settle_task: asyncio.Task[Any] | None = None
        self._background: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _spawn(self, coro: Awaitable[Any], name: str) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        task.set_name(name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def load(self) -> None:
        """Restore persisted state and decide whether to locate the user."""
        radius = await self.preferences.get_radius()
        self.form = self.form.model_copy(update={"radius": radius})

        cached = await self.cache.get()
        if cached is not None:
            logger.info("Using cached location: %s", cached.address)
            self.form = self.form.model_copy(
                update={
                    "coordinate": cached.coordinate,
                    "location_text": cached.address,
                },
            )
            self.locations.set_bias(cached.coordinate)
            self._spawn(self.search(), "search-cached-location")
            return

        if await self.preferences.permission_granted():
            logger.debug("Location permission granted before, detecting shortly")
            self._settle_task = self._spawn(
                self._detect_after_settle(),
                "detect-location",
            )
            return

        logger.debug("No cached location and no permission, waiting for user")

    async def _detect_after_settle(self) -> None:
        await self._sleep(self._settle_delay)
        self._settle_task = None
        if self._manual_location:
            logger.debug("Location edited during settle delay, skipping detection")
            return
        await self.detect_location()

    def _cancel_pending_detect(self) -> bool:
        task = self._settle_task
        self._settle_task = None
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def wait_background(self) -> None:
        """Wait for background searches and detection started by this session."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def close(self) -> None:
        """Release the position watch and cancel every pending timer or task."""
        self.acquirer.close()
        self.stop_watching()
        await self.suggestions.close()
        await self.locations.close()
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Location
    # ------------------------------------------------------------------

    async def detect_location(self) -> LocationFix | None:
        """Acquire a GPS fix, resolve its address, and search."""
        self._manual_location = False
        fix = await self.acquirer.acquire()
        if fix is None:
            return None
        await self.preferences.set_permission_granted(True)
        self.manual_entry_open = False
        self.form = self.form.model_copy(update={"coordinate": fix.coordinate})
        self.locations.set_bias(fix.coordinate)
        await self.geocoder.resolve(fix)
        return fix

    async def _handle_location_resolved(self, fix: LocationFix, address: str) -> None:
        if self._manual_location:
            logger.debug("Location edited by hand, ignoring resolved address")
            return
        self.form = self.form.model_copy(update={"location_text": address})
        await self.search()

    async def _handle_acquisition_failure(self, reason: FailureReason) -> None:
        self.form = self.form.model_copy(update={"coordinate": None})
        self.locations.set_bias(None)
        if reason is FailureReason.PERMISSION_DENIED:
            await self.preferences.set_permission_granted(False)
        self.manual_entry_open = True
        await invoke_callback(self._on_manual_entry, reason)

    def start_watching(self) -> WatchHandle | None:
        self.stop_watching()
        self._watch = self.acquirer.watch(self._handle_watched_fix)
        return self._watch

    def stop_watching(self) -> None:
        if self._watch is not None:
            self.acquirer.release_watch()
            self._watch = None

    def _handle_watched_fix(self, fix: LocationFix) -> None:
        if self._manual_location:
            return
        current = self.form.coordinate
        if current is not None and is_same_location(current, fix.coordinate):
            return
        logger.info("Watched position moved, refreshing location")
        self.form = self.form.model_copy(update={"coordinate": fix.coordinate})
        self.locations.set_bias(fix.coordinate)
        self._spawn(self.geocoder.resolve(fix), "resolve-watched-fix")

    async def focus_location(self) -> None:
        await self.locations.focus(self.form.location_text)

    async def on_location_input(self, text: str) -> None:
        """Manual edit of the location field."""
        if self._cancel_pending_detect():
            logger.info("Cancelled scheduled detection after manual location edit")
        if self.acquirer.cancel():
            logger.info("Cancelled position request after manual location edit")
        self._manual_location = True
        self.form = self.form.model_copy(
            update={"location_text": text, "coordinate": None},
        )
        await self.locations.on_input(text)

    async def select_location(self, suggestion: Suggestion) -> SearchParamsT | None:
        outcome = await self.locations.select(suggestion)
        if isinstance(outcome, UseCurrentLocation):
            await self.detect_location()
            return self.last_params
        if isinstance(outcome, OpenSaveFlow):
            await invoke_callback(self._on_save_location, outcome.kind)
            return None
        if not isinstance(outcome, LocationSelection):
            return None

        self._manual_location = True
        self.manual_entry_open = False
        self.form = self.form.model_copy(
            update={
                "location_text": outcome.address,
                "coordinate": outcome.coordinate,
            },
        )
        if outcome.coordinate is not None:
            self.locations.set_bias(outcome.coordinate)
        return await self.search()

    async def set_radius(self, radius_km: float) -> SearchParamsT | None:
        """Persist a radius preset; re-search when a coordinate is known."""
        await self.preferences.set_radius(radius_km)
        self.form = self.form.model_copy(update={"radius": float(radius_km)})
        if self.form.coordinate is None:
            return None
        return await self.search()

    # ------------------------------------------------------------------
    # Service field and filters
    # ------------------------------------------------------------------

    async def focus_query(self) -> None:
        await self.suggestions.focus(self.form.service_text)

    async def on_query_input(self, text: str) -> None:
        self.form = self.form.model_copy(update={"service_text": text})
        await self.suggestions.on_input(text)

    async def select_suggestion(self, suggestion: Suggestion) -> SearchParamsT | None:
        updated = await self.suggestions.select(suggestion, self.form)
        if updated is None:
            return None
        self.form = updated
        return await self.search()

    def toggle_category(self, category_id: str) -> list[str]:
        categories = toggle_category(self.form.categories, category_id)
        self.form = self.form.model_copy(update={"categories": categories})
        return categories

    def update_filters(self, **changes: Any) -> SearchForm:
        """Apply filter changes with validation (``sort_by``, ``min_rating``...)."""
        self.form = SearchForm.model_validate({**self.form.model_dump(), **changes})
        return self.form

    def clear_filters(self) -> SearchForm:
        self.form = clear_filters(self.form)
        return self.form

    @property
    def active_filter_count(self) -> int:
        return active_filter_count(self.form)

    async def search(self) -> SearchParamsT:
        params = build_search_params(self.form)
        self.last_params = params
        logger.info("Emitting %s search", params.mode)
        await invoke_callback(self._on_search, params)
        return params


__all__ = ["SearchSession"]
