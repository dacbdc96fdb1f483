"""
Search API.

Exposes the suggestion ranking and search parameter construction over HTTP
so thin clients can share the same rules.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Query

from core.api import api_route
from core.clients.salon_api import SalonApiClient
from core.constants import DEFAULT_SEARCH_RADIUS_KM, SEARCH_RADIUS_PRESETS
from search.catalog import ServiceCatalog
from search.models import SearchForm
from search.query_builder import active_filter_count, build_search_params
from search.suggestions import SuggestionAggregator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/search", tags=["search"])


class _CatalogState:
    catalog: ServiceCatalog | None = None


def get_catalog() -> ServiceCatalog:
    """Shared service catalog, loaded on first use."""
    if _CatalogState.catalog is None:
        _CatalogState.catalog = ServiceCatalog(SalonApiClient())
    return _CatalogState.catalog


def reset_catalog() -> None:
    _CatalogState.catalog = None


@router.get("/suggestions", response_model=list[dict[str, Any]])
@api_route(logger)
async def get_suggestions(
    q: Annotated[
        str,
        Query(max_length=200, description="Text typed into the service field"),
    ] = "",
):
    """
    Ranked suggestions for the service field.

    An empty query returns the category panel; otherwise categories,
    services, and salons are scored and merged.
    """
    aggregator = SuggestionAggregator(SalonApiClient(), get_catalog())
    suggestions = await aggregator.suggest(q)
    return [suggestion.to_payload() for suggestion in suggestions]


@router.post("/params", response_model=dict[str, Any])
@api_route(logger)
async def build_params(form: SearchForm):
    """Build proximity or keyword search params from a submitted form."""
    params = build_search_params(form)
    return {
        "params": params.to_payload(),
        "activeFilterCount": active_filter_count(form),
    }


@router.get("/radius-presets", response_model=dict[str, Any])
async def get_radius_presets():
    return {
        "presets": list(SEARCH_RADIUS_PRESETS),
        "default": DEFAULT_SEARCH_RADIUS_KM,
    }
