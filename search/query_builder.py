"""
Search parameter construction.

A known coordinate selects proximity mode; otherwise the free-text location
is sent in keyword mode. The two shapes never share fields. Filters are only
included when they differ from their defaults.
"""

from __future__ import annotations

from core.constants import PRICE_RANGE_MAX, PRICE_RANGE_MIN
from search.catalog import category_label
from search.models import (
    KeywordSearchParams,
    ProximitySearchParams,
    SearchFilters,
    SearchForm,
    SortOption,
)

DEFAULT_PRICE_RANGE: tuple[int, int] = (PRICE_RANGE_MIN, PRICE_RANGE_MAX)


def _price_filter(form: SearchForm) -> tuple[int, int] | None:
    price_range = tuple(form.price_range)
    return None if price_range == DEFAULT_PRICE_RANGE else form.price_range


def build_filters(form: SearchForm) -> SearchFilters:
    return SearchFilters(
        price_range=_price_filter(form),
        min_rating=form.min_rating if form.min_rating > 0 else None,
        available_today=True if form.available_today else None,
        specific_services=list(form.specific_services) or None,
    )


def build_search_params(
    form: SearchForm,
    radius: float | None = None,
) -> ProximitySearchParams | KeywordSearchParams:
    """
    Build the query emitted to the hosting page.

    Only the first selected category is sent in proximity mode; the search
    endpoint accepts a single category.
    """
    service = form.service_text.strip() or None
    if form.coordinate is not None:
        return ProximitySearchParams(
            coordinates=form.coordinate,
            radius=radius if radius is not None else form.radius,
            service=service,
            category=form.categories[0] if form.categories else None,
            sort_by=form.sort_by or SortOption.DISTANCE,
            filters=build_filters(form),
        )

    filters = build_filters(form)
    labels = [category_label(category_id) for category_id in form.categories]
    return KeywordSearchParams(
        service=service,
        location=form.location_text or None,
        categories=", ".join(labels) or None,
        price_range=filters.price_range,
        min_rating=filters.min_rating,
        sort_by=form.sort_by or SortOption.BEST_MATCH,
        available_today=filters.available_today,
        specific_services=filters.specific_services,
    )


def select_category(categories: list[str], category_id: str) -> list[str]:
    """Append ``category_id`` unless already selected."""
    if category_id in categories:
        return list(categories)
    return [*categories, category_id]


def toggle_category(categories: list[str], category_id: str) -> list[str]:
    if category_id in categories:
        return [item for item in categories if item != category_id]
    return [*categories, category_id]


def clear_filters(form: SearchForm) -> SearchForm:
    """Reset every filter while keeping the text fields and location."""
    return form.model_copy(
        update={
            "categories": [],
            "sort_by": None,
            "price_range": DEFAULT_PRICE_RANGE,
            "min_rating": 0,
            "available_today": False,
            "specific_services": [],
        },
    )


def active_filter_count(form: SearchForm) -> int:
    count = len(form.categories)
    if _price_filter(form) is not None:
        count += 1
    if form.min_rating > 0:
        count += 1
    if form.sort_by is not None:
        count += 1
    if form.available_today:
        count += 1
    if form.specific_services:
        count += 1
    return count


__all__ = [
    "DEFAULT_PRICE_RANGE",
    "active_filter_count",
    "build_filters",
    "build_search_params",
    "clear_filters",
    "select_category",
    "toggle_category",
]
