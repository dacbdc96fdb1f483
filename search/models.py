"""Pydantic models for suggestions, the search form, and emitted search params."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic.alias_generators import to_camel

from core.constants import (
    DEFAULT_SEARCH_RADIUS_KM,
    PRICE_RANGE_MAX,
    PRICE_RANGE_MIN,
)
from location.models import Coordinate


class SuggestionType(str, Enum):
    ALL = "all"
    HEADER = "header"
    CATEGORY = "category"
    SERVICE = "service"
    SALON = "salon"
    LOCATION = "location"
    SAVED = "saved"
    ADD_SAVED = "add-saved"
    CURRENT = "current"
    ERROR = "error"


SCORED_SUGGESTION_TYPES = frozenset(
    {SuggestionType.CATEGORY, SuggestionType.SERVICE, SuggestionType.SALON},
)


class SortOption(str, Enum):
    PRICE_LOW = "price-low"
    PRICE_HIGH = "price-high"
    RATING = "rating"
    NEWEST = "newest"
    DISTANCE = "distance"
    BEST_MATCH = "best-match"


class CamelModel(BaseModel):
    """Base model that accepts snake_case and emits camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Suggestion(CamelModel):
    """
    One entry in a suggestion panel.

    ``relevance_score`` is set only for scored types (category, service,
    salon); structural entries such as headers leave it as None.
    """

    type: SuggestionType
    id: str
    title: str
    subtitle: str = ""
    relevance_score: float | None = None
    payload: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    @model_validator(mode="after")
    def check_score_on_scored_types(self) -> Suggestion:
        if self.relevance_score is not None and self.type not in SCORED_SUGGESTION_TYPES:
            msg = f"{self.type.value} suggestions do not carry a relevance score"
            raise ValueError(msg)
        return self


class SearchForm(CamelModel):
    """Current state of the search input: text fields, location, and filters."""

    service_text: str = ""
    location_text: str = ""
    coordinate: Coordinate | None = None
    radius: float = DEFAULT_SEARCH_RADIUS_KM
    categories: list[str] = Field(default_factory=list)
    sort_by: SortOption | None = None
    price_range: tuple[int, int] = (PRICE_RANGE_MIN, PRICE_RANGE_MAX)
    min_rating: float = Field(default=0, ge=0, le=5)
    available_today: bool = False
    specific_services: list[str] = Field(default_factory=list)


class SearchFilters(CamelModel):
    price_range: tuple[int, int] | None = None
    min_rating: float | None = None
    available_today: bool | None = None
    specific_services: list[str] | None = None


class ProximitySearchParams(CamelModel):
    mode: Literal["proximity"] = "proximity"
    coordinates: Coordinate
    radius: float
    service: str | None = None
    category: str | None = None
    sort_by: SortOption = SortOption.DISTANCE
    filters: SearchFilters = Field(default_factory=SearchFilters)


class KeywordSearchParams(CamelModel):
    """Fallback query used when no coordinate is known."""

    mode: Literal["keyword"] = "keyword"
    service: str | None = None
    location: str | None = None
    categories: str | None = None
    price_range: tuple[int, int] | None = None
    min_rating: float | None = None
    sort_by: SortOption = SortOption.BEST_MATCH
    available_today: bool | None = None
    specific_services: list[str] | None = None


SearchParams = Annotated[
    ProximitySearchParams | KeywordSearchParams,
    Field(discriminator="mode"),
]

search_params_adapter: TypeAdapter[SearchParams] = TypeAdapter(SearchParams)


__all__ = [
    "SCORED_SUGGESTION_TYPES",
    "CamelModel",
    "KeywordSearchParams",
    "ProximitySearchParams",
    "SearchFilters",
    "SearchForm",
    "SearchParams",
    "SortOption",
    "Suggestion",
    "SuggestionType",
    "search_params_adapter",
]
