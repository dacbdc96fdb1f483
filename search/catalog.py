"""
Static service categories and the remote service catalog.

Categories are fixed; ``popular`` decides which block of the empty-query
panel a category lands in. Services come from ``GET /services`` and are
loaded once per :class:`ServiceCatalog`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from core.clients.salon_api import SalonApiClient
from core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Category:
    id: str
    label: str
    group: str
    popular: bool = False


CATEGORIES: tuple[Category, ...] = (
    Category("hair", "Hair", "Beauty", popular=True),
    Category("facials", "Facials & Skincare", "Skin & Aesthetics", popular=True),
    Category("nails", "Nails", "Beauty", popular=True),
    Category("massage", "Massage", "Body & Wellness", popular=True),
    Category("hair-removal", "Hair Removal", "Skin & Aesthetics", popular=True),
    Category("fitness", "Fitness", "Body & Wellness", popular=True),
    Category("makeup", "Makeup", "Beauty"),
    Category("injectables", "Injectables & Fillers", "Skin & Aesthetics"),
    Category("body-treatments", "Body Treatments", "Body & Wellness"),
    Category("tattoo-piercing", "Tattoo & Piercing", "Specialty"),
    Category("medical-dental", "Medical & Dental", "Clinical"),
    Category("counseling", "Counseling & Holistic", "Mind & Holistic"),
)

_CATEGORY_BY_ID = {category.id: category for category in CATEGORIES}


def get_category(category_id: str) -> Category | None:
    return _CATEGORY_BY_ID.get(category_id)


def category_label(category_id: str) -> str:
    """Display label for ``category_id``, or the id itself when unknown."""
    category = get_category(category_id)
    return category.label if category else category_id


@dataclass(frozen=True)
class Service:
    id: str
    name: str
    category: str = ""
    description: str = ""
    price_in_paisa: int | None = None
    duration_minutes: int | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Service | None:
        service_id = data.get("id")
        name = data.get("name")
        if service_id is None or not name:
            return None
        return cls(
            id=str(service_id),
            name=str(name),
            category=str(data.get("category") or ""),
            description=str(data.get("description") or ""),
            price_in_paisa=data.get("priceInPaisa"),
            duration_minutes=data.get("durationMinutes"),
        )


class ServiceCatalog:
    """Lazily loaded local copy of the service catalog."""

    def __init__(self, client: SalonApiClient) -> None:
        self._client = client
        self._services: list[Service] | None = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._services is not None

    async def services(self) -> list[Service]:
        if self._services is not None:
            return self._services
        async with self._lock:
            if self._services is None:
                loaded = await self._load()
                if loaded is None:
                    return []
                self._services = loaded
        return self._services

    async def _load(self) -> list[Service] | None:
        try:
            raw = await self._client.list_services()
        except (ExternalServiceError, aiohttp.ClientError, TimeoutError) as exc:
            logger.warning("Service catalog unavailable: %s", exc)
            return None
        services = [s for s in map(Service.from_api, raw) if s is not None]
        logger.info("Loaded %d services into the catalog", len(services))
        return services


__all__ = [
    "CATEGORIES",
    "Category",
    "Service",
    "ServiceCatalog",
    "category_label",
    "get_category",
]
