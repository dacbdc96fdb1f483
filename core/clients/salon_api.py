"""
Salon API HTTP client.

Centralizes the endpoints the search input consumes: reverse geocoding,
address autocomplete, the service catalog, and provider search.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from config import get_api_base_url
from core.exceptions import ExternalServiceException, ValidationException
from core.http.circuit_breaker import (
    catalog_breaker,
    geocode_breaker,
    with_circuit_breaker,
)
from core.http.request import get_json
from core.http.retry import retry_async
from core.http.session import get_session

if TYPE_CHECKING:
    import aiohttp

logger = logging.getLogger(__name__)


class SalonApiClient:
    """Client for the salon API endpoints used by the search engine."""

    def __init__(
        self,
        base_url: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._base_url = (base_url or get_api_base_url()).rstrip("/")
        self._session = session

    async def _get_session(self) -> Any:
        if self._session is None:
            return await get_session()
        return self._session

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    @with_circuit_breaker(geocode_breaker)
    @retry_async(max_retries=1)
    async def reverse_geocode(self, lat: float, lng: float) -> str:
        """Resolve a coordinate to a display address.

        Raises:
            ServiceUnavailableError: the geocoder reported 503.
            ExternalServiceError: any other failure, including a payload
                without a usable ``address``.
        """
        url = self._url("/geocode")
        session = await self._get_session()
        data = await get_json(
            url,
            session=session,
            params={"lat": lat, "lng": lng},
            service_name="Reverse geocode",
        )
        address = data.get("address") if isinstance(data, dict) else None
        if not isinstance(address, str) or not address.strip():
            msg = "Reverse geocode error: response missing address"
            raise ExternalServiceException(msg, {"url": url})
        return address.strip()

    @with_circuit_breaker(geocode_breaker)
    @retry_async(max_retries=1)
    async def autocomplete(
        self,
        query: str,
        *,
        limit: int = 8,
        proximity: tuple[float, float] | None = None,
    ) -> list[dict[str, Any]]:
        """Forward-geocode free text into address suggestions.

        ``proximity`` is ``(lat, lng)`` and biases results when known.
        """
        if not query or not query.strip():
            msg = "Autocomplete query must not be empty"
            raise ValidationException(msg)

        params: dict[str, Any] = {"q": query.strip(), "limit": limit}
        if proximity is not None:
            params["lat"], params["lng"] = proximity

        url = self._url("/autocomplete")
        session = await self._get_session()
        data = await get_json(
            url,
            session=session,
            params=params,
            service_name="Autocomplete",
        )
        suggestions = data.get("suggestions") if isinstance(data, dict) else None
        if not isinstance(suggestions, list):
            msg = "Autocomplete error: unexpected response"
            raise ExternalServiceException(msg, {"url": url})
        return [item for item in suggestions if isinstance(item, dict)]

    @with_circuit_breaker(catalog_breaker)
    @retry_async()
    async def list_services(self) -> list[dict[str, Any]]:
        url = self._url("/services")
        session = await self._get_session()
        data = await get_json(url, session=session, service_name="Services")
        if not isinstance(data, list):
            msg = "Services error: unexpected response"
            raise ExternalServiceException(msg, {"url": url})
        return [item for item in data if isinstance(item, dict)]

    @with_circuit_breaker(catalog_breaker)
    @retry_async(max_retries=1)
    async def search_salons(
        self,
        service: str,
        *,
        limit: int = 3,
    ) -> list[dict[str, Any]]:
        url = self._url("/salons")
        session = await self._get_session()
        data = await get_json(
            url,
            session=session,
            params={"service": service, "limit": limit},
            service_name="Salon search",
        )
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            msg = "Salon search error: unexpected response"
            raise ExternalServiceException(msg, {"url": url})
        return [item for item in results if isinstance(item, dict)][:limit]


__all__ = ["SalonApiClient"]
