"""Client wrappers for external services."""

from core.clients.salon_api import SalonApiClient

__all__ = ["SalonApiClient"]
