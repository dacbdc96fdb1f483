"""
Centralized exception hierarchy for domain-specific errors.

Device, geocoding, and catalog failures are raised as these types so callers
can decide between degrading (synthesized text, empty suggestion pass) and
surfacing an affordance (manual location entry).
"""


class NearbySearchError(Exception):
    """Base exception for all application-specific errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(NearbySearchError):
    """Exception raised when data validation fails."""


class ExternalServiceError(NearbySearchError):
    """Exception raised when service calls fail."""


class ServiceUnavailableError(ExternalServiceError):
    """Exception raised when an upstream reports it is out of capacity (503)."""


class RateLimitError(ExternalServiceError):
    """Exception raised when rate limits are exceeded."""


class ResourceNotFoundError(NearbySearchError):
    """Exception raised when a requested resource is not found."""


class PositionError(NearbySearchError):
    """Exception raised by a positioning device, carrying its error code."""

    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(message or f"Position error: {code}", {"code": code})
        self.code = code


NearbySearchException = NearbySearchError
ValidationException = ValidationError
ExternalServiceException = ExternalServiceError
ServiceUnavailableException = ServiceUnavailableError
RateLimitException = RateLimitError
ResourceNotFoundException = ResourceNotFoundError
