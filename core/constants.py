"""Global constants for the core package.

This module contains shared constants used across the application core.
"""

from typing import Final

# HTTP Client Constants
HTTP_CONNECTION_LIMIT: Final[int] = 10
HTTP_TIMEOUT_CONNECT: Final[float] = 5.0
HTTP_TIMEOUT_SOCK_READ: Final[float] = 10.0
HTTP_TIMEOUT_TOTAL: Final[float] = 15.0

# Device positioning
POSITION_TIMEOUT_MS: Final[int] = 30_000
POSITION_MAX_CACHE_AGE_MS: Final[int] = 60_000
GOOD_ACCURACY_METERS: Final[float] = 100.0
MODERATE_ACCURACY_METERS: Final[float] = 500.0
MODERATE_RETRY_DELAY_SECONDS: Final[float] = 3.0
MODERATE_MAX_RETRIES: Final[int] = 1
POOR_RETRY_DELAY_SECONDS: Final[float] = 2.0
POOR_MAX_RETRIES: Final[int] = 2
UNAVAILABLE_RETRY_DELAY_SECONDS: Final[float] = 2.0
UNAVAILABLE_MAX_RETRIES: Final[int] = 2

# Cached location freshness
CACHED_LOCATION_MAX_AGE_SECONDS: Final[float] = 5 * 60
CACHED_LOCATION_MAX_ACCURACY_METERS: Final[float] = 50.0

# Search radius presets (km)
SEARCH_RADIUS_PRESETS: Final[tuple[float, ...]] = (0.2, 0.5, 1.0, 2.0)
DEFAULT_SEARCH_RADIUS_KM: Final[float] = 0.5

# Filters
PRICE_RANGE_MIN: Final[int] = 0
PRICE_RANGE_MAX: Final[int] = 5000

# Suggestions
MAX_SUGGESTIONS: Final[int] = 8
MAX_SERVICE_SUGGESTIONS: Final[int] = 5
MAX_SALON_SUGGESTIONS: Final[int] = 3
RECENT_LOCATIONS_LIMIT: Final[int] = 10
RECENT_LOCATIONS_SHOWN: Final[int] = 3
AUTOCOMPLETE_CACHE_SIZE: Final[int] = 100

# Distance
EARTH_RADIUS_METERS: Final[float] = 6_371_000.0
SAME_LOCATION_THRESHOLD_METERS: Final[float] = 50.0
