"""
Async circuit breaker for the salon API endpoints.

Autocomplete and reverse geocoding run on every keystroke or fix. When the
upstream is down, failing fast lets callers go straight to their fallback
(synthetic suggestion, "Current Location" text) instead of waiting on
timeouts.
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable

from core.exceptions import ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)


class CircuitOpen(ExternalServiceError):
    """Raised when a call is rejected because the circuit is open."""

    def __init__(self, service: str, resets_in: float) -> None:
        super().__init__(
            f"Circuit breaker open for {service} (resets in {resets_in:.0f}s)",
            {"service": service, "resets_in": resets_in},
        )
        self.service = service
        self.resets_in = resets_in


class CircuitBreaker:
    """
    Three-state circuit breaker: closed -> open -> half-open -> closed.

    Parameters
    ----------
    service : str
        Human-readable name (for logging / error messages).
    failure_threshold : int
        Consecutive failures before the circuit opens.
    recovery_timeout : float
        Seconds to wait before letting a probe request through.
    clock : callable
        Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        service: str,
        *,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.service = service
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._failures = 0
        self._opened_at: float | None = None
        self._open = False

    @property
    def state(self) -> str:
        if not self._open:
            return "closed"
        if self._opened_at is not None and (
            self._clock() - self._opened_at >= self.recovery_timeout
        ):
            return "half-open"
        return "open"

    def record_success(self) -> None:
        if self._open:
            logger.info("Circuit breaker CLOSED for %s", self.service)
        self._failures = 0
        self._opened_at = None
        self._open = False

    def record_failure(self) -> None:
        state = self.state
        self._failures += 1
        if state == "half-open":
            self._opened_at = self._clock()
            logger.warning(
                "Circuit breaker re-OPEN for %s (half-open probe failed)",
                self.service,
            )
        elif state == "closed" and self._failures >= self.failure_threshold:
            self._open = True
            self._opened_at = self._clock()
            logger.warning(
                "Circuit breaker OPEN for %s after %d failures",
                self.service,
                self._failures,
            )

    def check(self) -> None:
        """Raise :class:`CircuitOpen` if calls are currently rejected."""
        if self.state == "open":
            elapsed = self._clock() - (self._opened_at or 0.0)
            raise CircuitOpen(self.service, max(0.0, self.recovery_timeout - elapsed))

    def reset(self) -> None:
        self._failures = 0
        self._opened_at = None
        self._open = False


geocode_breaker = CircuitBreaker("Geocoding API", failure_threshold=5, recovery_timeout=30)
catalog_breaker = CircuitBreaker("Catalog API", failure_threshold=5, recovery_timeout=30)


def with_circuit_breaker(breaker: CircuitBreaker):
    """Decorator that wraps an async function with circuit breaker protection.

    Validation errors are the caller's fault and do not count as failures.
    """

    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            breaker.check()
            try:
                result = await fn(*args, **kwargs)
            except (CircuitOpen, ValidationError):
                raise
            except Exception:
                breaker.record_failure()
                raise
            breaker.record_success()
            return result

        return wrapper

    return decorator
