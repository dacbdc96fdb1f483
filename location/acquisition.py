"""
Device position acquisition with accuracy-driven retries.

The acquisition lifecycle is a small state machine::

    Idle -> Requesting(attempt) -> Succeeded(fix) | Failed(reason)

State changes go through :func:`reduce_state`, and the retry policy is the
pure function :func:`decide`. :class:`GeolocationAcquirer` is the only part
that touches the device, sleeps, or reads the clock. That keeps the policy
testable without a device.

Retry policy
------------

- accuracy <= 100 m: accept.
- 100 m < accuracy <= 500 m: retry once after 3 s, then accept whatever
  comes back.
- accuracy > 500 m: retry up to twice at 2 s intervals, then fail with
  ``accuracy_insufficient``.
- permission denied or timeout: fail immediately.
- position unavailable: retry up to twice at 2 s intervals.
- no positioning capability: fail with ``unsupported``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Protocol

from core.async_bridge import invoke_callback
from core.constants import (
    GOOD_ACCURACY_METERS,
    MODERATE_ACCURACY_METERS,
    MODERATE_MAX_RETRIES,
    MODERATE_RETRY_DELAY_SECONDS,
    POOR_MAX_RETRIES,
    POOR_RETRY_DELAY_SECONDS,
    POSITION_MAX_CACHE_AGE_MS,
    POSITION_TIMEOUT_MS,
    UNAVAILABLE_MAX_RETRIES,
    UNAVAILABLE_RETRY_DELAY_SECONDS,
)
from core.exceptions import PositionError
from location.geo_utils import is_valid_coordinate
from location.models import Coordinate, FixSource, LocationFix

logger = logging.getLogger(__name__)


class DeviceErrorCode(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"


class FailureReason(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"
    ACCURACY_INSUFFICIENT = "accuracy_insufficient"


class AccuracyBand(str, Enum):
    GOOD = "good"
    MODERATE = "moderate"
    POOR = "poor"


def classify_accuracy(accuracy_meters: float) -> AccuracyBand:
    if accuracy_meters <= GOOD_ACCURACY_METERS:
        return AccuracyBand.GOOD
    if accuracy_meters <= MODERATE_ACCURACY_METERS:
        return AccuracyBand.MODERATE
    return AccuracyBand.POOR


# ---------------------------------------------------------------------------
# Device interface
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PositionOptions:
    high_accuracy: bool = True
    timeout_ms: int = POSITION_TIMEOUT_MS
    max_cache_age_ms: int = POSITION_MAX_CACHE_AGE_MS


@dataclass(frozen=True)
class PositionReading:
    lat: float
    lng: float
    accuracy_meters: float


class WatchHandle(Protocol):
    def close(self) -> None: ...


class PositionProvider(Protocol):
    """
    Platform positioning capability.

    ``request_position`` raises :class:`core.exceptions.PositionError` with a
    :class:`DeviceErrorCode` value on failure. ``watch_position`` is optional;
    providers without continuous updates simply omit it.
    """

    @property
    def supported(self) -> bool: ...

    async def request_position(self, options: PositionOptions) -> PositionReading: ...


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Requesting:
    attempt: int = 1


@dataclass(frozen=True)
class Succeeded:
    fix: LocationFix


@dataclass(frozen=True)
class Failed:
    reason: FailureReason


GeoAcquisitionState = Idle | Requesting | Succeeded | Failed


@dataclass(frozen=True)
class AcquisitionStarted:
    pass


@dataclass(frozen=True)
class RetryScheduled:
    pass


@dataclass(frozen=True)
class FixAccepted:
    fix: LocationFix


@dataclass(frozen=True)
class AcquisitionFailed:
    reason: FailureReason


@dataclass(frozen=True)
class AcquisitionCancelled:
    pass


AcquisitionEvent = (
    AcquisitionStarted
    | RetryScheduled
    | FixAccepted
    | AcquisitionFailed
    | AcquisitionCancelled
)


def reduce_state(
    state: GeoAcquisitionState,
    event: AcquisitionEvent,
) -> GeoAcquisitionState:
    """
    Apply one lifecycle event.

    Only a ``Requesting`` state can advance to another attempt, accept a fix,
    or be cancelled, so a fix arriving after cancellation is ignored. A start
    while already requesting is also ignored.
    """
    requesting = isinstance(state, Requesting)
    if isinstance(event, AcquisitionStarted):
        return state if requesting else Requesting(attempt=1)
    if isinstance(event, RetryScheduled):
        return Requesting(attempt=state.attempt + 1) if requesting else state
    if isinstance(event, FixAccepted):
        return Succeeded(event.fix) if requesting else state
    if isinstance(event, AcquisitionFailed):
        return Failed(event.reason)
    if isinstance(event, AcquisitionCancelled):
        return Idle() if requesting else state
    msg = f"Unknown acquisition event: {event!r}"
    raise TypeError(msg)


# ---------------------------------------------------------------------------
# Retry policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RetryBudget:
    """Retries already spent, per cause, within one acquisition."""

    moderate: int = 0
    poor: int = 0
    unavailable: int = 0


@dataclass(frozen=True)
class Accept:
    reading: PositionReading


@dataclass(frozen=True)
class Retry:
    delay: float
    budget: RetryBudget
    cause: str


@dataclass(frozen=True)
class Fail:
    reason: FailureReason


Decision = Accept | Retry | Fail


def decide(budget: RetryBudget, outcome: PositionReading | DeviceErrorCode) -> Decision:
    """Choose the next step for one device outcome."""
    if isinstance(outcome, DeviceErrorCode):
        if outcome is DeviceErrorCode.PERMISSION_DENIED:
            return Fail(FailureReason.PERMISSION_DENIED)
        if outcome is DeviceErrorCode.TIMEOUT:
            return Fail(FailureReason.TIMEOUT)
        if budget.unavailable < UNAVAILABLE_MAX_RETRIES:
            return Retry(
                UNAVAILABLE_RETRY_DELAY_SECONDS,
                replace(budget, unavailable=budget.unavailable + 1),
                "position unavailable",
            )
        return Fail(FailureReason.UNAVAILABLE)

    band = classify_accuracy(outcome.accuracy_meters)
    if band is AccuracyBand.GOOD:
        return Accept(outcome)
    if band is AccuracyBand.MODERATE:
        if budget.moderate < MODERATE_MAX_RETRIES:
            return Retry(
                MODERATE_RETRY_DELAY_SECONDS,
                replace(budget, moderate=budget.moderate + 1),
                "moderate accuracy",
            )
        return Accept(outcome)
    if budget.poor < POOR_MAX_RETRIES:
        return Retry(
            POOR_RETRY_DELAY_SECONDS,
            replace(budget, poor=budget.poor + 1),
            "poor accuracy",
        )
    return Fail(FailureReason.ACCURACY_INSUFFICIENT)


def _coerce_device_code(code: str) -> DeviceErrorCode:
    try:
        return DeviceErrorCode(code)
    except ValueError:
        logger.warning("Unknown device error code %r; treating as unavailable", code)
        return DeviceErrorCode.POSITION_UNAVAILABLE


# ---------------------------------------------------------------------------
# Acquirer
# ---------------------------------------------------------------------------


class GeolocationAcquirer:
    """Runs the acquisition state machine against a :class:`PositionProvider`."""

    def __init__(
        self,
        provider: PositionProvider,
        *,
        options: PositionOptions | None = None,
        on_failure: Callable[[FailureReason], Any] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._provider = provider
        self._options = options or PositionOptions()
        self._on_failure = on_failure
        self._sleep = sleep
        self._clock = clock
        self._state: GeoAcquisitionState = Idle()
        self._task: asyncio.Task[LocationFix | None] | None = None
        self._watch: WatchHandle | None = None

    @property
    def state(self) -> GeoAcquisitionState:
        return self._state

    @property
    def is_requesting(self) -> bool:
        return isinstance(self._state, Requesting)

    def _dispatch(self, event: AcquisitionEvent) -> None:
        previous = self._state
        self._state = reduce_state(previous, event)
        if self._state != previous:
            logger.debug("Acquisition state %s -> %s", previous, self._state)

    async def acquire(self) -> LocationFix | None:
        """
        Obtain one acceptable fix.

        Returns None on failure, on cancellation via :meth:`cancel`, or when
        a request is already in flight. Failures also invoke ``on_failure``.
        """
        if self.is_requesting:
            logger.debug("Position request already in flight, ignoring")
            return None
        if not self._provider.supported:
            logger.warning("Positioning is not supported on this device")
            await self._fail(FailureReason.UNSUPPORTED)
            return None

        self._dispatch(AcquisitionStarted())
        task = asyncio.create_task(self._run(), name="geolocation-acquire")
        self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            # cancel() already reset the state; a newer run may own it now.
            if self._task is task:
                self._dispatch(AcquisitionCancelled())
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return None
        finally:
            if self._task is task:
                self._task = None

    async def _run(self) -> LocationFix | None:
        budget = RetryBudget()
        while True:
            outcome = await self._request_once()
            decision = decide(budget, outcome)
            if isinstance(decision, Accept):
                fix = self._to_fix(decision.reading)
                self._dispatch(FixAccepted(fix))
                logger.info(
                    "Position acquired (accuracy %.0fm)",
                    fix.accuracy_meters,
                )
                return fix
            if isinstance(decision, Fail):
                await self._fail(decision.reason)
                return None
            logger.info(
                "Retrying position request in %.1fs (%s)",
                decision.delay,
                decision.cause,
            )
            await self._sleep(decision.delay)
            budget = decision.budget
            self._dispatch(RetryScheduled())

    async def _request_once(self) -> PositionReading | DeviceErrorCode:
        timeout = self._options.timeout_ms / 1000
        try:
            reading = await asyncio.wait_for(
                self._provider.request_position(self._options),
                timeout=timeout,
            )
        except TimeoutError:
            return DeviceErrorCode.TIMEOUT
        except PositionError as exc:
            return _coerce_device_code(exc.code)
        if not is_valid_coordinate(reading.lat, reading.lng):
            logger.warning(
                "Device returned invalid coordinate %s,%s",
                reading.lat,
                reading.lng,
            )
            return DeviceErrorCode.POSITION_UNAVAILABLE
        return reading

    def _to_fix(self, reading: PositionReading) -> LocationFix:
        return LocationFix(
            coordinate=Coordinate(reading.lat, reading.lng),
            accuracy_meters=reading.accuracy_meters,
            timestamp=self._clock(),
            source=FixSource.GPS,
        )

    async def _fail(self, reason: FailureReason) -> None:
        self._dispatch(AcquisitionFailed(reason))
        logger.warning("Position acquisition failed: %s", reason.value)
        await invoke_callback(self._on_failure, reason)

    def cancel(self) -> bool:
        """
        Abandon the in-flight request without reporting a failure.

        The state returns to ``Idle`` immediately; a fix that arrives later
        is discarded.
        """
        task = self._task
        if task is None or task.done():
            return False
        self._task = None
        self._dispatch(AcquisitionCancelled())
        task.cancel()
        logger.info("Position request cancelled")
        return True

    def watch(self, on_fix: Callable[[LocationFix], Any]) -> WatchHandle | None:
        """
        Subscribe to continuous position updates.

        Readings worse than the moderate accuracy band are skipped. Returns
        None when the provider cannot watch.
        """
        self.release_watch()
        watch_position = getattr(self._provider, "watch_position", None)
        if not self._provider.supported or watch_position is None:
            logger.debug("Provider does not support position watching")
            return None

        def _on_reading(reading: PositionReading) -> None:
            if not is_valid_coordinate(reading.lat, reading.lng):
                return
            if classify_accuracy(reading.accuracy_meters) is AccuracyBand.POOR:
                logger.debug(
                    "Skipping watched reading at %.0fm",
                    reading.accuracy_meters,
                )
                return
            on_fix(self._to_fix(reading))

        self._watch = watch_position(_on_reading, self._options)
        return self._watch

    def release_watch(self) -> None:
        handle = self._watch
        self._watch = None
        if handle is not None:
            handle.close()

    def close(self) -> None:
        self.cancel()
        self.release_watch()


__all__ = [
    "Accept",
    "AccuracyBand",
    "AcquisitionCancelled",
    "AcquisitionFailed",
    "AcquisitionStarted",
    "Decision",
    "DeviceErrorCode",
    "Fail",
    "Failed",
    "FailureReason",
    "FixAccepted",
    "GeoAcquisitionState",
    "GeolocationAcquirer",
    "Idle",
    "PositionOptions",
    "PositionProvider",
    "PositionReading",
    "Requesting",
    "Retry",
    "RetryBudget",
    "RetryScheduled",
    "Succeeded",
    "WatchHandle",
    "classify_accuracy",
    "decide",
    "reduce_state",
]
