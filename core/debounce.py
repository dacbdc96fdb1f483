"""
Debounced task scheduling and response sequencing for input streams.

A :class:`Debouncer` owns at most one pending task. Scheduling again cancels
the pending task before creating the new one, so timers can never fire out of
order relative to the latest input.

Debouncing alone does not stop an older request from finishing after a newer
one. Each stream also carries a :class:`RequestSequencer`; responses whose
ticket is no longer the latest are dropped.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class RequestSequencer:
    """Monotonic request tickets for one input stream."""

    def __init__(self) -> None:
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> int:
        self._latest += 1
        return self._latest

    def invalidate(self) -> None:
        """Make every outstanding ticket stale."""
        self._latest += 1

    def is_latest(self, ticket: int) -> bool:
        return ticket == self._latest


class Debouncer:
    """Cancellable delayed execution of a coroutine function."""

    def __init__(self, delay: float, *, name: str = "debounce") -> None:
        self.delay = delay
        self.name = name
        self._task: asyncio.Task[Any] | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(
        self,
        fn: Callable[..., Awaitable[Any]],
        *args: Any,
        **kwargs: Any,
    ) -> asyncio.Task[Any]:
        """Run ``fn(*args, **kwargs)`` after ``delay`` unless superseded."""
        self.cancel()
        self._task = asyncio.create_task(
            self._run(fn, args, kwargs),
            name=f"{self.name}-debounce",
        )
        return self._task

    async def _run(
        self,
        fn: Callable[..., Awaitable[Any]],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Any:
        await asyncio.sleep(self.delay)
        try:
            return await fn(*args, **kwargs)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Debounced call %s failed", self.name)
            return None

    def cancel(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()

    async def wait(self) -> None:
        """Wait for the pending task (if any) to finish. Test helper."""
        task = self._task
        if task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task
