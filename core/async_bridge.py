"""
Bridge between synchronous and asynchronous callbacks.

UI-facing hooks (failure notifications, suggestion updates, search
submission) may be plain functions or coroutine functions. Components call
them through :func:`invoke_callback` so they never need to know which.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


async def invoke_callback(
    callback: Callable[..., Any] | None,
    *args: Any,
    **kwargs: Any,
) -> Any:
    """Call ``callback`` and await the result when it is awaitable."""
    if callback is None:
        return None
    result = callback(*args, **kwargs)
    if inspect.isawaitable(result):
        return await result
    return result


__all__ = ["invoke_callback"]
