from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import pytest


def install_network_blocker(monkeypatch: pytest.MonkeyPatch) -> None:
    """Fail any real aiohttp request; tests must inject fake sessions."""
    import aiohttp

    async def _aiohttp_block(self, method: str, url: Any, *args: Any, **kwargs: Any):
        msg = f"Blocked network request in tests: {method} {url}"
        raise RuntimeError(msg)

    monkeypatch.setattr(aiohttp.ClientSession, "_request", _aiohttp_block)
