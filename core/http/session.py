"""HTTP session management for aiohttp.

Provides one shared ClientSession per process and event loop. A session
created on a loop that has since closed is discarded and rebuilt.
"""

from __future__ import annotations

import asyncio
import logging
import os

import aiohttp

from config import get_api_user_agent
from core.constants import (
    HTTP_CONNECTION_LIMIT,
    HTTP_TIMEOUT_CONNECT,
    HTTP_TIMEOUT_SOCK_READ,
    HTTP_TIMEOUT_TOTAL,
)

logger = logging.getLogger(__name__)


class SessionState:
    """State container for aiohttp session to avoid global variables."""

    session: aiohttp.ClientSession | None = None
    session_owner_pid: int | None = None


def _session_is_stale(session: aiohttp.ClientSession, pid: int) -> bool:
    if session.closed or SessionState.session_owner_pid != pid:
        return True
    loop = getattr(session, "_loop", None)
    if loop is None:
        return False
    try:
        return loop is not asyncio.get_running_loop() or loop.is_closed()
    except RuntimeError:
        return False


async def get_session() -> aiohttp.ClientSession:
    """Get or create the shared aiohttp ClientSession for this process."""
    current_pid = os.getpid()
    session = SessionState.session

    if session is not None and _session_is_stale(session, current_pid):
        logger.debug("Discarding stale aiohttp session (pid %s)", current_pid)
        if not session.closed and SessionState.session_owner_pid == current_pid:
            try:
                await session.close()
            except Exception as e:
                logger.warning("Error closing stale session: %s", e)
        SessionState.session = None
        SessionState.session_owner_pid = None

    if SessionState.session is None:
        timeout = aiohttp.ClientTimeout(
            total=HTTP_TIMEOUT_TOTAL,
            connect=HTTP_TIMEOUT_CONNECT,
            sock_read=HTTP_TIMEOUT_SOCK_READ,
        )
        SessionState.session = aiohttp.ClientSession(
            timeout=timeout,
            headers={
                "User-Agent": get_api_user_agent(),
                "Accept": "application/json",
            },
            connector=aiohttp.TCPConnector(limit=HTTP_CONNECTION_LIMIT),
        )
        SessionState.session_owner_pid = current_pid
        logger.debug("Created new aiohttp session for process %s", current_pid)

    return SessionState.session


async def cleanup_session() -> None:
    """Close the shared session for the current process."""
    if SessionState.session and not SessionState.session.closed:
        try:
            await SessionState.session.close()
            logger.info("Closed aiohttp session for process %s", os.getpid())
        except Exception as e:
            logger.warning("Error closing session: %s", e)

    SessionState.session = None
    SessionState.session_owner_pid = None
