"""Connectivity flag — decides whether AI-dependent actions may go out.

When the flag is false, `require_online()` raises before any network call
is attempted, so offline actions leave every piece of state untouched.
"""

from __future__ import annotations

import logging

import httpx

from src.core.llm import AIOfflineError

logger = logging.getLogger(__name__)

_PROBE_TIMEOUT_SECONDS = 3


class Connectivity:
    """Process-wide online/offline flag."""

    def __init__(self, online: bool = True) -> None:
        self._online = online

    @property
    def online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online != self._online:
            logger.info("Connectivity changed: %s", "online" if online else "offline")
        self._online = online

    def require_online(self) -> None:
        """Raise AIOfflineError if the flag is false."""
        if not self._online:
            raise AIOfflineError("AI features require an internet connection.")

    async def probe(self, url: str | None = None) -> bool:
        """Issue one HEAD request and update the flag from its outcome."""
        if url is None:
            from src.config import settings
            url = settings.CONNECTIVITY_PROBE_URL

        try:
            async with httpx.AsyncClient(timeout=_PROBE_TIMEOUT_SECONDS) as client:
                await client.head(url)
            self.set_online(True)
        except httpx.HTTPError as exc:
            logger.warning("Connectivity probe to %s failed: %s", url, exc)
            self.set_online(False)
        return self._online


# Singleton shared by every AI wrapper and the bot
connectivity = Connectivity()
