"""In-flight guard — rejects overlapping calls of the same logical operation.

Each AI-backed action claims a key such as (user_id, "schedule") for the
duration of its request. A second claim while the first is still running
fails immediately instead of racing it for the shared result.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable

logger = logging.getLogger(__name__)


class OperationInProgress(Exception):
    """Raised when an operation key is already claimed."""


class InFlightGuard:
    """Set of operation keys currently being processed."""

    def __init__(self) -> None:
        self._active: set[Hashable] = set()

    def is_active(self, key: Hashable) -> bool:
        return key in self._active

    @asynccontextmanager
    async def claim(self, key: Hashable) -> AsyncIterator[None]:
        if key in self._active:
            logger.info("Rejected overlapping operation %s", key)
            raise OperationInProgress(f"Operation {key!r} is already running")
        self._active.add(key)
        try:
            yield
        finally:
            self._active.discard(key)
