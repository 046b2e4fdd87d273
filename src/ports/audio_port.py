"""Audio ports — abstract interfaces for the live voice session.

The session core depends on these protocols, never on a specific audio
device library or streaming SDK.
"""

from __future__ import annotations

from typing import AsyncIterator, Protocol

import numpy as np


class AudioCapture(Protocol):
    """Microphone source delivering fixed-size mono float frames in [-1, 1]."""

    sample_rate: int

    async def open(self) -> None: ...

    def frames(self) -> AsyncIterator[np.ndarray]: ...

    async def close(self) -> None: ...


class AudioPlayback(Protocol):
    """Speaker sink with its own clock, independent of the capture clock."""

    sample_rate: int

    async def open(self) -> None: ...

    @property
    def current_time(self) -> float: ...

    def play_at(self, samples: np.ndarray, start_time: float) -> None: ...

    async def close(self) -> None: ...


class LiveConnection(Protocol):
    """An open duplex session with the remote voice endpoint."""

    async def send_audio(self, data: bytes, mime_type: str) -> None: ...

    def receive_audio(self) -> AsyncIterator[bytes]: ...

    async def close(self) -> None: ...


class LiveConnector(Protocol):
    """Opens LiveConnections with the requested voice."""

    async def connect(self, voice: str) -> LiveConnection: ...
