"""Sounddevice adapters — implement AudioCapture and AudioPlayback.

Capture: a PortAudio input stream whose callback hands fixed-size frames to
the event loop through an asyncio.Queue.

Playback: a PortAudio output stream with its own sample clock. Buffers are
queued at absolute start times on that clock and mixed into the output
block that covers them.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, AsyncIterator

import numpy as np
import sounddevice as sd

from src.core.live_session import CAPTURE_SAMPLE_RATE, FRAME_SIZE, PLAYBACK_SAMPLE_RATE

logger = logging.getLogger(__name__)


class MicrophoneCapture:
    """Mono float32 microphone frames of FRAME_SIZE samples."""

    def __init__(
        self,
        sample_rate: int = CAPTURE_SAMPLE_RATE,
        frame_size: int = FRAME_SIZE,
        device: int | str | None = None,
    ) -> None:
        self.sample_rate = sample_rate
        self._frame_size = frame_size
        self._device = device
        self._stream: sd.InputStream | None = None
        self._queue: asyncio.Queue[np.ndarray | None] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None

    def _callback(self, indata: np.ndarray, frames: int, time_info: Any, status: sd.CallbackFlags) -> None:
        if status:
            logger.debug("Capture status: %s", status)
        frame = indata[:, 0].copy()
        self._loop.call_soon_threadsafe(self._queue.put_nowait, frame)

    async def open(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._stream = sd.InputStream(
            samplerate=self.sample_rate,
            blocksize=self._frame_size,
            channels=1,
            dtype="float32",
            device=self._device,
            callback=self._callback,
        )
        self._stream.start()
        logger.info("Microphone opened at %d Hz", self.sample_rate)

    async def frames(self) -> AsyncIterator[np.ndarray]:
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame

    async def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()
            stream.close()
            self._queue.put_nowait(None)
            logger.info("Microphone closed")


class SpeakerPlayback:
    """Mono float32 speaker output with a sample-accurate clock."""

    def __init__(self, sample_rate: int = PLAYBACK_SAMPLE_RATE, device: int | str | None = None) -> None:
        self.sample_rate = sample_rate
        self._device = device
        self._stream: sd.OutputStream | None = None
        self._lock = threading.Lock()
        self._position = 0                      # samples written since open
        self._pending: list[tuple[int, np.ndarray]] = []

    @property
    def current_time(self) -> float:
        with self._lock:
            return self._position / self.sample_rate

    def _callback(self, outdata: np.ndarray, frames: int, time_info: Any, status: sd.CallbackFlags) -> None:
        out = np.zeros(frames, dtype=np.float32)
        with self._lock:
            block_start = self._position
            block_end = block_start + frames
            still_pending = []
            for start, samples in self._pending:
                end = start + samples.size
                if end <= block_start:
                    continue
                if start >= block_end:
                    still_pending.append((start, samples))
                    continue
                lo, hi = max(start, block_start), min(end, block_end)
                out[lo - block_start:hi - block_start] += samples[lo - start:hi - start]
                if end > block_end:
                    still_pending.append((start, samples))
            self._pending = still_pending
            self._position = block_end
        outdata[:, 0] = out

    async def open(self) -> None:
        with self._lock:
            self._position = 0
            self._pending = []
        self._stream = sd.OutputStream(
            samplerate=self.sample_rate,
            channels=1,
            dtype="float32",
            device=self._device,
            callback=self._callback,
        )
        self._stream.start()
        logger.info("Speaker opened at %d Hz", self.sample_rate)

    def play_at(self, samples: np.ndarray, start_time: float) -> None:
        start_sample = round(start_time * self.sample_rate)
        with self._lock:
            self._pending.append((start_sample, np.asarray(samples, dtype=np.float32)))

    async def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()
            stream.close()
            logger.info("Speaker closed")
