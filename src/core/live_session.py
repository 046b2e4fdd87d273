"""
Noor Companion — Live Voice Session.

Bridges a local microphone to the remote streaming voice endpoint and plays
the synthesized reply in real time.

State machine:
    IDLE → CONNECTING → ACTIVE → CLOSING → IDLE

- CONNECTING opens the microphone (permission), then the duplex session.
  Either failure raises LiveSessionError once and returns to IDLE; no retry.
- ACTIVE runs two independent streams on the event loop: capture frames are
  converted to 16-bit PCM and sent as they arrive (no acknowledgment is
  awaited), and inbound PCM frames are decoded and queued for playback.
- Playback is gapless: each buffer starts at max(playback clock now,
  previous start + previous duration).
- CLOSING (user stop or remote close) releases capture, session and
  playback on every exit path. Audio already queued is not flushed.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Callable

import numpy as np

if TYPE_CHECKING:
    from src.ports.audio_port import AudioCapture, AudioPlayback, LiveConnection, LiveConnector

logger = logging.getLogger(__name__)

LIVE_MODEL = "gemini-2.5-flash-native-audio-preview-09-2025"
LIVE_VOICE = "Zephyr"
CAPTURE_SAMPLE_RATE = 16000
PLAYBACK_SAMPLE_RATE = 24000
FRAME_SIZE = 4096
CAPTURE_MIME_TYPE = f"audio/pcm;rate={CAPTURE_SAMPLE_RATE}"

MSG_START_FAILED = "Could not start Live Voice. Check permissions."


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSING = "closing"


class LiveSessionError(Exception):
    """Raised when the session cannot be started."""


# ---------------------------------------------------------------------------
# PCM codec
# ---------------------------------------------------------------------------


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Float samples in [-1, 1] → little-endian signed 16-bit PCM."""
    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    scaled = np.clip(clipped * 32768.0, -32768, 32767)
    return scaled.astype("<i2").tobytes()


def pcm16_to_float(data: bytes) -> np.ndarray:
    """Little-endian signed 16-bit PCM → float32 samples in [-1, 1)."""
    if len(data) % 2:
        data = data[:-1]
    return np.frombuffer(data, dtype="<i2").astype(np.float32) / 32768.0


# ---------------------------------------------------------------------------
# Playback scheduling
# ---------------------------------------------------------------------------


class PlaybackScheduler:
    """Queues buffers back-to-back on the playback clock."""

    def __init__(self) -> None:
        self.next_start_time = 0.0

    def schedule(self, duration: float, now: float) -> float:
        """Return the start time for a buffer of `duration` seconds."""
        start = max(now, self.next_start_time)
        self.next_start_time = start + duration
        return start

    def reset(self) -> None:
        self.next_start_time = 0.0


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class LiveAudioSession:
    """One live voice session. Owns capture, connection and playback."""

    def __init__(
        self,
        connector: LiveConnector,
        capture: AudioCapture,
        playback: AudioPlayback,
        voice: str = LIVE_VOICE,
        on_state_change: Callable[[SessionState], None] | None = None,
    ) -> None:
        self._connector = connector
        self._capture = capture
        self._playback = playback
        self._voice = voice
        self._on_state_change = on_state_change

        self._state = SessionState.IDLE
        self._connection: LiveConnection | None = None
        self._scheduler = PlaybackScheduler()
        self._tasks: list[asyncio.Task] = []
        self._idle = asyncio.Event()
        self._idle.set()

        self.frames_sent = 0
        self.buffers_played = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def scheduler(self) -> PlaybackScheduler:
        return self._scheduler

    def _set_state(self, state: SessionState) -> None:
        if state == self._state:
            return
        logger.info("Live session: %s → %s", self._state.value, state.value)
        self._state = state
        if state == SessionState.IDLE:
            self._idle.set()
        else:
            self._idle.clear()
        if self._on_state_change is not None:
            self._on_state_change(state)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """IDLE → CONNECTING → ACTIVE. Raises LiveSessionError on failure."""
        if self._state != SessionState.IDLE:
            raise LiveSessionError(f"Live session is already {self._state.value}")

        self._set_state(SessionState.CONNECTING)
        try:
            await self._capture.open()
            await self._playback.open()
            self._connection = await self._connector.connect(self._voice)
        except Exception as exc:
            logger.error("Live API Error: %s", exc)
            await self._release()
            self._set_state(SessionState.IDLE)
            raise LiveSessionError(MSG_START_FAILED) from exc

        self._scheduler.reset()
        self.frames_sent = 0
        self.buffers_played = 0
        self._set_state(SessionState.ACTIVE)
        self._tasks = [
            asyncio.create_task(self._pump_capture(), name="live-capture"),
            asyncio.create_task(self._pump_playback(), name="live-playback"),
        ]

    async def stop(self) -> None:
        """ACTIVE → CLOSING → IDLE. Safe to call from any state."""
        if self._state in (SessionState.IDLE, SessionState.CLOSING):
            return

        self._set_state(SessionState.CLOSING)
        current = asyncio.current_task()
        others = [t for t in self._tasks if t is not current and not t.done()]
        for task in others:
            task.cancel()
        if others:
            await asyncio.gather(*others, return_exceptions=True)
        self._tasks = []

        await self._release()
        self._set_state(SessionState.IDLE)

    async def toggle(self) -> SessionState:
        """Start when idle, stop otherwise."""
        if self._state == SessionState.IDLE:
            await self.start()
        else:
            await self.stop()
        return self._state

    async def wait_closed(self) -> None:
        await self._idle.wait()

    async def _release(self) -> None:
        """Close every owned resource, logging (not raising) failures."""
        connection, self._connection = self._connection, None
        if connection is not None:
            try:
                await connection.close()
            except Exception as exc:
                logger.warning("Error closing live connection: %s", exc)
        for name, resource in (("capture", self._capture), ("playback", self._playback)):
            try:
                await resource.close()
            except Exception as exc:
                logger.warning("Error closing %s: %s", name, exc)

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    async def _pump_capture(self) -> None:
        """Send every capture frame as PCM, without waiting for replies."""
        try:
            async for frame in self._capture.frames():
                if self._connection is None:
                    break
                await self._connection.send_audio(float_to_pcm16(frame), CAPTURE_MIME_TYPE)
                self.frames_sent += 1
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Live capture stream failed: %s", exc)
            await self.stop()

    async def _pump_playback(self) -> None:
        """Decode inbound frames and queue them gaplessly on the speaker."""
        try:
            async for chunk in self._connection.receive_audio():
                samples = pcm16_to_float(chunk)
                if samples.size == 0:
                    continue
                duration = samples.size / self._playback.sample_rate
                start = self._scheduler.schedule(duration, self._playback.current_time)
                self._playback.play_at(samples, start)
                self.buffers_played += 1
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Live receive stream failed: %s", exc)
        logger.info("Live session closed by remote")
        await self.stop()
