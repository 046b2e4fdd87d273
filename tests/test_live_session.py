"""Tests for src.core.live_session — PCM codec, gapless scheduling, state machine.

Audio devices and the remote session are replaced by in-memory fakes that
implement the audio ports.
"""

import asyncio
import random

import numpy as np
import pytest

from src.core.live_session import (
    CAPTURE_MIME_TYPE,
    FRAME_SIZE,
    LiveAudioSession,
    LiveSessionError,
    PlaybackScheduler,
    SessionState,
    float_to_pcm16,
    pcm16_to_float,
)


class FakeCapture:
    sample_rate = 16000

    def __init__(self, frames=(), fail=False):
        self._frames = list(frames)
        self._fail = fail
        self.opened = False
        self.closed = False
        self._stop = asyncio.Event()

    async def open(self):
        if self._fail:
            raise PermissionError("microphone denied")
        self.opened = True

    async def frames(self):
        for frame in self._frames:
            yield frame
        await self._stop.wait()

    async def close(self):
        self.closed = True
        self._stop.set()


class FakePlayback:
    sample_rate = 24000

    def __init__(self):
        self.current_time = 0.0
        self.played = []
        self.closed = False

    async def open(self):
        pass

    def play_at(self, samples, start_time):
        self.played.append((samples.size, start_time))

    async def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, inbound=(), hang_up=False):
        self.sent = []
        self._inbound = list(inbound)
        self._hang_up = hang_up
        self.closed = False
        self._stop = asyncio.Event()

    async def send_audio(self, data, mime_type):
        self.sent.append((data, mime_type))

    async def receive_audio(self):
        for chunk in self._inbound:
            yield chunk
        if not self._hang_up:
            await self._stop.wait()

    async def close(self):
        self.closed = True
        self._stop.set()


class FakeConnector:
    def __init__(self, connection=None, fail=False):
        self.connection = connection or FakeConnection()
        self._fail = fail
        self.voices = []

    async def connect(self, voice):
        self.voices.append(voice)
        if self._fail:
            raise ConnectionError("handshake failed")
        return self.connection


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


class TestPcmCodec:
    def test_float_to_pcm16_clips_and_scales(self):
        data = float_to_pcm16(np.array([0.0, 0.5, -1.0, 1.0, 2.0, -3.0], dtype=np.float32))
        values = np.frombuffer(data, dtype="<i2").tolist()
        assert values == [0, 16384, -32768, 32767, 32767, -32768]

    def test_little_endian_two_bytes_per_sample(self):
        data = float_to_pcm16(np.zeros(FRAME_SIZE, dtype=np.float32))
        assert len(data) == FRAME_SIZE * 2
        assert float_to_pcm16(np.array([0.5]))[0:2] == b"\x00\x40"

    def test_pcm16_to_float_divides_by_32768(self):
        data = np.array([-32768, 0, 16384], dtype="<i2").tobytes()
        assert pcm16_to_float(data).tolist() == [-1.0, 0.0, 0.5]

    def test_odd_byte_is_dropped(self):
        assert pcm16_to_float(b"\x00\x40\x01").size == 1


class TestPlaybackScheduler:
    def test_back_to_back_when_ahead_of_clock(self):
        scheduler = PlaybackScheduler()
        assert scheduler.schedule(0.5, now=1.0) == 1.0
        assert scheduler.schedule(0.25, now=1.1) == 1.5
        assert scheduler.schedule(0.25, now=1.2) == 1.75

    def test_restarts_at_clock_after_underrun(self):
        scheduler = PlaybackScheduler()
        scheduler.schedule(0.5, now=0.0)
        assert scheduler.schedule(0.5, now=2.0) == 2.0

    def test_no_overlap_and_no_gap_property(self):
        rng = random.Random(3)
        scheduler = PlaybackScheduler()
        now, prev_start, prev_dur = 0.0, None, None
        for _ in range(200):
            now += rng.uniform(0.0, 0.3)
            duration = rng.uniform(0.01, 0.2)
            start = scheduler.schedule(duration, now)
            if prev_start is None:
                assert start == now
            else:
                assert start == max(now, prev_start + prev_dur)
                assert start >= prev_start + prev_dur
            prev_start, prev_dur = start, duration


class TestLiveAudioSession:
    @pytest.mark.asyncio
    async def test_start_streams_capture_and_schedules_playback(self):
        frame = np.full(FRAME_SIZE, 0.25, dtype=np.float32)
        chunk = np.zeros(2400, dtype="<i2").tobytes()     # 0.1 s at 24 kHz
        connection = FakeConnection(inbound=[chunk, chunk])
        capture, playback = FakeCapture(frames=[frame, frame]), FakePlayback()
        states = []
        session = LiveAudioSession(FakeConnector(connection), capture, playback, on_state_change=states.append)

        await session.start()
        await _settle()

        assert session.state == SessionState.ACTIVE
        assert states == [SessionState.CONNECTING, SessionState.ACTIVE]
        assert [mime for _, mime in connection.sent] == [CAPTURE_MIME_TYPE, CAPTURE_MIME_TYPE]
        assert session.frames_sent == 2
        assert playback.played == [(2400, 0.0), (2400, pytest.approx(0.1))]

        await session.stop()
        assert session.state == SessionState.IDLE
        assert capture.closed and playback.closed and connection.closed

    @pytest.mark.asyncio
    async def test_uses_configured_voice(self):
        connector = FakeConnector()
        session = LiveAudioSession(connector, FakeCapture(), FakePlayback())
        await session.start()
        await session.stop()
        assert connector.voices == ["Zephyr"]

    @pytest.mark.asyncio
    async def test_microphone_denied_returns_to_idle(self):
        connector = FakeConnector()
        capture, playback = FakeCapture(fail=True), FakePlayback()
        session = LiveAudioSession(connector, capture, playback)

        with pytest.raises(LiveSessionError):
            await session.start()

        assert session.state == SessionState.IDLE
        assert connector.voices == []
        assert capture.closed and playback.closed

    @pytest.mark.asyncio
    async def test_connection_failure_releases_capture(self):
        capture, playback = FakeCapture(), FakePlayback()
        session = LiveAudioSession(FakeConnector(fail=True), capture, playback)

        with pytest.raises(LiveSessionError):
            await session.start()

        assert session.state == SessionState.IDLE
        assert capture.opened and capture.closed and playback.closed

    @pytest.mark.asyncio
    async def test_start_while_active_rejected(self):
        session = LiveAudioSession(FakeConnector(), FakeCapture(), FakePlayback())
        await session.start()
        with pytest.raises(LiveSessionError):
            await session.start()
        await session.stop()

    @pytest.mark.asyncio
    async def test_remote_close_returns_to_idle(self):
        connection = FakeConnection(hang_up=True)
        capture = FakeCapture()
        session = LiveAudioSession(FakeConnector(connection), capture, FakePlayback())

        await session.start()
        await asyncio.wait_for(session.wait_closed(), timeout=1)

        assert session.state == SessionState.IDLE
        assert capture.closed and connection.closed

    @pytest.mark.asyncio
    async def test_toggle(self):
        session = LiveAudioSession(FakeConnector(), FakeCapture(), FakePlayback())
        assert await session.toggle() == SessionState.ACTIVE
        assert await session.toggle() == SessionState.IDLE

    @pytest.mark.asyncio
    async def test_stop_when_idle_is_noop(self):
        states = []
        session = LiveAudioSession(FakeConnector(), FakeCapture(), FakePlayback(), on_state_change=states.append)
        await session.stop()
        assert states == []
