"""Tests for the live voice adapters — speaker mixer and Gemini receive loop.

PortAudio is replaced by a MagicMock module so the mixer callback can be
driven block by block; the Gemini session is an in-memory fake.
"""

import importlib
import sys
from contextlib import AsyncExitStack
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from src.adapters.gemini_live import GeminiLiveConnection
from src.core.live_session import PlaybackScheduler


@pytest.fixture
def sounddevice_audio():
    """The sounddevice adapter module imported against a mocked PortAudio binding."""
    with patch.dict(sys.modules, {"sounddevice": MagicMock()}):
        sys.modules.pop("src.adapters.sounddevice_audio", None)
        yield importlib.import_module("src.adapters.sounddevice_audio")


def _pull(playback, frames):
    outdata = np.zeros((frames, 1), dtype=np.float32)
    playback._callback(outdata, frames, None, None)
    return outdata[:, 0].copy()


class TestSpeakerMixer:
    def test_back_to_back_buffers_are_contiguous_across_blocks(self, sounddevice_audio):
        playback = sounddevice_audio.SpeakerPlayback(sample_rate=10)
        scheduler = PlaybackScheduler()

        for value in (1.0, 2.0):
            start = scheduler.schedule(3.0, playback.current_time)
            playback.play_at(np.full(30, value, dtype=np.float32), start)

        out = np.concatenate([_pull(playback, 20) for _ in range(3)])

        assert out.tolist() == [1.0] * 30 + [2.0] * 30
        assert playback.current_time == 6.0

    def test_late_buffer_starts_now_not_in_the_past(self, sounddevice_audio):
        playback = sounddevice_audio.SpeakerPlayback(sample_rate=10)
        scheduler = PlaybackScheduler()
        _pull(playback, 20)  # 2 s of silence elapse

        start = scheduler.schedule(1.0, playback.current_time)
        playback.play_at(np.ones(10, dtype=np.float32), start)

        assert start == 2.0
        assert _pull(playback, 10).tolist() == [1.0] * 10

    def test_played_buffers_are_dropped(self, sounddevice_audio):
        playback = sounddevice_audio.SpeakerPlayback(sample_rate=10)
        playback.play_at(np.ones(5, dtype=np.float32), 0.0)

        _pull(playback, 10)

        assert playback._pending == []
        assert _pull(playback, 10).tolist() == [0.0] * 10


class FakeLiveSession:
    """Each receive() call replays one turn; an empty turn means closed."""

    def __init__(self, turns):
        self._turns = list(turns)

    def receive(self):
        turn = self._turns.pop(0) if self._turns else []

        async def _gen():
            for message in turn:
                yield message

        return _gen()


def _audio(data):
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data))
    return SimpleNamespace(server_content=SimpleNamespace(model_turn=SimpleNamespace(parts=[part])))


def _turn_complete():
    return SimpleNamespace(server_content=SimpleNamespace(model_turn=None))


class TestGeminiReceiveAudio:
    @pytest.mark.asyncio
    async def test_yields_every_chunk_across_turns_then_stops(self):
        session = FakeLiveSession([
            [_audio(b"a1"), _audio(b"a2"), _turn_complete()],
            [SimpleNamespace(server_content=None), _audio(b"b1"), _turn_complete()],
            [],
        ])
        connection = GeminiLiveConnection(session, AsyncExitStack())

        received = [chunk async for chunk in connection.receive_audio()]

        assert received == [b"a1", b"a2", b"b1"]

    @pytest.mark.asyncio
    async def test_parts_without_audio_are_skipped(self):
        text_part = SimpleNamespace(inline_data=None)
        empty_audio = SimpleNamespace(inline_data=SimpleNamespace(data=b""))
        message = SimpleNamespace(
            server_content=SimpleNamespace(model_turn=SimpleNamespace(parts=[text_part, empty_audio])),
        )
        connection = GeminiLiveConnection(FakeLiveSession([[message, _audio(b"x")], []]), AsyncExitStack())

        assert [chunk async for chunk in connection.receive_audio()] == [b"x"]
