"""Tests for src.core.studio — Gemini media features (client mocked)."""

import io
import wave
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.core.llm import AIDecodeError, AIOfflineError, AIRequestError
from src.core.studio import (
    CHAT_MODEL,
    MAPS_MODEL,
    SEARCH_MODEL,
    ChatLog,
    GeneratedMedia,
    analyze_upload,
    chat,
    chat_turn,
    download_video,
    edit_image,
    generate_image,
    generate_speech,
    generate_video,
    pcm_to_wav,
    transcribe_audio,
)

_PATCH_CLIENT = "src.core.studio.get_genai_client"


def _text_response(text):
    return SimpleNamespace(text=text, candidates=[])


def _inline_response(data, mime_type="image/png"):
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type))
    text_part = SimpleNamespace(inline_data=None)
    content = SimpleNamespace(parts=[text_part, part])
    return SimpleNamespace(text=None, candidates=[SimpleNamespace(content=content)])


def _mock_client(response=None, **kwargs):
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=response, **kwargs)
    return client


class TestChatLog:
    def test_append_and_clear(self):
        log = ChatLog()
        log.append_user("Salam")
        log.append_model("Wa alaikum salam")
        assert [(m.role, m.text) for m in log.messages] == [("user", "Salam"), ("model", "Wa alaikum salam")]
        assert len(log) == 2
        log.clear()
        assert len(log) == 0


class TestChat:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("tool,model,has_tools", [
        ("none", CHAT_MODEL, False),
        ("search", SEARCH_MODEL, True),
        ("maps", MAPS_MODEL, True),
    ])
    async def test_tool_selects_model(self, tool, model, has_tools):
        client = _mock_client(_text_response("answer"))
        with patch(_PATCH_CLIENT, return_value=client):
            assert await chat("Where is the nearest mosque?", tool) == "answer"
        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == model
        assert bool(kwargs["config"].tools) is has_tools

    @pytest.mark.asyncio
    async def test_empty_text_becomes_placeholder(self):
        with patch(_PATCH_CLIENT, return_value=_mock_client(_text_response(""))):
            assert await chat("hi") == "No response generated."

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        with pytest.raises(ValueError):
            await chat("hi", "calculator")

    @pytest.mark.asyncio
    async def test_failure_wrapped(self):
        client = _mock_client(side_effect=RuntimeError("quota"))
        with patch(_PATCH_CLIENT, return_value=client):
            with pytest.raises(AIRequestError):
                await chat("hi")

    @pytest.mark.asyncio
    async def test_offline_makes_no_call(self, online):
        online.set_online(False)
        client = _mock_client(_text_response("x"))
        with patch(_PATCH_CLIENT, return_value=client):
            with pytest.raises(AIOfflineError):
                await chat("hi")
        client.aio.models.generate_content.assert_not_called()

    @pytest.mark.asyncio
    async def test_chat_turn_appends_both_sides(self):
        log = ChatLog()
        with patch(_PATCH_CLIENT, return_value=_mock_client(_text_response("reply"))):
            await chat_turn(log, "question")
        assert [m.role for m in log.messages] == ["user", "model"]


class TestImages:
    @pytest.mark.asyncio
    async def test_generate_image_returns_inline_bytes(self):
        client = _mock_client(_inline_response(b"\x89PNG"))
        with patch(_PATCH_CLIENT, return_value=client):
            media = await generate_image("a mosque at dawn", "2K", "16:9")
        assert media == GeneratedMedia(b"\x89PNG", "image/png")
        assert media.data_uri.startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_generate_image_without_image_part(self):
        with patch(_PATCH_CLIENT, return_value=_mock_client(_text_response("sorry"))):
            with pytest.raises(AIDecodeError):
                await generate_image("x")

    @pytest.mark.asyncio
    async def test_generate_image_rejects_unknown_ratio(self):
        with pytest.raises(ValueError):
            await generate_image("x", "1K", "21:9")

    @pytest.mark.asyncio
    async def test_edit_image(self):
        client = _mock_client(_inline_response(b"edited", "image/jpeg"))
        with patch(_PATCH_CLIENT, return_value=client):
            media = await edit_image(b"original", "image/jpeg", "add a sunset")
        assert media.data == b"edited"
        assert media.mime_type == "image/jpeg"


class TestVideo:
    def _operations(self, uri="https://video.test/file?alt=media"):
        pending = SimpleNamespace(done=False, response=None)
        video = SimpleNamespace(video=SimpleNamespace(uri=uri))
        finished = SimpleNamespace(done=True, response=SimpleNamespace(generated_videos=[video]))
        return pending, finished

    @pytest.mark.asyncio
    async def test_polls_until_done_and_appends_key(self):
        pending, finished = self._operations()
        client = MagicMock()
        client.aio.models.generate_videos = AsyncMock(return_value=pending)
        client.aio.operations.get = AsyncMock(side_effect=[pending, pending, finished])

        with patch(_PATCH_CLIENT, return_value=client):
            uri = await generate_video("camels crossing dunes", "9:16", poll_interval=0)

        assert client.aio.operations.get.await_count == 3
        assert uri.startswith("https://video.test/file?alt=media&key=")
        config = client.aio.models.generate_videos.call_args.kwargs["config"]
        assert config.aspect_ratio == "9:16"

    @pytest.mark.asyncio
    async def test_unsupported_ratio_coerced(self):
        _, finished = self._operations("https://video.test/file")
        client = MagicMock()
        client.aio.models.generate_videos = AsyncMock(return_value=finished)

        with patch(_PATCH_CLIENT, return_value=client):
            uri = await generate_video("x", "4:3", poll_interval=0)

        assert "?key=" in uri
        assert client.aio.models.generate_videos.call_args.kwargs["config"].aspect_ratio == "16:9"

    @pytest.mark.asyncio
    async def test_max_polls_bounds_the_wait(self):
        pending, _ = self._operations()
        client = MagicMock()
        client.aio.models.generate_videos = AsyncMock(return_value=pending)
        client.aio.operations.get = AsyncMock(return_value=pending)

        with patch(_PATCH_CLIENT, return_value=client):
            with pytest.raises(AIRequestError):
                await generate_video("x", poll_interval=0, max_polls=2)
        assert client.aio.operations.get.await_count == 2

    @pytest.mark.asyncio
    async def test_finished_without_video(self):
        finished = SimpleNamespace(done=True, response=SimpleNamespace(generated_videos=[]))
        client = MagicMock()
        client.aio.models.generate_videos = AsyncMock(return_value=finished)
        with patch(_PATCH_CLIENT, return_value=client):
            with pytest.raises(AIDecodeError):
                await generate_video("x", poll_interval=0)


class TestMediaUnderstanding:
    @pytest.mark.asyncio
    async def test_audio_upload_is_transcribed(self):
        with patch("src.core.studio.transcribe_audio", AsyncMock(return_value="text")) as mock_t, \
             patch("src.core.studio.analyze_media", AsyncMock()) as mock_a:
            assert await analyze_upload(b"..", "audio/ogg") == "text"
        mock_t.assert_awaited_once_with(b"..", "audio/ogg")
        mock_a.assert_not_called()

    @pytest.mark.asyncio
    async def test_image_upload_is_analysed(self):
        with patch("src.core.studio.analyze_media", AsyncMock(return_value="a cat")) as mock_a:
            assert await analyze_upload(b"..", "image/jpeg", "German") == "a cat"
        assert mock_a.call_args.args[3] == "German"

    @pytest.mark.asyncio
    async def test_transcribe_defaults_to_wav(self):
        client = _mock_client(_text_response(" Bismillah "))
        with patch(_PATCH_CLIENT, return_value=client):
            assert await transcribe_audio(b"RIFF") == "Bismillah"
        contents = client.aio.models.generate_content.call_args.kwargs["contents"]
        assert contents[0].inline_data.mime_type == "audio/wav"


class TestSpeech:
    @pytest.mark.asyncio
    async def test_generate_speech_returns_pcm(self):
        with patch(_PATCH_CLIENT, return_value=_mock_client(_inline_response(b"\x00\x01", "audio/pcm"))):
            assert await generate_speech("Assalamu alaikum") == b"\x00\x01"

    def test_pcm_to_wav_header(self):
        wav_bytes = pcm_to_wav(b"\x00\x00" * 240, 24000)
        with wave.open(io.BytesIO(wav_bytes)) as wav:
            assert wav.getframerate() == 24000
            assert wav.getnchannels() == 1
            assert wav.getnframes() == 240


class TestDownloadVideo:
    @staticmethod
    def _http_client(**get_kwargs):
        client = AsyncMock()
        client.get = AsyncMock(**get_kwargs)
        client.__aenter__ = AsyncMock(return_value=client)
        client.__aexit__ = AsyncMock(return_value=False)
        return client

    @pytest.mark.asyncio
    async def test_returns_body(self):
        resp = MagicMock()
        resp.content = b"\x00\x00\x00\x18ftypmp42"
        resp.raise_for_status = MagicMock()
        client = self._http_client(return_value=resp)

        with patch("src.core.studio.httpx.AsyncClient", return_value=client):
            assert await download_video("https://example.test/v.mp4?key=k") == resp.content
        client.get.assert_awaited_once_with("https://example.test/v.mp4?key=k")

    @pytest.mark.asyncio
    async def test_http_error_raises_request_error(self):
        client = self._http_client(side_effect=httpx.ConnectError("refused"))
        with patch("src.core.studio.httpx.AsyncClient", return_value=client):
            with pytest.raises(AIRequestError):
                await download_video("https://example.test/v.mp4")
