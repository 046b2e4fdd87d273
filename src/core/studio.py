"""
Noor Companion — AI Studio.

Media-heavy Gemini features: grounded chat, image generation and editing,
video generation, image/video analysis, audio transcription and
text-to-speech. All of them use the shared google-genai client.

Chat history lives only in memory (ChatLog) and is lost on restart.
"""

from __future__ import annotations

import asyncio
import base64
import io
import logging
import wave
from dataclasses import dataclass, field
from typing import Any

import httpx

from src.core.connectivity import connectivity
from src.core.llm import AIDecodeError, AIRequestError, get_genai_client

logger = logging.getLogger(__name__)

CHAT_MODEL = "gemini-3-pro-preview"
SEARCH_MODEL = "gemini-3-flash-preview"
MAPS_MODEL = "gemini-2.5-flash"
IMAGE_MODEL = "gemini-3-pro-image-preview"
IMAGE_EDIT_MODEL = "gemini-2.5-flash-image"
VIDEO_MODEL = "veo-3.1-fast-generate-preview"
ANALYSIS_MODEL = "gemini-3-pro-preview"
TRANSCRIBE_MODEL = "gemini-3-flash-preview"
TTS_MODEL = "gemini-2.5-flash-preview-tts"
TTS_VOICE = "Kore"
TTS_SAMPLE_RATE = 24000

CHAT_TOOLS = ("none", "search", "maps")
IMAGE_SIZES = ("1K", "2K", "4K")
ASPECT_RATIOS = ("1:1", "16:9", "9:16", "4:3", "3:4")
VIDEO_ASPECT_RATIOS = ("16:9", "9:16")


# ---------------------------------------------------------------------------
# Chat log
# ---------------------------------------------------------------------------


@dataclass
class ChatMessage:
    role: str   # "user" | "model"
    text: str


@dataclass
class ChatLog:
    """Append-only, in-memory conversation log."""

    messages: list[ChatMessage] = field(default_factory=list)

    def append_user(self, text: str) -> None:
        self.messages.append(ChatMessage(role="user", text=text))

    def append_model(self, text: str) -> None:
        self.messages.append(ChatMessage(role="model", text=text))

    def clear(self) -> None:
        self.messages.clear()

    def __len__(self) -> int:
        return len(self.messages)


@dataclass
class GeneratedMedia:
    """Raw bytes of a generated image or audio clip."""

    data: bytes
    mime_type: str

    @property
    def data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _first_inline_data(response: Any) -> Any | None:
    """Return the first inline-data part of the first candidate, if any."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates or candidates[0].content is None:
        return None
    for part in candidates[0].content.parts or []:
        if getattr(part, "inline_data", None) is not None and part.inline_data.data:
            return part.inline_data
    return None


def pcm_to_wav(pcm: bytes, sample_rate: int = TTS_SAMPLE_RATE) -> bytes:
    """Wrap mono 16-bit PCM in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# 1. Chat with grounding
# ---------------------------------------------------------------------------


async def chat(prompt: str, tool: str = "none", language: str = "English") -> str:
    """Answer a prompt, optionally grounded on Google Search or Google Maps."""
    from google.genai import types

    if tool not in CHAT_TOOLS:
        raise ValueError(f"Unknown chat tool {tool!r}")
    connectivity.require_online()

    model = CHAT_MODEL
    tools: list[types.Tool] = []
    if tool == "search":
        tools.append(types.Tool(google_search=types.GoogleSearch()))
        model = SEARCH_MODEL
    elif tool == "maps":
        tools.append(types.Tool(google_maps=types.GoogleMaps()))
        model = MAPS_MODEL

    try:
        response = await get_genai_client().aio.models.generate_content(
            model=model,
            contents=f"Answer the following in {language}: {prompt}",
            config=types.GenerateContentConfig(tools=tools or None),
        )
    except Exception as exc:
        logger.error("Chat request failed (tool=%s): %s", tool, exc)
        raise AIRequestError(f"Chat failed: {exc}") from exc
    return response.text or "No response generated."


async def chat_turn(log: ChatLog, prompt: str, tool: str = "none", language: str = "English") -> str:
    """Append the user prompt and the model reply to the log."""
    log.append_user(prompt)
    reply = await chat(prompt, tool, language)
    log.append_model(reply)
    return reply


# ---------------------------------------------------------------------------
# 2. Image generation / editing
# ---------------------------------------------------------------------------


async def generate_image(prompt: str, size: str = "1K", aspect_ratio: str = "1:1") -> GeneratedMedia:
    from google.genai import types

    if size not in IMAGE_SIZES:
        raise ValueError(f"Unsupported image size {size!r}")
    if aspect_ratio not in ASPECT_RATIOS:
        raise ValueError(f"Unsupported aspect ratio {aspect_ratio!r}")
    connectivity.require_online()

    try:
        response = await get_genai_client().aio.models.generate_content(
            model=IMAGE_MODEL,
            contents=prompt,
            config=types.GenerateContentConfig(
                image_config=types.ImageConfig(aspect_ratio=aspect_ratio, image_size=size),
            ),
        )
    except Exception as exc:
        logger.error("Image gen error: %s", exc)
        raise AIRequestError(f"Image generation failed: {exc}") from exc

    inline = _first_inline_data(response)
    if inline is None:
        raise AIDecodeError("Image generation returned no image")
    logger.info("Generated %s image (%s, %d bytes)", size, aspect_ratio, len(inline.data))
    return GeneratedMedia(data=inline.data, mime_type=inline.mime_type or "image/png")


async def edit_image(image: bytes, mime_type: str, prompt: str) -> GeneratedMedia:
    from google.genai import types

    connectivity.require_online()
    try:
        response = await get_genai_client().aio.models.generate_content(
            model=IMAGE_EDIT_MODEL,
            contents=[types.Part.from_bytes(data=image, mime_type=mime_type), prompt],
        )
    except Exception as exc:
        logger.error("Image edit error: %s", exc)
        raise AIRequestError(f"Image editing failed: {exc}") from exc

    inline = _first_inline_data(response)
    if inline is None:
        raise AIDecodeError("Image editing returned no image")
    return GeneratedMedia(data=inline.data, mime_type=inline.mime_type or "image/png")


# ---------------------------------------------------------------------------
# 3. Video generation (long-running operation, polled)
# ---------------------------------------------------------------------------


async def generate_video(
    prompt: str,
    aspect_ratio: str = "16:9",
    image: bytes | None = None,
    image_mime_type: str = "image/png",
    poll_interval: float | None = None,
    max_polls: int | None = None,
) -> str:
    """Start a video generation and poll until done. Returns a download URI.

    Only 16:9 and 9:16 are supported; any other ratio becomes 16:9. Polling
    runs on a fixed interval with no deadline unless max_polls is positive.
    """
    from google.genai import types

    from src.config import settings

    if aspect_ratio not in VIDEO_ASPECT_RATIOS:
        aspect_ratio = "16:9"
    if poll_interval is None:
        poll_interval = settings.VIDEO_POLL_INTERVAL_SECONDS
    if max_polls is None:
        max_polls = settings.VIDEO_POLL_MAX_ATTEMPTS
    connectivity.require_online()

    client = get_genai_client()
    request: dict[str, Any] = {
        "model": VIDEO_MODEL,
        "prompt": prompt,
        "config": types.GenerateVideosConfig(
            number_of_videos=1,
            resolution="720p",
            aspect_ratio=aspect_ratio,
        ),
    }
    if image is not None:
        request["image"] = types.Image(image_bytes=image, mime_type=image_mime_type)

    try:
        operation = await client.aio.models.generate_videos(**request)
        polls = 0
        while not operation.done:
            if max_polls > 0 and polls >= max_polls:
                raise AIRequestError(f"Video generation still running after {polls} polls")
            await asyncio.sleep(poll_interval)
            operation = await client.aio.operations.get(operation)
            polls += 1
    except AIRequestError:
        raise
    except Exception as exc:
        logger.error("Video gen error: %s", exc)
        raise AIRequestError(f"Video generation failed: {exc}") from exc

    videos = getattr(operation.response, "generated_videos", None) or []
    uri = videos[0].video.uri if videos and videos[0].video else None
    if not uri:
        raise AIDecodeError("Video generation finished without a video")

    logger.info("Video generated after %d polls", polls)
    separator = "&" if "?" in uri else "?"
    return f"{uri}{separator}key={settings.gemini_key}"


# ---------------------------------------------------------------------------
# 4. Media understanding
# ---------------------------------------------------------------------------


async def analyze_media(data: bytes, mime_type: str, prompt: str, language: str = "English") -> str:
    from google.genai import types

    connectivity.require_online()
    try:
        response = await get_genai_client().aio.models.generate_content(
            model=ANALYSIS_MODEL,
            contents=[
                types.Part.from_bytes(data=data, mime_type=mime_type),
                f"{prompt} (Respond in {language})",
            ],
        )
    except Exception as exc:
        logger.error("Media analysis error: %s", exc)
        raise AIRequestError(f"Analysis failed: {exc}") from exc
    return response.text or "Could not analyze."


async def transcribe_audio(data: bytes, mime_type: str | None = None) -> str:
    from google.genai import types

    connectivity.require_online()
    try:
        response = await get_genai_client().aio.models.generate_content(
            model=TRANSCRIBE_MODEL,
            contents=[
                types.Part.from_bytes(data=data, mime_type=mime_type or "audio/wav"),
                "Transcribe this audio exactly.",
            ],
        )
    except Exception as exc:
        logger.error("Transcription error: %s", exc)
        raise AIRequestError(f"Transcription failed: {exc}") from exc
    text = (response.text or "").strip()
    logger.info("Transcribed %d chars", len(text))
    return text or "Transcription failed."


async def analyze_upload(data: bytes, mime_type: str, language: str = "English") -> str:
    """Audio is transcribed; images and video are analysed in detail."""
    if mime_type.startswith("audio"):
        return await transcribe_audio(data, mime_type)
    return await analyze_media(data, mime_type, "Analyze this content in detail.", language)


# ---------------------------------------------------------------------------
# 5. Text-to-speech
# ---------------------------------------------------------------------------


async def generate_speech(text: str) -> bytes:
    """Synthesize speech. Returns raw mono 16-bit PCM at 24 kHz."""
    from google.genai import types

    connectivity.require_online()
    try:
        response = await get_genai_client().aio.models.generate_content(
            model=TTS_MODEL,
            contents=text,
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=TTS_VOICE),
                    ),
                ),
            ),
        )
    except Exception as exc:
        logger.error("TTS error: %s", exc)
        raise AIRequestError(f"Speech synthesis failed: {exc}") from exc

    inline = _first_inline_data(response)
    if inline is None:
        raise AIDecodeError("Speech synthesis returned no audio")
    return inline.data


async def download_video(uri: str) -> bytes:
    """Fetch the generated video bytes from its (key-bearing) download URI."""
    from src.config import settings

    try:
        async with httpx.AsyncClient(
            timeout=settings.HTTP_TIMEOUT_SECONDS * 6, follow_redirects=True,
        ) as client:
            resp = await client.get(uri)
            resp.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error("Video download failed: %s", exc)
        raise AIRequestError(f"Video download failed: {exc}") from exc
    return resp.content
