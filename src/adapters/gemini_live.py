"""Gemini live adapter — implements LiveConnector / LiveConnection.

Wraps the google-genai live API (`client.aio.live.connect`) so the session
core only sees "send PCM bytes" and "iterate inbound PCM bytes".
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from typing import Any, AsyncIterator

from src.core.live_session import LIVE_MODEL
from src.core.llm import get_genai_client

logger = logging.getLogger(__name__)


class GeminiLiveConnection:
    """An open Gemini live session carrying audio both ways."""

    def __init__(self, session: Any, exit_stack: AsyncExitStack) -> None:
        self._session = session
        self._exit_stack = exit_stack

    async def send_audio(self, data: bytes, mime_type: str) -> None:
        from google.genai import types

        await self._session.send_realtime_input(
            audio=types.Blob(data=data, mime_type=mime_type),
        )

    async def receive_audio(self) -> AsyncIterator[bytes]:
        """Yield inbound audio frames across turns until the remote closes."""
        while True:
            received_any = False
            async for message in self._session.receive():
                received_any = True
                content = message.server_content
                if content is None or content.model_turn is None:
                    continue
                for part in content.model_turn.parts or []:
                    if part.inline_data is not None and part.inline_data.data:
                        yield part.inline_data.data
            if not received_any:
                return

    async def close(self) -> None:
        await self._exit_stack.aclose()


class GeminiLiveConnector:
    """Opens Gemini live sessions that answer with synthesized audio."""

    def __init__(self, client: Any = None, model: str = LIVE_MODEL) -> None:
        self._client = client
        self._model = model

    async def connect(self, voice: str) -> GeminiLiveConnection:
        from google.genai import types

        client = self._client or get_genai_client()
        config = types.LiveConnectConfig(
            response_modalities=[types.Modality.AUDIO],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice),
                ),
            ),
        )

        stack = AsyncExitStack()
        try:
            session = await stack.enter_async_context(
                client.aio.live.connect(model=self._model, config=config),
            )
        except BaseException:
            await stack.aclose()
            raise
        logger.info("Gemini live session opened (model=%s, voice=%s)", self._model, voice)
        return GeminiLiveConnection(session, stack)
