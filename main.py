"""
Noor Companion — Entry Point.

`python main.py` starts the Telegram bot.
`python main.py voice` starts a live voice conversation on the local
microphone and speakers; press Enter to hang up.
"""

import asyncio
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger("main")


async def run_voice_console() -> None:
    """Run one live audio session until Enter is pressed or the remote hangs up."""
    from src.adapters.gemini_live import GeminiLiveConnector
    from src.adapters.sounddevice_audio import MicrophoneCapture, SpeakerPlayback
    from src.core.live_session import MSG_START_FAILED, LiveAudioSession, LiveSessionError

    session = LiveAudioSession(
        connector=GeminiLiveConnector(),
        capture=MicrophoneCapture(),
        playback=SpeakerPlayback(),
        on_state_change=lambda state: logger.info("Live voice: %s", state.value),
    )
    try:
        await session.start()
    except LiveSessionError as exc:
        logger.error("Live voice failed to start: %s", exc)
        print(MSG_START_FAILED, file=sys.stderr)
        return

    print("🎙  Live voice is on. Press Enter to hang up.")
    loop = asyncio.get_running_loop()
    hang_up = loop.run_in_executor(None, sys.stdin.readline)
    closed = asyncio.ensure_future(session.wait_closed())
    try:
        done, _ = await asyncio.wait({hang_up, closed}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        await session.stop()
        closed.cancel()
    if hang_up not in done:
        # The stdin reader thread only exits on the next line.
        print("Live voice ended by the remote side. Press Enter to exit.")


def main() -> None:
    if len(sys.argv) > 1 and sys.argv[1] == "voice":
        try:
            asyncio.run(run_voice_console())
        except KeyboardInterrupt:
            logger.info("Live voice interrupted")
        return

    from src.bot.telegram_bot import main as run_bot
    run_bot()


if __name__ == "__main__":
    main()
