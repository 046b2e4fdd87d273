"""Telegram notification adapter — implements NotificationPort.

Wraps a telegram.Bot instance so the briefing and alarm jobs can push
Markdown messages without knowing about Telegram.
"""

from __future__ import annotations

import logging

from telegram import Bot

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Telegram implementation of NotificationPort."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_message(self, user_id: int, text: str) -> None:
        await self._bot.send_message(chat_id=user_id, text=text, parse_mode="Markdown")
        logger.debug("Pushed %d chars to user %d", len(text), user_id)
