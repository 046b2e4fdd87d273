"""
Noor Companion — Daily Schedulers.

Morning Briefing: a proactive daily push with a two-sentence inspirational
briefing written by the LLM from the user's name, plan size, theme and
language.

Category Alarms: a once-a-minute check that reminds the user when a
schedule category with its alarm enabled is about to begin.

Messages are composed as Markdown (v1) with every user or LLM supplied
fragment escaped. Delivery goes through the NotificationPort protocol and
the StoreRegistry, not a concrete bot.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from telegram.helpers import escape_markdown

from src.core.assistant import generate_daily_briefing
from src.core.llm import AIError
from src.core.timeline import parse_start_time

if TYPE_CHECKING:
    from src.data.models import ScheduleItem
    from src.data.store import AppStore, StoreRegistry
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Morning briefing
# ---------------------------------------------------------------------------


def _md(text: str) -> str:
    return escape_markdown(text, version=1)


def _fallback_briefing(store: AppStore) -> str:
    name = _md(store.profile.name) if store.profile else "friend"
    count = len(store.schedule)
    return (
        f"Assalamu alaikum, {name}! ☀️\n"
        f"You have {count} categories planned for today. Use /today to see them."
    )


async def build_briefing(store: AppStore) -> str:
    """Ask the LLM for the briefing, falling back to plain text on failure.

    The result is Markdown-safe: LLM text is escaped before it is pushed.
    """
    try:
        briefing = await generate_daily_briefing(
            store.profile, store.schedule, store.theme, store.language,
        )
    except AIError as exc:
        logger.warning("Morning briefing: LLM briefing failed: %s", exc)
        return _fallback_briefing(store)
    return _md(briefing)


async def send_morning_briefing(
    notifier: NotificationPort,
    registry: StoreRegistry,
) -> int:
    """Send the morning briefing to every onboarded user. Returns the count sent."""
    sent = 0
    for user_id in registry.known_user_ids():
        store = registry.get(user_id)
        if not store.is_onboarded:
            continue
        try:
            briefing = await build_briefing(store)
            await notifier.send_message(user_id, briefing)
            sent += 1
            logger.info("Morning briefing sent to user %d", user_id)
        except Exception as exc:
            logger.error("Failed to send morning briefing to %d: %s", user_id, exc)
    return sent


# ---------------------------------------------------------------------------
# Category alarms
# ---------------------------------------------------------------------------


def due_alarms(schedule: list[ScheduleItem], now: datetime) -> list[ScheduleItem]:
    """Items with an enabled alarm whose start time is this minute."""
    due = []
    for item in schedule:
        if not item.alarm_enabled:
            continue
        start = parse_start_time(item.time)
        if start is not None and start.hour == now.hour and start.minute == now.minute:
            due.append(item)
    return due


def _format_alarm_message(item: ScheduleItem) -> str:
    lines = [f"⏰ *{_md(item.title)}* starts now ({_md(item.time)})"]
    pending = [_md(s.text) for s in item.subtasks if not s.completed]
    if pending:
        lines.append("")
        lines.extend(f"• {text}" for text in pending)
    return "\n".join(lines)


async def send_due_alarms(
    notifier: NotificationPort,
    registry: StoreRegistry,
    now: datetime,
) -> int:
    """Notify every user whose alarmed categories start at `now`."""
    sent = 0
    for user_id in registry.known_user_ids():
        store = registry.get(user_id)
        for item in due_alarms(store.schedule, now):
            try:
                await notifier.send_message(user_id, _format_alarm_message(item))
                sent += 1
            except Exception as exc:
                logger.error("Failed to send alarm '%s' to %d: %s", item.title, user_id, exc)
    return sent
