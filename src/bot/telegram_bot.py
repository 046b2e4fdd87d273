"""
Noor Companion — Telegram Bot.

Telegram is the only user interface. Every view of the companion (timeline,
focus, Quran, Hadith, history, hub, studio, settings) is a command, and
every toggle or selection is an inline keyboard button.

Security-first: unauthorized users are silently ignored.
"""

from __future__ import annotations

import logging
from datetime import datetime
from datetime import time as dt_time
from functools import wraps
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Coroutine
from zoneinfo import ZoneInfo

from telegram import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
    Update,
)
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    ConversationHandler,
    MessageHandler,
    filters,
)
from telegram.helpers import escape_markdown

from src.config import settings
from src.core.connectivity import connectivity
from src.core.inflight import InFlightGuard, OperationInProgress
from src.core.llm import AIError, AIOfflineError

if TYPE_CHECKING:
    from src.core.focus import FocusTimer
    from src.core.studio import ChatLog
    from src.data.models import DockItem, ScheduleItem
    from src.data.store import AppStore, StoreRegistry
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)

MSG_OFFLINE = "📴 You're offline. AI features need an internet connection."
MSG_BUSY = "⏳ Still working on your previous request, please wait..."
MSG_AI_FAILED = "Sorry, the AI request failed. Please try again."

_MAX_MESSAGE_CHARS = 4000
FOCUS_TICK_SECONDS = 1
ALARM_CHECK_SECONDS = 60


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, Any]],
) -> Callable[..., Coroutine[Any, Any, Any]]:
    """Decorator that silently ignores updates from unauthorized users.

    Does NOT send any response to strangers — the bot must not reveal
    its existence to unauthorized users.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Any:
        user = update.effective_user
        if user is None or user.id not in settings.ALLOWED_USER_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return None  # Silent ignore
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _store(update: Update, context: ContextTypes.DEFAULT_TYPE) -> AppStore:
    registry: StoreRegistry = context.bot_data["registry"]
    return registry.get(update.effective_user.id)


async def _run_ai(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    operation: str,
    call: Callable[[], Awaitable[Any]],
) -> Any | None:
    """Run one AI-backed call at the view boundary.

    Replies with a single user-facing notice and returns None when the app
    is offline, when the same operation is still running for this user, or
    when the call fails.
    """
    message = update.effective_message
    if not connectivity.online:
        await message.reply_text(MSG_OFFLINE)
        return None

    guard: InFlightGuard = context.bot_data["guard"]
    try:
        async with guard.claim((update.effective_user.id, operation)):
            return await call()
    except OperationInProgress:
        await message.reply_text(MSG_BUSY)
    except AIOfflineError:
        await message.reply_text(MSG_OFFLINE)
    except AIError as exc:
        logger.error("%s failed for user %d: %s", operation, update.effective_user.id, exc)
        await message.reply_text(MSG_AI_FAILED)
    return None


def _chunk_lines(lines: list[str], limit: int = _MAX_MESSAGE_CHARS) -> list[str]:
    """Pack lines into messages that stay under Telegram's length limit."""
    chunks: list[str] = []
    current = ""
    for line in lines:
        # A line longer than the limit is split across messages.
        for piece in [line[i:i + limit] for i in range(0, len(line), limit)] or [line]:
            if current and len(current) + len(piece) + 1 > limit:
                chunks.append(current)
                current = ""
            current = f"{current}\n{piece}" if current else piece
    if current:
        chunks.append(current)
    return chunks


async def _reply_long(update: Update, text: str) -> None:
    for chunk in _chunk_lines(text.splitlines()):
        await update.effective_message.reply_text(chunk)


async def _download(context: ContextTypes.DEFAULT_TYPE, file_id: str) -> bytes:
    tg_file = await context.bot.get_file(file_id)
    return bytes(await tg_file.download_as_bytearray())


def _md(text: str) -> str:
    return escape_markdown(text, version=1)


# ---------------------------------------------------------------------------
# Basic commands
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message."""
    store = _store(update, context)
    name = store.profile.name if store.profile else "Guest"
    await update.message.reply_text(
        f"Assalamu alaikum, *{_md(name)}*! Welcome to *Noor Companion*.\n\n"
        "• /today — your daily plan with checklists\n"
        "• /focus — focus timer\n"
        "• /quran, /hadith, /history — learn and reflect\n"
        "• /hub — study backlog and quizzes\n"
        "• /studio — AI chat, images, video and voice\n\n"
        "Use /onboard to set up your profile, or type /help for everything.",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    await update.message.reply_text(
        "*Timeline*\n"
        "/today — View today's plan\n"
        "/plan <request> — Generate a new daily plan\n"
        "/add [title] — Add a manual category\n"
        "/subtasks <id> — Suggest subtasks for a category\n"
        "/suggest — Get suggestions for today\n"
        "/briefing — Morning briefing\n\n"
        "*Focus & learning*\n"
        "/focus — Focus timer\n"
        "/quran [name or number] — Read the Quran\n"
        "/hadith <topic> — Search Hadith\n"
        "/history — Explore Islamic history\n"
        "/hub — Study backlog\n"
        "/backlog [add <topic> | remove <n>]\n"
        "/strategy <n> — Study strategy for a backlog topic\n"
        "/quiz <topic> — Multiple-choice question\n\n"
        "*Studio*\n"
        "/studio — AI tools\n"
        "/chat <prompt>, /newchat, /tool none|search|maps\n"
        "/image [size] [ratio] <prompt>\n"
        "/video [16:9|9:16] <prompt>\n"
        "/speak <text>\n"
        "Send a photo captioned /edit <prompt> to edit it\n"
        "Send a photo, video or audio to analyse or transcribe it\n\n"
        "*Settings*\n"
        "/onboard, /settings, /dock, /weather, /offline, /online",
        parse_mode="Markdown",
    )


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


def _format_schedule(schedule: list[ScheduleItem]) -> str:
    from src.core.timeline import progress

    prog = progress(schedule)
    lines = [f"*Today's plan* — {prog.completed}/{prog.total} done ({prog.percent}%)"]
    for item in schedule:
        alarm = " ⏰" if item.alarm_enabled else ""
        lines.append("")
        lines.append(f"`{item.id}` *{_md(item.title)}* ({_md(item.time)}){alarm}")
        for subtask in item.subtasks:
            mark = "✅" if subtask.completed else "⬜"
            lines.append(f"  {mark} {_md(subtask.text)}")
    return "\n".join(lines)


def _schedule_keyboard(schedule: list[ScheduleItem]) -> InlineKeyboardMarkup:
    rows = []
    for item in schedule:
        for i, subtask in enumerate(item.subtasks):
            mark = "✅" if subtask.completed else "⬜"
            rows.append([
                InlineKeyboardButton(f"{mark} {subtask.text}"[:60], callback_data=f"sub:{item.id}:{i}"),
            ])
        rows.append([
            InlineKeyboardButton(
                f"⏰ {item.title[:20]}: {'on' if item.alarm_enabled else 'off'}",
                callback_data=f"alarm:{item.id}",
            ),
            InlineKeyboardButton(f"🗑 {item.title[:20]}", callback_data=f"delcat:{item.id}"),
        ])
    return InlineKeyboardMarkup(rows)


async def _send_schedule(update: Update, schedule: list[ScheduleItem]) -> None:
    if not schedule:
        await update.effective_message.reply_text("Your plan is empty. Use /plan or /add.")
        return
    await update.effective_message.reply_text(
        _format_schedule(schedule),
        parse_mode="Markdown",
        reply_markup=_schedule_keyboard(schedule),
    )


@authorized_only
async def cmd_today(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /today — show the plan with subtask, alarm and delete buttons."""
    await _send_schedule(update, _store(update, context).schedule)


@authorized_only
async def _handle_schedule_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle sub:<id>:<i>, alarm:<id> and delcat:<id> button taps."""
    from src.core.timeline import delete_category, toggle_alarm, toggle_subtask

    query = update.callback_query
    await query.answer()
    store = _store(update, context)

    parts = query.data.split(":")
    try:
        item_id = int(parts[1])
        if parts[0] == "sub":
            schedule = toggle_subtask(store.schedule, item_id, int(parts[2]))
        elif parts[0] == "alarm":
            schedule = toggle_alarm(store.schedule, item_id)
        else:
            schedule = delete_category(store.schedule, item_id)
    except (KeyError, IndexError, ValueError) as exc:
        logger.warning("Stale schedule button %s: %s", query.data, exc)
        await query.edit_message_text("That item no longer exists. Use /today to refresh.")
        return

    store.set_schedule(schedule)
    if not schedule:
        await query.edit_message_text("Your plan is empty. Use /plan or /add.")
        return
    await query.edit_message_text(
        _format_schedule(schedule),
        parse_mode="Markdown",
        reply_markup=_schedule_keyboard(schedule),
    )


@authorized_only
async def cmd_plan(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /plan <request> — replace the plan with an AI-generated one."""
    from src.core.assistant import generate_daily_schedule

    request = " ".join(context.args or []).strip()
    if not request:
        await update.message.reply_text(
            "Usage: /plan <request>\nExample: /plan a balanced workday with prayers and exercise"
        )
        return

    store = _store(update, context)
    schedule = await _run_ai(
        update, context, "schedule",
        lambda: generate_daily_schedule(request, store.language),
    )
    if schedule is None:
        return
    store.set_schedule(schedule)
    await _send_schedule(update, schedule)


@authorized_only
async def cmd_add(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /add [title] — append a manual category."""
    from src.core.timeline import NEW_CATEGORY_TITLE, add_manual_category

    store = _store(update, context)
    title = " ".join(context.args or []).strip() or NEW_CATEGORY_TITLE
    schedule = add_manual_category(store.schedule, title)
    store.set_schedule(schedule)
    added = schedule[-1]
    await update.message.reply_text(
        f"➕ Added *{_md(added.title)}* (`{added.id}`) at {_md(added.time)}.",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_subtasks(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /subtasks <id> — append AI-suggested subtasks to a category."""
    from src.core.assistant import generate_category_subtasks
    from src.core.timeline import append_subtasks, get_item

    args = context.args
    if not args:
        await update.message.reply_text("Usage: /subtasks <category_id>\nUse /today to see IDs.")
        return

    store = _store(update, context)
    try:
        item = get_item(store.schedule, int(args[0]))
    except (KeyError, ValueError):
        await update.message.reply_text("Category not found. Use /today to see valid IDs.")
        return

    texts = await _run_ai(
        update, context, f"subtasks:{item.id}",
        lambda: generate_category_subtasks(item.title, store.language),
    )
    if texts is None:
        return
    try:
        schedule = append_subtasks(store.schedule, item.id, texts)
    except KeyError:
        await update.message.reply_text("That category was deleted in the meantime.")
        return
    store.set_schedule(schedule)
    await _send_schedule(update, schedule)


@authorized_only
async def cmd_suggest(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /suggest — three personalised suggestions for the day."""
    from src.core.assistant import generate_daily_suggestions

    store = _store(update, context)
    suggestions = await _run_ai(
        update, context, "suggestions",
        lambda: generate_daily_suggestions(store.profile, store.schedule, store.language),
    )
    if suggestions is None:
        return
    lines = ["💡 Suggestions for today:", ""]
    lines.extend(f"• {s}" for s in suggestions)
    await update.message.reply_text("\n".join(lines))


@authorized_only
async def cmd_briefing(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /briefing — on-demand morning briefing."""
    from src.core.assistant import generate_daily_briefing

    store = _store(update, context)
    briefing = await _run_ai(
        update, context, "briefing",
        lambda: generate_daily_briefing(store.profile, store.schedule, store.theme, store.language),
    )
    if briefing is not None:
        await update.message.reply_text(f"☀️ {briefing}")


# ---------------------------------------------------------------------------
# Focus timer
# ---------------------------------------------------------------------------


def _focus_timer(context: ContextTypes.DEFAULT_TYPE) -> FocusTimer:
    from src.core.focus import FocusTimer

    timer = context.user_data.get("focus_timer")
    if timer is None:
        timer = FocusTimer.from_settings()
        context.user_data["focus_timer"] = timer
    return timer


def _focus_text(timer: FocusTimer) -> str:
    mode = "☕ Break" if timer.is_break else "🎯 Focus"
    state = "running" if timer.is_active else "paused"
    return f"{mode}: {timer.display} ({state})"


def _focus_keyboard(timer: FocusTimer) -> InlineKeyboardMarkup:
    label = "⏸ Pause" if timer.is_active else "▶️ Start"
    return InlineKeyboardMarkup([[
        InlineKeyboardButton(label, callback_data="focus:toggle"),
        InlineKeyboardButton("🔄 Reset", callback_data="focus:reset"),
    ]])


def _focus_job_name(user_id: int) -> str:
    return f"focus:{user_id}"


def _stop_focus_job(context: ContextTypes.DEFAULT_TYPE, user_id: int) -> None:
    for job in context.job_queue.get_jobs_by_name(_focus_job_name(user_id)):
        job.schedule_removal()


async def _focus_tick_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Advance one user's focus timer; announce the end of a period."""
    timer: FocusTimer | None = context.user_data.get("focus_timer")
    if timer is None or not timer.is_active:
        context.job.schedule_removal()
        return

    message = timer.tick(FOCUS_TICK_SECONDS)
    if message is None:
        return
    context.job.schedule_removal()
    await context.bot.send_message(
        chat_id=context.job.chat_id,
        text=f"🔔 {message}\n{_focus_text(timer)}",
        reply_markup=_focus_keyboard(timer),
    )


@authorized_only
async def cmd_focus(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /focus — show the timer with start/pause and reset buttons."""
    timer = _focus_timer(context)
    await update.message.reply_text(_focus_text(timer), reply_markup=_focus_keyboard(timer))


@authorized_only
async def _handle_focus_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    user_id = update.effective_user.id
    timer = _focus_timer(context)

    _stop_focus_job(context, user_id)
    if query.data == "focus:reset":
        timer.reset()
    elif timer.toggle():
        context.job_queue.run_repeating(
            _focus_tick_job,
            interval=FOCUS_TICK_SECONDS,
            first=FOCUS_TICK_SECONDS,
            name=_focus_job_name(user_id),
            chat_id=update.effective_chat.id,
            user_id=user_id,
        )

    await query.edit_message_text(_focus_text(timer), reply_markup=_focus_keyboard(timer))


# ---------------------------------------------------------------------------
# Quran
# ---------------------------------------------------------------------------


async def _surah_list(context: ContextTypes.DEFAULT_TYPE) -> list:
    """Surah listing, fetched once and cached for the app's lifetime."""
    from src.integrations.quran_api import list_surahs

    surahs = context.bot_data.get("surahs")
    if surahs is None:
        surahs = await list_surahs()
        context.bot_data["surahs"] = surahs
    return surahs


async def _send_surah(update: Update, context: ContextTypes.DEFAULT_TYPE, number: int) -> None:
    from src.integrations.quran_api import ContentAPIError, get_surah

    store = _store(update, context)
    try:
        ayahs = await get_surah(number, store.language)
    except ContentAPIError as exc:
        logger.error("Quran read error: %s", exc)
        await update.effective_message.reply_text("Couldn't load this surah. Please try again later.")
        return

    lines = [f"📖 Surah {number}", ""]
    for ayah in ayahs:
        lines.append(f"{ayah.number}. {ayah.text}")
        lines.append(ayah.translation)
        lines.append("")
    for chunk in _chunk_lines(lines):
        await update.effective_message.reply_text(chunk)


@authorized_only
async def cmd_quran(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /quran [name or number] — list, search or open a surah."""
    from src.integrations.quran_api import ContentAPIError, filter_surahs

    query_text = " ".join(context.args or []).strip()
    if query_text.isdigit() and 1 <= int(query_text) <= 114:
        await _send_surah(update, context, int(query_text))
        return

    try:
        surahs = await _surah_list(context)
    except ContentAPIError as exc:
        logger.error("Quran list error: %s", exc)
        await update.message.reply_text("Couldn't load the surah list. Please try again later.")
        return

    matches = filter_surahs(surahs, query_text)
    if not matches:
        await update.message.reply_text(f"No surah matches '{query_text}'.")
        return

    if not query_text:
        lines = [
            f"{s.number}. {s.english_name} ({s.english_name_translation}) · {s.number_of_ayahs} ayahs"
            for s in matches
        ]
        lines.append("")
        lines.append("Open one with /quran <number> or search with /quran <name>.")
        for chunk in _chunk_lines(lines):
            await update.message.reply_text(chunk)
        return

    keyboard = [
        [InlineKeyboardButton(f"{s.number}. {s.english_name}", callback_data=f"surah:{s.number}")]
        for s in matches[:30]
    ]
    await update.message.reply_text("Which surah?", reply_markup=InlineKeyboardMarkup(keyboard))


@authorized_only
async def _handle_surah_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    await _send_surah(update, context, int(query.data.split(":")[1]))


# ---------------------------------------------------------------------------
# Hadith & history
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_hadith(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /hadith <topic> — find an authentic hadith."""
    from src.core.assistant import search_hadith

    topic = " ".join(context.args or []).strip()
    if not topic:
        await update.message.reply_text("Usage: /hadith <topic>\nExample: /hadith patience")
        return

    store = _store(update, context)
    result = await _run_ai(update, context, "hadith", lambda: search_hadith(topic, store.language))
    if result is None:
        return
    await _reply_long(
        update,
        f"{result.arabic}\n\n{result.translation}\n\n📚 {result.reference}\n\n{result.explanation}",
    )


@authorized_only
async def cmd_history(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /history — list the eras of Islamic history."""
    from src.data.models import HISTORY_ERAS

    keyboard = [
        [InlineKeyboardButton(f"{era.title} ({era.period})", callback_data=f"era:{era.id}")]
        for era in HISTORY_ERAS
    ]
    await update.message.reply_text(
        "🏛 Choose an era to explore:",
        reply_markup=InlineKeyboardMarkup(keyboard),
    )


@authorized_only
async def _handle_era_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    from src.core.assistant import explore_history
    from src.data.models import HISTORY_ERAS

    query = update.callback_query
    await query.answer()
    era_id = query.data.split(":", 1)[1]
    era = next((e for e in HISTORY_ERAS if e.id == era_id), None)
    if era is None:
        return

    store = _store(update, context)
    summary = await _run_ai(update, context, "history", lambda: explore_history(era.title, store.language))
    if summary is not None:
        await _reply_long(update, f"🏛 {era.title} ({era.period})\n\n{summary}")


# ---------------------------------------------------------------------------
# Hub: backlog, strategies, quizzes
# ---------------------------------------------------------------------------


def _format_backlog(backlog: list[str]) -> str:
    if not backlog:
        return "Your study backlog is empty. Add a topic with /backlog add <topic>."
    lines = ["📚 Study backlog:"]
    lines.extend(f"{i}. {topic}" for i, topic in enumerate(backlog, start=1))
    return "\n".join(lines)


@authorized_only
async def cmd_hub(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /hub — backlog overview and learning tools."""
    store = _store(update, context)
    await update.message.reply_text(
        f"{_format_backlog(store.backlog)}\n\n"
        "/backlog add <topic> · /backlog remove <n>\n"
        "/strategy <n> — study plan for a topic\n"
        "/quiz <topic> — test yourself"
    )


@authorized_only
async def cmd_backlog(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /backlog [add <topic> | remove <n>]."""
    store = _store(update, context)
    args = context.args or []

    if not args:
        await update.message.reply_text(_format_backlog(store.backlog))
        return

    action = args[0].lower()
    if action == "add":
        if not store.add_backlog_item(" ".join(args[1:])):
            await update.message.reply_text("Usage: /backlog add <topic>")
            return
        await update.message.reply_text(_format_backlog(store.backlog))
    elif action == "remove":
        try:
            removed = store.remove_backlog_item(int(args[1]) - 1)
        except (IndexError, ValueError):
            await update.message.reply_text("Usage: /backlog remove <n>\nUse /backlog to see numbers.")
            return
        await update.message.reply_text(f"Removed '{removed}'.\n\n{_format_backlog(store.backlog)}")
    else:
        await update.message.reply_text("Usage: /backlog [add <topic> | remove <n>]")


@authorized_only
async def cmd_strategy(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /strategy <n> — five study steps for a backlog topic."""
    from src.core.assistant import generate_strategy

    store = _store(update, context)
    try:
        topic = store.backlog[int(context.args[0]) - 1]
    except (IndexError, TypeError, ValueError):
        await update.message.reply_text("Usage: /strategy <n>\nUse /backlog to see numbers.")
        return

    steps = await _run_ai(update, context, "strategy", lambda: generate_strategy(topic, store.language))
    if steps is None:
        return
    lines = [f"🧭 Strategy for {topic}:", ""]
    lines.extend(f"{i}. {step}" for i, step in enumerate(steps, start=1))
    await update.message.reply_text("\n".join(lines))


@authorized_only
async def cmd_quiz(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /quiz <topic> — one multiple-choice question."""
    from src.core.assistant import generate_mcq

    topic = " ".join(context.args or []).strip()
    if not topic:
        await update.message.reply_text("Usage: /quiz <topic>\nExample: /quiz the five pillars")
        return

    store = _store(update, context)
    mcq = await _run_ai(update, context, "quiz", lambda: generate_mcq(topic, store.language))
    if mcq is None:
        return

    context.user_data["mcq"] = mcq
    keyboard = [
        [InlineKeyboardButton(option[:60], callback_data=f"quiz:{i}")]
        for i, option in enumerate(mcq.options)
    ]
    await update.message.reply_text(f"❓ {mcq.q}", reply_markup=InlineKeyboardMarkup(keyboard))


@authorized_only
async def _handle_quiz_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    mcq = context.user_data.pop("mcq", None)
    if mcq is None:
        await query.edit_message_text("This question has expired. Start a new one with /quiz.")
        return

    choice = int(query.data.split(":")[1])
    answer = mcq.options[mcq.ans]
    verdict = "✅ Correct!" if mcq.is_correct(choice) else f"❌ Not quite. The answer is: {answer}"
    await query.edit_message_text(f"❓ {mcq.q}\n\n{verdict}")


# ---------------------------------------------------------------------------
# Studio
# ---------------------------------------------------------------------------


def _chat_log(context: ContextTypes.DEFAULT_TYPE) -> ChatLog:
    from src.core.studio import ChatLog

    log = context.user_data.get("chat_log")
    if log is None:
        log = ChatLog()
        context.user_data["chat_log"] = log
    return log


async def _chat(update: Update, context: ContextTypes.DEFAULT_TYPE, prompt: str) -> None:
    from src.core.studio import chat_turn

    store = _store(update, context)
    tool = context.user_data.get("chat_tool", "none")
    reply = await _run_ai(
        update, context, "chat",
        lambda: chat_turn(_chat_log(context), prompt, tool, store.language),
    )
    if reply is not None:
        await _reply_long(update, reply)


@authorized_only
async def cmd_studio(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /studio — list the AI tools."""
    tool = context.user_data.get("chat_tool", "none")
    await update.message.reply_text(
        "✨ AI Studio\n\n"
        f"Chat grounding: {tool} ({len(_chat_log(context))} messages so far)\n\n"
        "/chat <prompt> — or just send any text\n"
        "/newchat — clear the conversation\n"
        "/tool none|search|maps — grounding for chat\n"
        "/image [1K|2K|4K] [1:1|16:9|9:16|4:3|3:4] <prompt>\n"
        "/video [16:9|9:16] <prompt> — or a photo captioned /video <prompt>\n"
        "/speak <text> — text to speech\n"
        "Photo captioned /edit <prompt> — edit the image\n"
        "Any photo, video or audio — analyse or transcribe"
    )


@authorized_only
async def cmd_chat(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /chat <prompt>."""
    prompt = " ".join(context.args or []).strip()
    if not prompt:
        await update.message.reply_text("Usage: /chat <prompt>")
        return
    await _chat(update, context, prompt)


@authorized_only
async def cmd_newchat(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    _chat_log(context).clear()
    await update.message.reply_text("🧹 Conversation cleared.")


@authorized_only
async def cmd_tool(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /tool none|search|maps — choose chat grounding."""
    from src.core.studio import CHAT_TOOLS

    args = context.args
    if not args or args[0].lower() not in CHAT_TOOLS:
        await update.message.reply_text(f"Usage: /tool {'|'.join(CHAT_TOOLS)}")
        return
    context.user_data["chat_tool"] = args[0].lower()
    await update.message.reply_text(f"Chat grounding set to {args[0].lower()}.")


@authorized_only
async def cmd_image(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /image [size] [ratio] <prompt>."""
    from src.core.studio import ASPECT_RATIOS, IMAGE_SIZES, generate_image

    args = list(context.args or [])
    size, ratio = "1K", "1:1"
    if args and args[0].upper() in IMAGE_SIZES:
        size = args.pop(0).upper()
    if args and args[0] in ASPECT_RATIOS:
        ratio = args.pop(0)
    prompt = " ".join(args).strip()
    if not prompt:
        await update.message.reply_text("Usage: /image [1K|2K|4K] [1:1|16:9|9:16|4:3|3:4] <prompt>")
        return

    media = await _run_ai(update, context, "image", lambda: generate_image(prompt, size, ratio))
    if media is not None:
        await update.message.reply_photo(photo=media.data, caption=prompt[:200])


async def _send_video(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    prompt: str,
    aspect_ratio: str,
    image: bytes | None = None,
) -> None:
    from src.core.studio import download_video, generate_video

    async def _generate() -> bytes:
        uri = await generate_video(prompt, aspect_ratio, image=image, image_mime_type="image/jpeg")
        return await download_video(uri)

    await update.effective_message.reply_text("🎬 Generating your video, this can take a few minutes...")
    video = await _run_ai(update, context, "video", _generate)
    if video is not None:
        await update.effective_message.reply_video(video=video, caption=prompt[:200])


@authorized_only
async def cmd_video(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /video [16:9|9:16] <prompt>."""
    from src.core.studio import VIDEO_ASPECT_RATIOS

    args = list(context.args or [])
    ratio = "16:9"
    if args and args[0] in VIDEO_ASPECT_RATIOS:
        ratio = args.pop(0)
    prompt = " ".join(args).strip()
    if not prompt:
        await update.message.reply_text("Usage: /video [16:9|9:16] <prompt>")
        return
    await _send_video(update, context, prompt, ratio)


@authorized_only
async def cmd_speak(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /speak <text> — reply with synthesized speech."""
    from src.core.studio import generate_speech, pcm_to_wav

    text = " ".join(context.args or []).strip()
    if not text:
        await update.message.reply_text("Usage: /speak <text>")
        return

    pcm = await _run_ai(update, context, "speech", lambda: generate_speech(text))
    if pcm is not None:
        await update.message.reply_audio(audio=pcm_to_wav(pcm), filename="speech.wav", title=text[:60])


def _attachment(message: Any) -> tuple[str, str] | None:
    """(file_id, mime_type) of the message's media, if any."""
    if message.photo:
        return message.photo[-1].file_id, "image/jpeg"
    if message.video:
        return message.video.file_id, message.video.mime_type or "video/mp4"
    if message.voice:
        return message.voice.file_id, message.voice.mime_type or "audio/ogg"
    if message.audio:
        return message.audio.file_id, message.audio.mime_type or "audio/mpeg"
    if message.document and message.document.mime_type:
        return message.document.file_id, message.document.mime_type
    return None


@authorized_only
async def handle_media(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle uploaded media.

    A photo captioned /edit or /video is edited or animated; any other
    upload is analysed (images, video) or transcribed (audio).
    """
    from src.core.studio import analyze_media, analyze_upload, edit_image

    message = update.message
    attachment = _attachment(message)
    if attachment is None:
        return
    file_id, mime_type = attachment
    caption = (message.caption or "").strip()
    store = _store(update, context)

    try:
        data = await _download(context, file_id)
    except Exception as exc:
        logger.error("Media download error: %s", exc)
        await message.reply_text("Sorry, I couldn't download that file. Please try again.")
        return

    if message.photo and caption.startswith("/edit"):
        prompt = caption.removeprefix("/edit").strip()
        if not prompt:
            await message.reply_text("Add your instructions after /edit in the caption.")
            return
        media = await _run_ai(update, context, "image_edit", lambda: edit_image(data, mime_type, prompt))
        if media is not None:
            await message.reply_photo(photo=media.data, caption=prompt[:200])
        return

    if message.photo and caption.startswith("/video"):
        prompt = caption.removeprefix("/video").strip() or "Animate this image"
        await _send_video(update, context, prompt, "16:9", image=data)
        return

    result = await _run_ai(
        update, context, "analysis",
        lambda: (
            analyze_media(data, mime_type, caption, store.language) if caption
            else analyze_upload(data, mime_type, store.language)
        ),
    )
    if result is not None:
        await _reply_long(update, result)


@authorized_only
async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle plain text messages.

    A pending /settings name or location edit takes the text first;
    anything else is free chat with the studio.
    """
    field = context.user_data.pop("settings_edit", None)
    if field is not None:
        await _apply_profile_edit(update, context, field, update.message.text)
        return
    await _chat(update, context, update.message.text)


async def _apply_profile_edit(
    update: Update, context: ContextTypes.DEFAULT_TYPE, field: str, value: str,
) -> None:
    from src.core.onboarding import OnboardingError, edit_profile

    store = _store(update, context)
    try:
        profile = edit_profile(store.profile, field, value)
    except OnboardingError as exc:
        context.user_data["settings_edit"] = field
        await update.message.reply_text(str(exc))
        return
    store.set_profile(profile)
    logger.info("User %d changed their %s", update.effective_user.id, field)
    await update.message.reply_text(_settings_text(store), reply_markup=_settings_keyboard())


# ---------------------------------------------------------------------------
# Settings & dock
# ---------------------------------------------------------------------------

_SETTING_KINDS = ("lang", "theme", "nav")
_PROFILE_FIELDS = ("name", "location")


def _setting_options(kind: str) -> list[str]:
    from src.data.models import NAV_SIZES, SUPPORTED_LANGUAGES, SUPPORTED_THEMES

    return {
        "lang": SUPPORTED_LANGUAGES,
        "theme": list(SUPPORTED_THEMES),
        "nav": NAV_SIZES,
    }[kind]


def _settings_text(store: AppStore) -> str:
    from src.data.models import RTL_LANGUAGES, SUPPORTED_THEMES

    direction = " (right-to-left)" if store.language in RTL_LANGUAGES else ""
    profile = store.profile
    return (
        "⚙️ Settings\n\n"
        f"Name: {profile.name if profile else 'Guest'}\n"
        f"Location: {profile.location if profile else '-'}\n"
        f"Language: {store.language}{direction}\n"
        f"Theme: {SUPPORTED_THEMES[store.theme]}\n"
        f"Nav size: {store.nav_size}"
    )


def _settings_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[
        InlineKeyboardButton("🌐 Language", callback_data="setmenu:lang"),
        InlineKeyboardButton("🎨 Theme", callback_data="setmenu:theme"),
        InlineKeyboardButton("📏 Nav size", callback_data="setmenu:nav"),
    ], [
        InlineKeyboardButton("👤 Name", callback_data="setmenu:name"),
        InlineKeyboardButton("📍 Location", callback_data="setmenu:location"),
    ]])


def _options_keyboard(kind: str) -> InlineKeyboardMarkup:
    from src.data.models import SUPPORTED_THEMES

    options = _setting_options(kind)
    buttons = [
        InlineKeyboardButton(
            SUPPORTED_THEMES[option] if kind == "theme" else option,
            callback_data=f"set:{kind}:{option}",
        )
        for option in options
    ]
    rows = [buttons[i:i + 3] for i in range(0, len(buttons), 3)]
    rows.append([InlineKeyboardButton("⬅️ Back", callback_data="setmenu:root")])
    return InlineKeyboardMarkup(rows)


@authorized_only
async def cmd_settings(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /settings — profile name and location, language, theme and nav size."""
    store = _store(update, context)
    await update.message.reply_text(_settings_text(store), reply_markup=_settings_keyboard())


@authorized_only
async def _handle_settings_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle setmenu:<kind> and set:<kind>:<value> taps."""
    query = update.callback_query
    await query.answer()
    store = _store(update, context)
    parts = query.data.split(":", 2)

    if parts[0] == "setmenu":
        if parts[1] in _PROFILE_FIELDS:
            context.user_data["settings_edit"] = parts[1]
            await query.edit_message_text(f"Send your new {parts[1]}.")
        elif parts[1] in _SETTING_KINDS:
            await query.edit_message_text(_settings_text(store), reply_markup=_options_keyboard(parts[1]))
        else:
            await query.edit_message_text(_settings_text(store), reply_markup=_settings_keyboard())
        return

    kind, value = parts[1], parts[2]
    setters = {"lang": store.set_language, "theme": store.set_theme, "nav": store.set_nav_size}
    try:
        setters[kind](value)
    except (KeyError, ValueError) as exc:
        logger.warning("Rejected setting %s: %s", query.data, exc)
        return
    await query.edit_message_text(_settings_text(store), reply_markup=_settings_keyboard())


def _dock_text(items: list[DockItem]) -> str:
    lines = ["🧭 Navigation dock:"]
    for i, item in enumerate(items, start=1):
        state = "👁" if item.is_visible else "🚫"
        lines.append(f"{i}. {state} {item.id.value.title()}")
    return "\n".join(lines)


def _dock_keyboard(items: list[DockItem]) -> InlineKeyboardMarkup:
    rows = []
    for i, item in enumerate(items):
        rows.append([
            InlineKeyboardButton(item.id.value.title(), callback_data=f"dock:toggle:{i}"),
            InlineKeyboardButton("⬆️", callback_data=f"dock:up:{i}"),
            InlineKeyboardButton("⬇️", callback_data=f"dock:down:{i}"),
        ])
    return InlineKeyboardMarkup(rows)


@authorized_only
async def cmd_dock(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /dock — reorder and show/hide navigation entries."""
    items = _store(update, context).dock_items
    await update.message.reply_text(_dock_text(items), reply_markup=_dock_keyboard(items))


@authorized_only
async def _handle_dock_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    from src.core.dock import DockLayoutError, move_dock_item, toggle_dock_item

    query = update.callback_query
    store = _store(update, context)
    _, action, index = query.data.split(":")

    try:
        if action == "toggle":
            items = toggle_dock_item(store.dock_items, int(index))
        else:
            items = move_dock_item(store.dock_items, int(index), action)
    except DockLayoutError as exc:
        await query.answer(str(exc), show_alert=True)
        return
    except (IndexError, ValueError) as exc:
        logger.warning("Stale dock button %s: %s", query.data, exc)
        await query.answer()
        return

    await query.answer()
    if items == store.dock_items:
        return  # no-op move at either end
    store.set_dock_items(items)
    await query.edit_message_text(_dock_text(items), reply_markup=_dock_keyboard(items))


# ---------------------------------------------------------------------------
# Onboarding conversation
# ---------------------------------------------------------------------------

ONBOARD_NAME, ONBOARD_GENDER, ONBOARD_DOB, ONBOARD_LOCATION = range(4)


@authorized_only
async def cmd_onboard(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Handle /onboard — start profile creation."""
    context.user_data["onboard"] = {}
    await update.message.reply_text(
        "Let's set up your profile. What's your name?\n(/skip to continue as Guest, /cancel to stop)"
    )
    return ONBOARD_NAME


async def onboard_name(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    from src.data.models import GENDERS

    context.user_data["onboard"]["name"] = update.message.text.strip()
    await update.message.reply_text(
        "Gender?",
        reply_markup=ReplyKeyboardMarkup([GENDERS], one_time_keyboard=True, resize_keyboard=True),
    )
    return ONBOARD_GENDER


async def onboard_gender(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    from src.core.onboarding import MSG_INVALID_GENDER
    from src.data.models import GENDERS

    gender = update.message.text.strip().title()
    if gender not in GENDERS:
        await update.message.reply_text(MSG_INVALID_GENDER)
        return ONBOARD_GENDER
    context.user_data["onboard"]["gender"] = gender
    await update.message.reply_text(
        "Date of birth? (YYYY-MM-DD)",
        reply_markup=ReplyKeyboardRemove(),
    )
    return ONBOARD_DOB


async def onboard_dob(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    from src.core.onboarding import OnboardingError, check_birth_date

    dob = update.message.text.strip()
    try:
        check_birth_date(dob)
    except OnboardingError as exc:
        await update.message.reply_text(str(exc))
        return ONBOARD_DOB
    context.user_data["onboard"]["dob"] = dob
    await update.message.reply_text("Where are you based? (City, Country)")
    return ONBOARD_LOCATION


async def onboard_location(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    from src.core.onboarding import OnboardingError, validate_profile
    from src.data.models import UserProfile

    draft = context.user_data["onboard"]
    try:
        profile = await validate_profile(UserProfile(
            name=draft["name"],
            gender=draft["gender"],
            dob=draft["dob"],
            location=update.message.text.strip(),
        ))
    except OnboardingError as exc:
        await update.message.reply_text(str(exc))
        return ONBOARD_LOCATION

    _store(update, context).set_profile(profile)
    context.user_data.pop("onboard", None)
    logger.info("User %d onboarded", update.effective_user.id)
    await update.message.reply_text(
        f"✅ Welcome, {profile.name}! Your profile is saved. Try /today or /plan."
    )
    return ConversationHandler.END


async def onboard_skip(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    from src.core.onboarding import skip_onboarding

    _store(update, context).set_profile(skip_onboarding())
    context.user_data.pop("onboard", None)
    await update.message.reply_text("Continuing as Guest.", reply_markup=ReplyKeyboardRemove())
    return ConversationHandler.END


async def onboard_cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data.pop("onboard", None)
    await update.message.reply_text("Onboarding cancelled.", reply_markup=ReplyKeyboardRemove())
    return ConversationHandler.END


# ---------------------------------------------------------------------------
# Weather & connectivity
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_weather(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /weather — ask for a one-shot location share."""
    keyboard = ReplyKeyboardMarkup(
        [[KeyboardButton("📍 Share location", request_location=True)]],
        one_time_keyboard=True,
        resize_keyboard=True,
    )
    await update.message.reply_text("Share your location to see the weather.", reply_markup=keyboard)


@authorized_only
async def handle_location(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle a shared location — reply with current weather."""
    from src.integrations.weather import fetch_weather

    location = update.message.location
    weather = await fetch_weather(location.latitude, location.longitude)
    if weather is None:
        await update.message.reply_text("Weather is unavailable right now.", reply_markup=ReplyKeyboardRemove())
        return
    await update.message.reply_text(
        f"🌤 {weather.temp}°C, {weather.condition}",
        reply_markup=ReplyKeyboardRemove(),
    )


@authorized_only
async def cmd_offline(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    connectivity.set_online(False)
    await update.message.reply_text(MSG_OFFLINE)


@authorized_only
async def cmd_online(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    connectivity.set_online(True)
    await update.message.reply_text("📶 Back online. AI features are available again.")


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(
    registry: StoreRegistry | None = None,
    notifier: NotificationPort | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        registry: Per-user state registry. Defaults to one backed by DATABASE_PATH.
        notifier: Notification port implementation. Defaults to TelegramNotifier
                  (created from the bot instance after app is built).
    """
    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).concurrent_updates(True).build()

    if registry is None:
        from src.data.store import StoreRegistry
        registry = StoreRegistry()

    if notifier is None:
        from src.adapters.telegram_notifier import TelegramNotifier
        notifier = TelegramNotifier(app.bot)

    app.bot_data["registry"] = registry
    app.bot_data["notifier"] = notifier
    app.bot_data["guard"] = InFlightGuard()

    # /onboard conversation handler
    _text = filters.TEXT & ~filters.COMMAND
    onboard_conv = ConversationHandler(
        entry_points=[CommandHandler("onboard", cmd_onboard)],
        states={
            ONBOARD_NAME: [MessageHandler(_text, onboard_name)],
            ONBOARD_GENDER: [MessageHandler(_text, onboard_gender)],
            ONBOARD_DOB: [MessageHandler(_text, onboard_dob)],
            ONBOARD_LOCATION: [MessageHandler(_text, onboard_location)],
        },
        fallbacks=[
            CommandHandler("skip", onboard_skip),
            CommandHandler("cancel", onboard_cancel),
        ],
    )
    app.add_handler(onboard_conv)

    # Commands
    commands = {
        "start": cmd_start, "help": cmd_help,
        "today": cmd_today, "plan": cmd_plan, "add": cmd_add,
        "subtasks": cmd_subtasks, "suggest": cmd_suggest, "briefing": cmd_briefing,
        "focus": cmd_focus, "quran": cmd_quran, "hadith": cmd_hadith,
        "history": cmd_history, "hub": cmd_hub, "backlog": cmd_backlog,
        "strategy": cmd_strategy, "quiz": cmd_quiz,
        "studio": cmd_studio, "chat": cmd_chat, "newchat": cmd_newchat,
        "tool": cmd_tool, "image": cmd_image, "video": cmd_video, "speak": cmd_speak,
        "settings": cmd_settings, "dock": cmd_dock, "weather": cmd_weather,
        "offline": cmd_offline, "online": cmd_online,
    }
    for name, handler in commands.items():
        app.add_handler(CommandHandler(name, handler))

    # Inline keyboards
    app.add_handler(CallbackQueryHandler(_handle_schedule_callback, pattern=r"^(sub|alarm|delcat):"))
    app.add_handler(CallbackQueryHandler(_handle_focus_callback, pattern=r"^focus:"))
    app.add_handler(CallbackQueryHandler(_handle_surah_callback, pattern=r"^surah:\d+$"))
    app.add_handler(CallbackQueryHandler(_handle_era_callback, pattern=r"^era:"))
    app.add_handler(CallbackQueryHandler(_handle_quiz_callback, pattern=r"^quiz:\d+$"))
    app.add_handler(CallbackQueryHandler(_handle_settings_callback, pattern=r"^(setmenu|set):"))
    app.add_handler(CallbackQueryHandler(_handle_dock_callback, pattern=r"^dock:(toggle|up|down):\d+$"))

    # Media, locations and free chat
    app.add_handler(MessageHandler(
        filters.PHOTO | filters.VIDEO | filters.VOICE | filters.AUDIO | filters.Document.ALL,
        handle_media,
    ))
    app.add_handler(MessageHandler(filters.LOCATION, handle_location))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))

    _setup_morning_briefing(app, registry, notifier)
    _setup_alarm_checks(app, registry, notifier)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def _setup_morning_briefing(
    app: Application,
    registry: StoreRegistry,
    notifier: NotificationPort,
) -> None:
    """Register the daily morning briefing job."""
    from src.core.scheduler import send_morning_briefing

    tz = ZoneInfo(settings.TIMEZONE)
    briefing_time = dt_time(hour=settings.MORNING_BRIEFING_HOUR, minute=0, tzinfo=tz)

    async def _morning_job_callback(context: ContextTypes.DEFAULT_TYPE) -> None:
        await send_morning_briefing(notifier, registry)

    app.job_queue.run_daily(
        _morning_job_callback,
        time=briefing_time,
        name="morning_briefing",
    )

    logger.info(
        "Morning briefing scheduled at %02d:00 %s",
        settings.MORNING_BRIEFING_HOUR,
        settings.TIMEZONE,
    )


def _setup_alarm_checks(
    app: Application,
    registry: StoreRegistry,
    notifier: NotificationPort,
) -> None:
    """Register the once-a-minute category alarm check, aligned to the minute."""
    from src.core.scheduler import send_due_alarms

    tz = ZoneInfo(settings.TIMEZONE)

    async def _alarm_job_callback(context: ContextTypes.DEFAULT_TYPE) -> None:
        await send_due_alarms(notifier, registry, datetime.now(tz))

    now = datetime.now(tz)
    app.job_queue.run_repeating(
        _alarm_job_callback,
        interval=ALARM_CHECK_SECONDS,
        first=ALARM_CHECK_SECONDS - now.second - now.microsecond / 1_000_000,
        name="alarm_checks",
    )


def main() -> None:
    """Entry point: build the app and start polling."""
    logger.info("Starting Noor Companion bot...")
    app = build_app()
    app.run_polling()
