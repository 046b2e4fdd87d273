"""
Noor Companion — Timeline Operations.

Pure functions over the day's schedule. Each returns a new list and never
mutates its input, so the caller can hand the result straight to
AppStore.set_schedule().
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, replace
from datetime import time as dt_time

from src.data.models import ScheduleItem, Subtask

logger = logging.getLogger(__name__)

NEW_CATEGORY_TITLE = "New Category"
NEW_CATEGORY_TIME = "12:00 – 13:00"
NEW_CATEGORY_PLACEHOLDER = "Tap to edit tasks"

_START_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})")


@dataclass
class Progress:
    """Completion figures shown in the header."""

    completed: int
    total: int

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 0
        return round(self.completed / self.total * 100)


def _find_index(schedule: list[ScheduleItem], item_id: int) -> int:
    for i, item in enumerate(schedule):
        if item.id == item_id:
            return i
    raise KeyError(f"Schedule item {item_id} not found")


def get_item(schedule: list[ScheduleItem], item_id: int) -> ScheduleItem:
    """Return the item with this id. Raises KeyError if absent."""
    return schedule[_find_index(schedule, item_id)]


def toggle_subtask(schedule: list[ScheduleItem], item_id: int, index: int) -> list[ScheduleItem]:
    """Flip the completed flag of one subtask. Toggling twice is a no-op."""
    pos = _find_index(schedule, item_id)
    item = schedule[pos]
    if not 0 <= index < len(item.subtasks):
        raise IndexError(f"Subtask {index} out of range for item {item_id}")

    subtasks = list(item.subtasks)
    subtasks[index] = replace(subtasks[index], completed=not subtasks[index].completed)

    updated = list(schedule)
    updated[pos] = replace(item, subtasks=subtasks)
    return updated


def toggle_alarm(schedule: list[ScheduleItem], item_id: int) -> list[ScheduleItem]:
    pos = _find_index(schedule, item_id)
    updated = list(schedule)
    updated[pos] = replace(schedule[pos], alarm_enabled=not schedule[pos].alarm_enabled)
    return updated


def _next_id(schedule: list[ScheduleItem]) -> int:
    """Millisecond timestamp id, bumped past any id already in use."""
    new_id = int(time.time() * 1000)
    taken = {item.id for item in schedule}
    while new_id in taken:
        new_id += 1
    return new_id


def add_manual_category(
    schedule: list[ScheduleItem], title: str = NEW_CATEGORY_TITLE,
) -> list[ScheduleItem]:
    """Append a placeholder category with one placeholder subtask."""
    item = ScheduleItem(
        id=_next_id(schedule),
        title=title.strip() or NEW_CATEGORY_TITLE,
        time=NEW_CATEGORY_TIME,
        icon="fa-book",
        color="text-blue-500",
        bg="bg-blue-50",
        subtasks=[Subtask(text=NEW_CATEGORY_PLACEHOLDER)],
    )
    logger.info("Manual category added: #%d '%s'", item.id, item.title)
    return [*schedule, item]


def delete_category(schedule: list[ScheduleItem], item_id: int) -> list[ScheduleItem]:
    _find_index(schedule, item_id)
    return [item for item in schedule if item.id != item_id]


def append_subtasks(
    schedule: list[ScheduleItem], item_id: int, texts: list[str],
) -> list[ScheduleItem]:
    """Append uncompleted subtasks (e.g. AI suggestions) to one category."""
    pos = _find_index(schedule, item_id)
    item = schedule[pos]
    new_subtasks = [Subtask(text=t) for t in texts if t.strip()]
    updated = list(schedule)
    updated[pos] = replace(item, subtasks=[*item.subtasks, *new_subtasks])
    return updated


def progress(schedule: list[ScheduleItem]) -> Progress:
    total = sum(len(item.subtasks) for item in schedule)
    completed = sum(1 for item in schedule for s in item.subtasks if s.completed)
    return Progress(completed=completed, total=total)


def parse_start_time(time_range: str) -> dt_time | None:
    """Extract the start time from a display range like "07:00 – 08:00"."""
    match = _START_TIME_RE.match(time_range or "")
    if match is None:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return dt_time(hour=hour, minute=minute)
