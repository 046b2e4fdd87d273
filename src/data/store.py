"""
Noor Companion — Application State Owner.

One AppStore per user owns every persisted slot. Each slot is read once at
construction (falling back to a hardcoded default when absent or
unreadable) and exposed through an explicit getter/setter pair. Every
setter rewrites exactly its own entry, synchronously. There is no
multi-slot transaction: the last writer wins.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Any, Callable, TypeVar

from src.data.db import StateDB
from src.data.models import (
    NAV_SIZES,
    SUPPORTED_LANGUAGES,
    SUPPORTED_THEMES,
    DockItem,
    NavPosition,
    ScheduleItem,
    UserProfile,
    default_dock_items,
    default_profile,
    initial_schedule,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Entry names in the key-value store
KEY_PROFILE = "user_profile_os_v2"
KEY_SCHEDULE = "future_os_schedule_v2"
KEY_BACKLOG = "future_os_backlog_v2"
KEY_LANGUAGE = "app_language"
KEY_THEME = "app_theme"
KEY_NAV_SIZE = "app_nav_size"
KEY_DOCK_ITEMS = "app_dock_items"
KEY_NAV_POSITION = "nav_position"

ALL_KEYS = (
    KEY_PROFILE, KEY_SCHEDULE, KEY_BACKLOG, KEY_LANGUAGE,
    KEY_THEME, KEY_NAV_SIZE, KEY_DOCK_ITEMS, KEY_NAV_POSITION,
)


def _dock_to_json(items: list[DockItem]) -> list[dict]:
    return [
        {"id": item.id.value, "icon": item.icon, "is_visible": item.is_visible}
        for item in items
    ]


class AppStore:
    """Single owner of a user's persisted application state."""

    def __init__(self, user_id: int, db: StateDB) -> None:
        self.user_id = user_id
        self._db = db

        self._profile: UserProfile | None = self._load(
            KEY_PROFILE, UserProfile.from_dict, default_profile,
        )
        self._schedule: list[ScheduleItem] = self._load(
            KEY_SCHEDULE,
            lambda raw: [ScheduleItem.from_dict(d) for d in raw],
            initial_schedule,
        )
        self._backlog: list[str] = self._load(
            KEY_BACKLOG, lambda raw: [str(t) for t in raw], list,
        )
        self._language: str = self._load(
            KEY_LANGUAGE, lambda raw: _choice(raw, SUPPORTED_LANGUAGES), lambda: "English",
        )
        self._theme: str = self._load(
            KEY_THEME, lambda raw: _choice(raw, list(SUPPORTED_THEMES)), lambda: "Standard",
        )
        self._nav_size: str = self._load(
            KEY_NAV_SIZE, lambda raw: _choice(raw, NAV_SIZES), lambda: "Medium",
        )
        self._dock_items: list[DockItem] = self._load(
            KEY_DOCK_ITEMS,
            lambda raw: [DockItem.from_dict(d) for d in raw],
            default_dock_items,
        )
        self._nav_position: NavPosition = self._load(
            KEY_NAV_POSITION, NavPosition.from_dict, NavPosition,
        )

    # ------------------------------------------------------------------
    # Loading / writing
    # ------------------------------------------------------------------

    def _load(
        self,
        key: str,
        decode: Callable[[Any], T],
        default: Callable[[], T],
    ) -> T:
        """Read one entry, decoding it or falling back to the default."""
        try:
            raw = self._db.get(self.user_id, key)
        except json.JSONDecodeError as exc:
            logger.warning("Unreadable state entry %s for user %d: %s", key, self.user_id, exc)
            return default()
        if raw is None:
            return default()
        try:
            return decode(raw)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Malformed state entry %s for user %d: %s", key, self.user_id, exc)
            return default()

    def _write(self, key: str, value: Any) -> None:
        self._db.set(self.user_id, key, value)

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    @property
    def profile(self) -> UserProfile | None:
        return self._profile

    def set_profile(self, profile: UserProfile) -> None:
        self._profile = profile
        self._write(KEY_PROFILE, asdict(profile))

    @property
    def is_onboarded(self) -> bool:
        return self._profile is not None and self._profile.onboarded

    # ------------------------------------------------------------------
    # Schedule
    # ------------------------------------------------------------------

    @property
    def schedule(self) -> list[ScheduleItem]:
        return self._schedule

    def set_schedule(self, schedule: list[ScheduleItem]) -> None:
        self._schedule = list(schedule)
        self._write(KEY_SCHEDULE, [asdict(item) for item in self._schedule])

    # ------------------------------------------------------------------
    # Backlog
    # ------------------------------------------------------------------

    @property
    def backlog(self) -> list[str]:
        return self._backlog

    def set_backlog(self, backlog: list[str]) -> None:
        self._backlog = list(backlog)
        self._write(KEY_BACKLOG, self._backlog)

    def add_backlog_item(self, topic: str) -> bool:
        """Append a trimmed topic. Blank topics are ignored."""
        topic = topic.strip()
        if not topic:
            return False
        self.set_backlog([*self._backlog, topic])
        return True

    def remove_backlog_item(self, index: int) -> str:
        """Remove the topic at index. Raises IndexError when out of range."""
        if not 0 <= index < len(self._backlog):
            raise IndexError(f"Backlog index {index} out of range")
        removed = self._backlog[index]
        self.set_backlog([t for i, t in enumerate(self._backlog) if i != index])
        return removed

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    @property
    def language(self) -> str:
        return self._language

    def set_language(self, language: str) -> None:
        self._language = _choice(language, SUPPORTED_LANGUAGES)
        self._write(KEY_LANGUAGE, self._language)

    @property
    def theme(self) -> str:
        return self._theme

    def set_theme(self, theme: str) -> None:
        self._theme = _choice(theme, list(SUPPORTED_THEMES))
        self._write(KEY_THEME, self._theme)

    @property
    def nav_size(self) -> str:
        return self._nav_size

    def set_nav_size(self, nav_size: str) -> None:
        self._nav_size = _choice(nav_size, NAV_SIZES)
        self._write(KEY_NAV_SIZE, self._nav_size)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @property
    def dock_items(self) -> list[DockItem]:
        return self._dock_items

    def set_dock_items(self, items: list[DockItem]) -> None:
        self._dock_items = list(items)
        self._write(KEY_DOCK_ITEMS, _dock_to_json(self._dock_items))

    @property
    def nav_position(self) -> NavPosition:
        return self._nav_position

    def set_nav_position(self, position: NavPosition) -> None:
        self._nav_position = position
        self._write(KEY_NAV_POSITION, asdict(position))


def _choice(value: Any, allowed: list[str]) -> str:
    """Return value if it is one of the allowed strings, else raise ValueError."""
    if value not in allowed:
        raise ValueError(f"{value!r} is not one of {', '.join(allowed)}")
    return value


class StoreRegistry:
    """Hands out one AppStore per user, backed by a shared StateDB."""

    def __init__(self, db: StateDB | None = None) -> None:
        self._db = db or StateDB()
        self._stores: dict[int, AppStore] = {}

    @property
    def db(self) -> StateDB:
        return self._db

    def get(self, user_id: int) -> AppStore:
        store = self._stores.get(user_id)
        if store is None:
            store = AppStore(user_id, self._db)
            self._stores[user_id] = store
        return store

    def known_user_ids(self) -> list[int]:
        return sorted(set(self._db.list_user_ids()) | set(self._stores))
