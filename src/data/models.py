"""
Noor Companion — Data Models.

The Memory pillar: everything the user owns (profile, schedule, backlog,
preferences, dock layout) is a flat record persisted as JSON in the local
key-value store. No record has identity beyond its stored fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Tab(str, Enum):
    """A navigable view of the app."""

    TIMELINE = "timeline"
    FOCUS = "focus"
    QURAN = "quran"
    HADITH = "hadith"
    HISTORY = "history"
    HUB = "hub"
    STUDIO = "studio"


SUPPORTED_LANGUAGES: list[str] = [
    "English", "Urdu", "Arabic", "Pashto", "Spanish", "French", "German",
    "Hindi", "Bengali", "Chinese", "Russian", "Portuguese", "Turkish",
]

RTL_LANGUAGES = frozenset({"Urdu", "Arabic", "Pashto"})

# Theme id → display label
SUPPORTED_THEMES: dict[str, str] = {
    "Standard": "Modern Dark",
    "Ramadan": "Blessed Ramadan",
    "Eid": "Festive Eid",
    "Hajj": "Pure Hajj",
    "Nocturnal": "Deep Night",
}

NAV_SIZES: list[str] = ["Small", "Medium", "Large"]

GENDERS: list[str] = ["Male", "Female", "Other"]


@dataclass
class UserProfile:
    """The person using the companion. Created once at onboarding."""

    name: str
    gender: str            # "Male" | "Female" | "Other"
    dob: str               # ISO date YYYY-MM-DD
    location: str          # free text, e.g. "London, UK"
    onboarded: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> UserProfile:
        return cls(
            name=data["name"],
            gender=data.get("gender", "Male"),
            dob=data.get("dob", ""),
            location=data.get("location", ""),
            onboarded=bool(data.get("onboarded", False)),
        )


@dataclass
class Subtask:
    """One checklist entry inside a schedule category."""

    text: str
    completed: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> Subtask:
        return cls(text=data["text"], completed=bool(data.get("completed", False)))


@dataclass
class ScheduleItem:
    """A titled, timed block of the day's plan with a checklist.

    Insertion order in the schedule list is display order.
    """

    id: int
    title: str                     # e.g. "Morning Rituals"
    time: str                      # display range, e.g. "07:00 – 08:00"
    icon: str                      # e.g. "fa-sun"
    color: str                     # e.g. "text-amber-500"
    bg: str                        # e.g. "bg-amber-50"
    subtasks: list[Subtask] = field(default_factory=list)
    alarm_enabled: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> ScheduleItem:
        return cls(
            id=int(data["id"]),
            title=data["title"],
            time=data.get("time", ""),
            icon=data.get("icon", ""),
            color=data.get("color", ""),
            bg=data.get("bg", ""),
            subtasks=[Subtask.from_dict(s) for s in data.get("subtasks", [])],
            alarm_enabled=bool(data.get("alarm_enabled", False)),
        )


@dataclass
class DockItem:
    """One destination in the persistent navigation bar."""

    id: Tab
    icon: str
    is_visible: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> DockItem:
        return cls(
            id=Tab(data["id"]),
            icon=data.get("icon", ""),
            is_visible=bool(data.get("is_visible", True)),
        )


@dataclass
class NavPosition:
    """Screen position of the draggable navigation widget."""

    x: int = 24
    y: int = 112

    @classmethod
    def from_dict(cls, data: dict) -> NavPosition:
        return cls(x=int(data["x"]), y=int(data["y"]))


@dataclass
class HistoryEra:
    """A browsable era of Islamic history."""

    id: str
    title: str
    period: str
    icon: str


# ---------------------------------------------------------------------------
# Defaults used when nothing is stored yet
# ---------------------------------------------------------------------------


def default_profile() -> UserProfile:
    """The Guest profile used when onboarding is skipped or nothing is stored."""
    return UserProfile(
        name="Guest",
        gender="Male",
        dob="2000-01-01",
        location="Earth",
        onboarded=True,
    )


def initial_schedule() -> list[ScheduleItem]:
    return [
        ScheduleItem(
            id=1,
            title="Morning Rituals",
            time="07:00 – 08:00",
            icon="fa-sun",
            color="text-amber-500",
            bg="bg-amber-50",
            subtasks=[
                Subtask(text="Wake up & Hydrate"),
                Subtask(text="Gratitude & Mindfulness"),
            ],
        )
    ]


def default_dock_items() -> list[DockItem]:
    return [
        DockItem(id=Tab.TIMELINE, icon="fa-calendar-day"),
        DockItem(id=Tab.FOCUS, icon="fa-clock"),
        DockItem(id=Tab.STUDIO, icon="fa-wand-magic-sparkles"),
        DockItem(id=Tab.QURAN, icon="fa-book-quran"),
        DockItem(id=Tab.HADITH, icon="fa-scroll"),
        DockItem(id=Tab.HISTORY, icon="fa-landmark"),
        DockItem(id=Tab.HUB, icon="fa-layer-group"),
    ]


HISTORY_ERAS: list[HistoryEra] = [
    HistoryEra(id="creation", title="Prophets & Creation", period="Start of Time", icon="fa-earth-asia"),
    HistoryEra(id="seerah", title="Life of Prophet (PBUH)", period="570 - 632 CE", icon="fa-kaaba"),
    HistoryEra(id="rashidun", title="Rashidun Caliphate", period="632 - 661 CE", icon="fa-flag"),
    HistoryEra(id="umayyad", title="Umayyad Empire", period="661 - 750 CE", icon="fa-mosque"),
    HistoryEra(id="abbasid", title="Abbasid Golden Age", period="750 - 1258 CE", icon="fa-flask"),
    HistoryEra(id="ottoman", title="The Ottoman State", period="1299 - 1922 CE", icon="fa-chess-rook"),
]
