"""
Noor Companion — Focus Mode.

A pomodoro timer: a focus session followed by a short break, alternating.
The timer is a plain state holder advanced by `tick()`; the bot drives it
with a one-second repeating job while it is running.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MSG_SESSION_COMPLETE = "Session complete! Time for a short break."
MSG_BACK_TO_FOCUS = "Break over. Back to focus!"


@dataclass
class FocusTimer:
    """Focus/break countdown in whole seconds."""

    focus_seconds: int = 25 * 60
    break_seconds: int = 5 * 60
    remaining: int = 0
    is_active: bool = False
    is_break: bool = False

    def __post_init__(self) -> None:
        if self.remaining <= 0:
            self.remaining = self.focus_seconds

    @classmethod
    def from_settings(cls) -> FocusTimer:
        from src.config import settings

        return cls(
            focus_seconds=settings.FOCUS_MINUTES * 60,
            break_seconds=settings.BREAK_MINUTES * 60,
        )

    @property
    def period_seconds(self) -> int:
        return self.break_seconds if self.is_break else self.focus_seconds

    @property
    def display(self) -> str:
        minutes, seconds = divmod(self.remaining, 60)
        return f"{minutes}:{seconds:02d}"

    @property
    def progress(self) -> float:
        """Fraction of the current period still remaining (1.0 → 0.0)."""
        return self.remaining / self.period_seconds

    def toggle(self) -> bool:
        self.is_active = not self.is_active
        return self.is_active

    def reset(self) -> None:
        self.is_active = False
        self.is_break = False
        self.remaining = self.focus_seconds

    def tick(self, seconds: int = 1) -> str | None:
        """Advance the countdown.

        Returns the completion message when the period ends; the timer then
        switches mode, reloads the matching length and pauses.
        """
        if not self.is_active:
            return None

        self.remaining = max(0, self.remaining - seconds)
        if self.remaining > 0:
            return None

        message = MSG_BACK_TO_FOCUS if self.is_break else MSG_SESSION_COMPLETE
        self.is_break = not self.is_break
        self.remaining = self.period_seconds
        self.is_active = False
        logger.info("Focus period finished, next: %s", "break" if self.is_break else "focus")
        return message
