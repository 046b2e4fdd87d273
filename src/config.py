"""
Noor Companion — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # LLM — provider-agnostic text calls (gemini, anthropic, openai, cohere)
    LLM_PROVIDER: str = "gemini"
    LLM_MODEL: str = ""          # empty → smart default per provider
    LLM_API_KEY: str

    # Gemini — media, grounding and live voice always go to Gemini
    GEMINI_API_KEY: str = ""     # empty → LLM_API_KEY

    # SQLite key-value state
    DATABASE_PATH: str = "data/companion.db"

    # Security
    ALLOWED_USER_IDS: list[int] = []

    # Morning Briefing
    MORNING_BRIEFING_HOUR: int = 7
    TIMEZONE: str = "UTC"

    # Content APIs
    QURAN_API_URL: str = "https://api.alquran.cloud/v1"
    WEATHER_API_URL: str = "https://api.open-meteo.com/v1/forecast"
    HTTP_TIMEOUT_SECONDS: float = 10.0
    CONNECTIVITY_PROBE_URL: str = "https://generativelanguage.googleapis.com"

    # Video generation polling (0 attempts → poll until done)
    VIDEO_POLL_INTERVAL_SECONDS: float = 5.0
    VIDEO_POLL_MAX_ATTEMPTS: int = 0

    # Focus mode
    FOCUS_MINUTES: int = 25
    BREAK_MINUTES: int = 5

    @property
    def gemini_key(self) -> str:
        return self.GEMINI_API_KEY or self.LLM_API_KEY

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator(
        "MORNING_BRIEFING_HOUR", "VIDEO_POLL_MAX_ATTEMPTS",
        "FOCUS_MINUTES", "BREAK_MINUTES",
        mode="before",
    )
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")
    llm_api_key = os.getenv("LLM_API_KEY", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    if not llm_api_key or llm_api_key.startswith("your-"):
        print("ERROR: LLM_API_KEY is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        LLM_PROVIDER=os.getenv("LLM_PROVIDER", "gemini"),
        LLM_MODEL=os.getenv("LLM_MODEL", ""),
        LLM_API_KEY=llm_api_key,
        GEMINI_API_KEY=os.getenv("GEMINI_API_KEY", ""),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/companion.db"),
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
        MORNING_BRIEFING_HOUR=os.getenv("MORNING_BRIEFING_HOUR", "7"),
        TIMEZONE=os.getenv("TIMEZONE", "UTC"),
        QURAN_API_URL=os.getenv("QURAN_API_URL", "https://api.alquran.cloud/v1"),
        WEATHER_API_URL=os.getenv("WEATHER_API_URL", "https://api.open-meteo.com/v1/forecast"),
        HTTP_TIMEOUT_SECONDS=os.getenv("HTTP_TIMEOUT_SECONDS", "10"),
        CONNECTIVITY_PROBE_URL=os.getenv(
            "CONNECTIVITY_PROBE_URL", "https://generativelanguage.googleapis.com",
        ),
        VIDEO_POLL_INTERVAL_SECONDS=os.getenv("VIDEO_POLL_INTERVAL_SECONDS", "5"),
        VIDEO_POLL_MAX_ATTEMPTS=os.getenv("VIDEO_POLL_MAX_ATTEMPTS", "0"),
        FOCUS_MINUTES=os.getenv("FOCUS_MINUTES", "25"),
        BREAK_MINUTES=os.getenv("BREAK_MINUTES", "5"),
    )


# Singleton — imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
