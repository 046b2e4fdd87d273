"""Al Quran Cloud API integration — chapter listing and verse text.

Every surah is fetched twice in parallel: once in the original Uthmani
script and once in the translation edition that matches the user's
language. The two verse lists are zipped into Ayah records.

Read-only HTTP GET via httpx. Failures raise ContentAPIError.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

ORIGINAL_EDITION = "quran-uthmani"
DEFAULT_EDITION = "en.sahih"

# App language → Al Quran Cloud edition code
LANGUAGE_TO_EDITION: dict[str, str] = {
    "English": "en.sahih",
    "Urdu": "ur.jalandhry",
    "Pashto": "ps.abdulwali",
    "Arabic": "ar.jalalayn",   # tafsir in Arabic
    "Spanish": "es.asad",
    "French": "fr.hamidullah",
    "German": "de.aburida",
    "Hindi": "hi.hindi",
    "Bengali": "bn.bengali",
    "Chinese": "zh.jian",
    "Russian": "ru.kuliev",
    "Portuguese": "pt.elhayek",
    "Turkish": "tr.ates",
}


class ContentAPIError(Exception):
    """Raised when the Quran content API cannot be reached or parsed."""


@dataclass
class Surah:
    """One chapter as listed by the API."""

    number: int
    name: str                        # Arabic name
    english_name: str
    english_name_translation: str
    number_of_ayahs: int
    revelation_type: str             # "Meccan" | "Medinan"


@dataclass
class Ayah:
    """One verse with its translation."""

    number: int                      # number within the surah
    text: str                        # original Uthmani text
    translation: str


def edition_for(language: str) -> str:
    return LANGUAGE_TO_EDITION.get(language, DEFAULT_EDITION)


def _base_url() -> str:
    from src.config import settings
    return settings.QURAN_API_URL.rstrip("/")


def _timeout() -> float:
    from src.config import settings
    return settings.HTTP_TIMEOUT_SECONDS


async def _get_data(client: httpx.AsyncClient, path: str) -> dict | list:
    resp = await client.get(f"{_base_url()}{path}")
    resp.raise_for_status()
    payload = resp.json()
    if payload.get("code") != 200 or "data" not in payload:
        raise ContentAPIError(f"Unexpected response for {path}: {payload.get('status')}")
    return payload["data"]


async def list_surahs() -> list[Surah]:
    """Fetch the list of all 114 surahs."""
    try:
        async with httpx.AsyncClient(timeout=_timeout()) as client:
            data = await _get_data(client, "/surah")
        return [
            Surah(
                number=s["number"],
                name=s["name"],
                english_name=s["englishName"],
                english_name_translation=s["englishNameTranslation"],
                number_of_ayahs=s["numberOfAyahs"],
                revelation_type=s["revelationType"],
            )
            for s in data
        ]
    except ContentAPIError:
        raise
    except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
        logger.error("Error fetching Surahs: %s", exc)
        raise ContentAPIError(f"Could not load surah list: {exc}") from exc


async def get_surah(number: int, language: str = "English") -> list[Ayah]:
    """Fetch one surah in Uthmani script plus the language's translation."""
    if not 1 <= number <= 114:
        raise ValueError(f"Surah number must be between 1 and 114, got {number}")

    edition = edition_for(language)
    try:
        async with httpx.AsyncClient(timeout=_timeout()) as client:
            original, translated = await asyncio.gather(
                _get_data(client, f"/surah/{number}/{ORIGINAL_EDITION}"),
                _get_data(client, f"/surah/{number}/{edition}"),
            )
        translations = translated["ayahs"]
        return [
            Ayah(
                number=ayah["numberInSurah"],
                text=ayah["text"],
                translation=translations[i]["text"] if i < len(translations) else "",
            )
            for i, ayah in enumerate(original["ayahs"])
        ]
    except ContentAPIError:
        raise
    except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
        logger.error("Error fetching content for surah %d (%s): %s", number, edition, exc)
        raise ContentAPIError(f"Could not load surah {number}: {exc}") from exc


def filter_surahs(surahs: list[Surah], query: str) -> list[Surah]:
    """Case-insensitive match on English name, or substring of the number."""
    q = query.strip().lower()
    if not q:
        return list(surahs)
    return [
        s for s in surahs
        if q in s.english_name.lower() or q in str(s.number)
    ]
