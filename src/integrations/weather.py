"""Open-Meteo weather integration — current temperature and condition.

The location comes from a one-shot geolocation read (a shared Telegram
location). Gracefully degrades: returns None on any failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)


@dataclass
class Weather:
    temp: int          # °C, rounded
    condition: str


def weather_condition(code: int) -> str:
    """Bucket a WMO weather code into a human label."""
    if code == 0:
        return "Clear"
    if code < 3:
        return "Partly Cloudy"
    if code < 50:
        return "Foggy"
    if code < 70:
        return "Raining"
    return "Stormy"


async def fetch_weather(latitude: float, longitude: float) -> Weather | None:
    """Current weather at a position, or None on any failure."""
    from src.config import settings

    try:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
            resp = await client.get(
                settings.WEATHER_API_URL,
                params={
                    "latitude": latitude,
                    "longitude": longitude,
                    "current_weather": "true",
                },
            )
            resp.raise_for_status()
            data = resp.json()

        current = data["current_weather"]
        return Weather(
            temp=round(current["temperature"]),
            condition=weather_condition(int(current["weathercode"])),
        )
    except Exception as exc:
        logger.warning("Weather fetch error for (%s, %s): %s", latitude, longitude, exc)
        return None
