"""
Noor Companion — Onboarding Validation.

Checks run once, when the profile is created: all fields present, born in
1950 or later, and a location the model recognises as a real place. They
are not re-run when the profile is edited later.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date

from src.core.assistant import validate_location
from src.data.models import GENDERS, UserProfile, default_profile

logger = logging.getLogger(__name__)

MIN_BIRTH_YEAR = 1950

MSG_MISSING_FIELDS = "Please fill in all fields."
MSG_INVALID_DOB = "Please enter your date of birth as YYYY-MM-DD."
MSG_TOO_OLD = "Only individuals born in 1950 or later are permitted to use this platform."
MSG_INVALID_GENDER = "Please choose Male, Female or Other."
MSG_INVALID_LOCATION = "Please enter a valid, real city and country (e.g., London, UK)."


class OnboardingError(Exception):
    """Validation failure carrying the message shown to the user."""


def check_birth_date(dob: str) -> date:
    """Parse an ISO date and enforce the minimum birth year."""
    try:
        birth_date = date.fromisoformat(dob.strip())
    except ValueError as exc:
        raise OnboardingError(MSG_INVALID_DOB) from exc
    if birth_date.year < MIN_BIRTH_YEAR:
        raise OnboardingError(MSG_TOO_OLD)
    return birth_date


async def validate_profile(profile: UserProfile) -> UserProfile:
    """Validate a new profile and return it marked as onboarded.

    Raises OnboardingError with a user-facing message on the first failure.
    """
    if not profile.name.strip() or not profile.dob.strip() or not profile.location.strip():
        raise OnboardingError(MSG_MISSING_FIELDS)
    if profile.gender not in GENDERS:
        raise OnboardingError(MSG_INVALID_GENDER)

    check_birth_date(profile.dob)

    if not await validate_location(profile.location):
        logger.info("Onboarding rejected location '%s'", profile.location)
        raise OnboardingError(MSG_INVALID_LOCATION)

    return replace(profile, name=profile.name.strip(), location=profile.location.strip(), onboarded=True)


def skip_onboarding() -> UserProfile:
    return default_profile()


EDITABLE_FIELDS = ("name", "location")


def edit_profile(profile: UserProfile | None, field: str, value: str) -> UserProfile:
    """Change the name or location of an existing profile from settings.

    Only blank values are refused; the onboarding checks are not re-run.
    """
    if field not in EDITABLE_FIELDS:
        raise ValueError(f"{field!r} is not editable")
    value = value.strip()
    if not value:
        raise OnboardingError(MSG_MISSING_FIELDS)
    return replace(profile or default_profile(), **{field: value})
