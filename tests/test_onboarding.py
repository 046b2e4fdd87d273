"""Tests for src.core.onboarding — profile validation at creation time."""

from unittest.mock import AsyncMock, patch

import pytest

from src.core.onboarding import (
    MSG_INVALID_DOB,
    MSG_INVALID_GENDER,
    MSG_INVALID_LOCATION,
    MSG_MISSING_FIELDS,
    MSG_TOO_OLD,
    OnboardingError,
    check_birth_date,
    edit_profile,
    skip_onboarding,
    validate_profile,
)
from src.data.models import UserProfile

_PATCH_LOCATION = "src.core.onboarding.validate_location"


def _profile(**overrides):
    fields = {"name": "Maryam", "gender": "Female", "dob": "1995-03-14", "location": "London, UK"}
    fields.update(overrides)
    return UserProfile(**fields)


class TestCheckBirthDate:
    def test_1949_rejected(self):
        with pytest.raises(OnboardingError, match="1950 or later"):
            check_birth_date("1949-12-31")

    def test_1950_01_01_accepted(self):
        assert check_birth_date("1950-01-01").year == 1950

    def test_malformed_date(self):
        with pytest.raises(OnboardingError) as exc_info:
            check_birth_date("14/03/1995")
        assert str(exc_info.value) == MSG_INVALID_DOB


class TestValidateProfile:
    @pytest.mark.asyncio
    async def test_valid_profile_is_marked_onboarded(self):
        with patch(_PATCH_LOCATION, AsyncMock(return_value=True)):
            profile = await validate_profile(_profile(name="  Maryam "))
        assert profile.onboarded is True
        assert profile.name == "Maryam"

    @pytest.mark.asyncio
    async def test_missing_field(self):
        with patch(_PATCH_LOCATION, AsyncMock(return_value=True)) as mock_loc:
            with pytest.raises(OnboardingError) as exc_info:
                await validate_profile(_profile(location="  "))
        assert str(exc_info.value) == MSG_MISSING_FIELDS
        mock_loc.assert_not_called()

    @pytest.mark.asyncio
    async def test_bad_gender(self):
        with pytest.raises(OnboardingError) as exc_info:
            await validate_profile(_profile(gender="Unknown"))
        assert str(exc_info.value) == MSG_INVALID_GENDER

    @pytest.mark.asyncio
    async def test_too_old_skips_location_check(self):
        with patch(_PATCH_LOCATION, AsyncMock(return_value=True)) as mock_loc:
            with pytest.raises(OnboardingError) as exc_info:
                await validate_profile(_profile(dob="1949-06-01"))
        assert str(exc_info.value) == MSG_TOO_OLD
        mock_loc.assert_not_called()

    @pytest.mark.asyncio
    async def test_unrecognised_location(self):
        with patch(_PATCH_LOCATION, AsyncMock(return_value=False)):
            with pytest.raises(OnboardingError) as exc_info:
                await validate_profile(_profile(location="Atlantis"))
        assert str(exc_info.value) == MSG_INVALID_LOCATION

    @pytest.mark.asyncio
    async def test_location_check_fails_open_when_offline(self, online):
        online.set_online(False)
        with patch("src.core.assistant.complete", AsyncMock()) as mock_complete:
            profile = await validate_profile(_profile(location="Atlantis"))
        assert profile.onboarded is True
        mock_complete.assert_not_called()


def test_skip_onboarding_returns_guest():
    profile = skip_onboarding()
    assert profile.name == "Guest"
    assert profile.onboarded is True


class TestEditProfile:
    def test_location_edit_is_not_revalidated(self):
        with patch(_PATCH_LOCATION, AsyncMock(return_value=False)) as mock_loc:
            edited = edit_profile(_profile(), "location", "  Atlantis ")
        mock_loc.assert_not_called()
        assert edited.location == "Atlantis"
        assert edited.name == _profile().name

    def test_name_edit_keeps_onboarded_flag(self):
        edited = edit_profile(_profile(onboarded=True), "name", "Aisha")
        assert edited.name == "Aisha"
        assert edited.onboarded is True

    def test_blank_value_rejected(self):
        with pytest.raises(OnboardingError) as exc_info:
            edit_profile(_profile(), "name", "   ")
        assert str(exc_info.value) == MSG_MISSING_FIELDS

    def test_other_fields_not_editable(self):
        with pytest.raises(ValueError):
            edit_profile(_profile(), "dob", "1940-01-01")

    def test_without_profile_edits_guest(self):
        assert edit_profile(None, "name", "Yusuf").name == "Yusuf"
