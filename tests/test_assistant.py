"""Tests for src.core.assistant — AI request wrappers (LLM mocked)."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from src.core.assistant import (
    MCQ,
    HadithResult,
    _clean_llm_response,
    explore_history,
    generate_category_subtasks,
    generate_daily_briefing,
    generate_daily_schedule,
    generate_daily_suggestions,
    generate_mcq,
    generate_strategy,
    search_hadith,
    validate_location,
)
from src.core.llm import AIDecodeError, AIOfflineError, AIRequestError
from src.data.models import ScheduleItem, default_profile, initial_schedule

_PATCH = "src.core.assistant.complete"

_SCHEDULE_JSON = json.dumps([
    {
        "id": 1, "title": "Morning Rituals", "time": "05:30 – 07:00",
        "icon": "fa-sun", "color": "text-amber-500", "bg": "bg-amber-50",
        "subtasks": [{"text": "Pray Fajr", "completed": False}, {"text": "Adhkar"}],
    },
    {
        "id": 2, "title": "Deep Work", "time": "09:00 – 12:00",
        "icon": "fa-laptop", "color": "text-blue-500", "bg": "bg-blue-50",
        "subtasks": [],
    },
])


class TestCleanLlmResponse:
    def test_strips_json_code_block(self):
        assert _clean_llm_response('```json\n["a"]\n```') == '["a"]'

    def test_no_code_block(self):
        assert _clean_llm_response('  ["a"] ') == '["a"]'


class TestGenerateDailySchedule:
    @pytest.mark.asyncio
    async def test_decodes_categories(self):
        with patch(_PATCH, AsyncMock(return_value=_SCHEDULE_JSON)) as mock_complete:
            schedule = await generate_daily_schedule("a calm Friday", "Urdu")

        assert [item.title for item in schedule] == ["Morning Rituals", "Deep Work"]
        assert isinstance(schedule[0], ScheduleItem)
        assert schedule[0].subtasks[1].completed is False
        kwargs = mock_complete.call_args.kwargs
        assert "a calm Friday" in kwargs["user_message"]
        assert "Urdu" in kwargs["user_message"]
        assert kwargs["response_schema"] is not None

    @pytest.mark.asyncio
    async def test_code_fenced_json_accepted(self):
        with patch(_PATCH, AsyncMock(return_value=f"```json\n{_SCHEDULE_JSON}\n```")):
            schedule = await generate_daily_schedule("x")
        assert len(schedule) == 2

    @pytest.mark.asyncio
    async def test_not_json_raises_decode_error(self):
        with patch(_PATCH, AsyncMock(return_value="Here is your schedule!")):
            with pytest.raises(AIDecodeError):
                await generate_daily_schedule("x")

    @pytest.mark.asyncio
    async def test_wrong_shape_raises_decode_error(self):
        with patch(_PATCH, AsyncMock(return_value='[{"title": "No id"}]')):
            with pytest.raises(AIDecodeError):
                await generate_daily_schedule("x")

    @pytest.mark.asyncio
    async def test_empty_list_raises_decode_error(self):
        with patch(_PATCH, AsyncMock(return_value="[]")):
            with pytest.raises(AIDecodeError):
                await generate_daily_schedule("x")

    @pytest.mark.asyncio
    async def test_provider_failure_raises_request_error(self):
        with patch(_PATCH, AsyncMock(side_effect=RuntimeError("503"))):
            with pytest.raises(AIRequestError):
                await generate_daily_schedule("x")

    @pytest.mark.asyncio
    async def test_offline_makes_no_call(self, online):
        online.set_online(False)
        with patch(_PATCH, AsyncMock()) as mock_complete:
            with pytest.raises(AIOfflineError):
                await generate_daily_schedule("x")
        mock_complete.assert_not_called()


class TestListWrappers:
    @pytest.mark.asyncio
    async def test_suggestions_use_profile_and_titles(self):
        with patch(_PATCH, AsyncMock(return_value='["a", "b", "c"]')) as mock_complete:
            result = await generate_daily_suggestions(default_profile(), initial_schedule(), "French")
        assert result == ["a", "b", "c"]
        message = mock_complete.call_args.kwargs["user_message"]
        assert "Guest" in message and "Earth" in message and "Morning Rituals" in message

    @pytest.mark.asyncio
    async def test_category_subtasks(self):
        with patch(_PATCH, AsyncMock(return_value='["1", "2", "3", "4", "5"]')):
            assert len(await generate_category_subtasks("Study")) == 5

    @pytest.mark.asyncio
    async def test_strategy(self):
        with patch(_PATCH, AsyncMock(return_value='["Plan", "Read", "Review"]')) as mock_complete:
            steps = await generate_strategy("Usul al-Fiqh")
        assert steps == ["Plan", "Read", "Review"]
        assert "Usul al-Fiqh" in mock_complete.call_args.kwargs["user_message"]

    @pytest.mark.asyncio
    async def test_object_instead_of_list_raises(self):
        with patch(_PATCH, AsyncMock(return_value='{"steps": []}')):
            with pytest.raises(AIDecodeError):
                await generate_strategy("x")


class TestMcq:
    @pytest.mark.asyncio
    async def test_decodes_mcq(self):
        raw = '{"q": "How many pillars?", "options": ["3", "5", "7"], "ans": 1}'
        with patch(_PATCH, AsyncMock(return_value=raw)):
            mcq = await generate_mcq("pillars of Islam")
        assert isinstance(mcq, MCQ)
        assert mcq.is_correct(1) and not mcq.is_correct(0)

    @pytest.mark.asyncio
    async def test_answer_out_of_range(self):
        raw = '{"q": "?", "options": ["a", "b"], "ans": 2}'
        with patch(_PATCH, AsyncMock(return_value=raw)):
            with pytest.raises(AIDecodeError):
                await generate_mcq("x")


class TestHadithAndHistory:
    @pytest.mark.asyncio
    async def test_search_hadith(self):
        raw = json.dumps({
            "arabic": "إنما الأعمال بالنيات",
            "translation": "Actions are by intentions",
            "reference": "Sahih al-Bukhari 1",
            "explanation": "Intention defines the deed.",
        })
        with patch(_PATCH, AsyncMock(return_value=raw)):
            result = await search_hadith("intention")
        assert isinstance(result, HadithResult)
        assert result.reference == "Sahih al-Bukhari 1"

    @pytest.mark.asyncio
    async def test_hadith_missing_field(self):
        with patch(_PATCH, AsyncMock(return_value='{"arabic": "x"}')):
            with pytest.raises(AIDecodeError):
                await search_hadith("intention")

    @pytest.mark.asyncio
    async def test_explore_history_returns_text(self):
        with patch(_PATCH, AsyncMock(return_value="  The Abbasid era...  ")) as mock_complete:
            text = await explore_history("Abbasid Golden Age", "Turkish")
        assert text == "The Abbasid era..."
        assert mock_complete.call_args.kwargs["response_schema"] is None

    @pytest.mark.asyncio
    async def test_explore_history_empty(self):
        with patch(_PATCH, AsyncMock(return_value="")):
            with pytest.raises(AIDecodeError):
                await explore_history("x")


class TestBriefing:
    @pytest.mark.asyncio
    async def test_briefing_mentions_name_count_theme(self):
        with patch(_PATCH, AsyncMock(return_value="Rise and shine.")) as mock_complete:
            text = await generate_daily_briefing(default_profile(), initial_schedule(), "Ramadan", "Arabic")
        assert text == "Rise and shine."
        message = mock_complete.call_args.kwargs["user_message"]
        assert "Guest" in message and "1 categories" in message and "Ramadan" in message


class TestValidateLocation:
    @pytest.mark.asyncio
    async def test_true(self):
        with patch(_PATCH, AsyncMock(return_value="True")):
            assert await validate_location("London, UK") is True

    @pytest.mark.asyncio
    async def test_false(self):
        with patch(_PATCH, AsyncMock(return_value="false")):
            assert await validate_location("Atlantis") is False

    @pytest.mark.asyncio
    async def test_fails_open_on_error(self):
        with patch(_PATCH, AsyncMock(side_effect=RuntimeError("timeout"))):
            assert await validate_location("Atlantis") is True

    @pytest.mark.asyncio
    async def test_fails_open_offline(self, online):
        online.set_online(False)
        with patch(_PATCH, AsyncMock()) as mock_complete:
            assert await validate_location("Atlantis") is True
        mock_complete.assert_not_called()
