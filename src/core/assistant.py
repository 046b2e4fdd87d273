"""
Noor Companion — AI Request Wrappers.

Every "intelligent" feature of the companion is one request/response call
to the configured LLM: a fixed prompt template, optionally constrained to a
declared JSON shape, decoded into a typed contract.

Each wrapper:
- refuses to go out when the connectivity flag is false (AIOfflineError);
- issues exactly one call, no retry, no backoff;
- logs and raises AIRequestError when the call fails;
- logs and raises AIDecodeError when the payload does not match its shape.

The one exception is `validate_location`, which is fail-open: offline or on
any failure the location counts as valid.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from src.core.connectivity import connectivity
from src.core.llm import AIDecodeError, AIRequestError, complete
from src.data.models import ScheduleItem, Subtask

if TYPE_CHECKING:
    from src.data.models import UserProfile

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Response contracts
# ---------------------------------------------------------------------------


class SubtaskContract(BaseModel):
    """JSON example: {"text": "Pray Fajr", "completed": false}"""
    text: str
    completed: bool = False


class ScheduleCategory(BaseModel):
    """One AI-authored schedule category.

    JSON example:
    {
        "id": 1,
        "title": "Morning Rituals",
        "time": "05:30 – 07:00",
        "icon": "fa-sun",
        "color": "text-amber-500",
        "bg": "bg-amber-50",
        "subtasks": [{"text": "Pray Fajr", "completed": false}]
    }
    """
    id: int
    title: str
    time: str
    icon: str
    color: str
    bg: str
    subtasks: list[SubtaskContract]

    def to_schedule_item(self) -> ScheduleItem:
        return ScheduleItem(
            id=self.id,
            title=self.title,
            time=self.time,
            icon=self.icon,
            color=self.color,
            bg=self.bg,
            subtasks=[Subtask(text=s.text, completed=s.completed) for s in self.subtasks],
        )


class MCQ(BaseModel):
    """A single multiple-choice question. `ans` is the 0-based correct option.

    JSON example:
    {"q": "Who compiled Sahih al-Bukhari?", "options": ["...", "..."], "ans": 0}
    """
    q: str
    options: list[str]
    ans: int

    def is_correct(self, choice: int) -> bool:
        return choice == self.ans


class HadithResult(BaseModel):
    """An authentic hadith with translation and commentary.

    JSON example:
    {"arabic": "...", "translation": "...", "reference": "Sahih Muslim 2699", "explanation": "..."}
    """
    arabic: str
    translation: str
    reference: str
    explanation: str


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

_LOCATION_PROMPT = (
    'Is "{location}" a real and recognizable city and country? '
    "Answer ONLY with 'true' or 'false'."
)

_SCHEDULE_PROMPT = """\
Create a comprehensive daily schedule for a user based on this request: "{request}".
Requirements: 1. Return exactly 5-8 major categories. 2. Use varied icons. 3. Language: {language}.
Icons are Font Awesome names (e.g. "fa-sun"), colors are Tailwind text classes
(e.g. "text-amber-500") and backgrounds are Tailwind bg classes (e.g. "bg-amber-50").
Times are display ranges like "07:00 – 08:00". Every subtask starts with completed=false.
"""

_SUGGESTIONS_PROMPT = (
    "Based on user {name} from {location} and schedule: {titles}, "
    "provide 3 unique suggestions in {language}."
)

_SUBTASKS_PROMPT = 'Suggest 5 subtasks for category: "{title}" in {language}.'

_MCQ_PROMPT = 'Generate 1 educational MCQ about "{topic}" in {language}.'

_HADITH_PROMPT = (
    'Search for authentic Hadith regarding: "{query}" in {language}. '
    "Provide Arabic and translation."
)

_HISTORY_PROMPT = 'Provide summary of history: "{era}" in {language}.'

_STRATEGY_PROMPT = 'Provide 5 study strategy steps for: "{topic}" in {language}.'

_BRIEFING_PROMPT = """\
Provide a 2-sentence inspirational morning briefing for a user named {name}.
They have {count} categories planned for today. Theme is {theme}. Language: {language}.
"""


# ---------------------------------------------------------------------------
# Response cleaning and decoding
# ---------------------------------------------------------------------------

def _clean_llm_response(raw_text: str) -> str:
    """Remove markdown code block delimiters from LLM's raw response."""
    cleaned_text = raw_text.strip()
    if cleaned_text.startswith("```json"):
        cleaned_text = cleaned_text.removeprefix("```json")
    elif cleaned_text.startswith("```"):
        cleaned_text = cleaned_text.removeprefix("```")
    if cleaned_text.endswith("```"):
        cleaned_text = cleaned_text.removesuffix("```")
    return cleaned_text.strip()


def _decode(raw_text: str, shape: Any, operation: str) -> Any:
    """Parse raw JSON text into the declared shape or raise AIDecodeError."""
    cleaned = _clean_llm_response(raw_text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error("%s: response is not JSON: %s — raw: '%s'", operation, exc, cleaned[:200])
        raise AIDecodeError(f"{operation}: response is not valid JSON") from exc
    try:
        return TypeAdapter(shape).validate_python(data)
    except ValidationError as exc:
        logger.error("%s: response does not match shape: %s", operation, exc)
        raise AIDecodeError(f"{operation}: response does not match the expected shape") from exc


async def _request(
    operation: str,
    prompt: str,
    max_tokens: int,
    response_schema: Any = None,
) -> str:
    """Check connectivity, issue one call, wrap provider failures."""
    connectivity.require_online()
    try:
        raw = await complete(
            system="",
            user_message=prompt,
            max_tokens=max_tokens,
            response_schema=response_schema,
        )
    except Exception as exc:
        logger.error("%s request failed: %s", operation, exc)
        raise AIRequestError(f"{operation} failed: {exc}") from exc
    logger.debug("%s raw response: %s", operation, raw)
    return raw or ""


async def _request_structured(operation: str, prompt: str, shape: Any, max_tokens: int) -> Any:
    raw = await _request(operation, prompt, max_tokens, response_schema=shape)
    return _decode(raw, shape, operation)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


async def validate_location(location: str) -> bool:
    """Ask the model whether a location is a real city and country.

    Fail-open: returns True when offline or when the call fails.
    """
    if not connectivity.online:
        return True
    try:
        raw = await complete(
            system="",
            user_message=_LOCATION_PROMPT.format(location=location),
            max_tokens=8,
        )
    except Exception as exc:
        logger.error("Location validation error: %s", exc)
        return True
    return "true" in (raw or "").strip().lower()


# ---------------------------------------------------------------------------
# Schedule & content
# ---------------------------------------------------------------------------


async def generate_daily_schedule(request: str, language: str = "English") -> list[ScheduleItem]:
    """Generate a whole new schedule (5-8 categories) from a free-text request."""
    categories = await _request_structured(
        "generate_daily_schedule",
        _SCHEDULE_PROMPT.format(request=request, language=language),
        list[ScheduleCategory],
        max_tokens=4096,
    )
    if not categories:
        raise AIDecodeError("generate_daily_schedule: empty schedule")
    logger.info("Generated schedule with %d categories", len(categories))
    return [c.to_schedule_item() for c in categories]


async def generate_daily_suggestions(
    profile: UserProfile | None,
    schedule: list[ScheduleItem],
    language: str = "English",
) -> list[str]:
    """Three personalised suggestions for the day."""
    name = profile.name if profile else "Guest"
    location = profile.location if profile else "Earth"
    prompt = _SUGGESTIONS_PROMPT.format(
        name=name,
        location=location,
        titles=", ".join(item.title for item in schedule),
        language=language,
    )
    return await _request_structured("generate_daily_suggestions", prompt, list[str], max_tokens=512)


async def generate_category_subtasks(title: str, language: str = "English") -> list[str]:
    """Five subtask suggestions for one schedule category."""
    return await _request_structured(
        "generate_category_subtasks",
        _SUBTASKS_PROMPT.format(title=title, language=language),
        list[str],
        max_tokens=512,
    )


async def generate_mcq(topic: str, language: str = "English") -> MCQ:
    """One educational multiple-choice question about a topic."""
    mcq = await _request_structured(
        "generate_mcq",
        _MCQ_PROMPT.format(topic=topic, language=language),
        MCQ,
        max_tokens=512,
    )
    if not 0 <= mcq.ans < len(mcq.options):
        logger.error("generate_mcq: answer index %d out of range for %d options", mcq.ans, len(mcq.options))
        raise AIDecodeError("generate_mcq: answer index out of range")
    return mcq


async def search_hadith(query: str, language: str = "English") -> HadithResult:
    """Find an authentic hadith on a subject, with Arabic text and translation."""
    return await _request_structured(
        "search_hadith",
        _HADITH_PROMPT.format(query=query, language=language),
        HadithResult,
        max_tokens=1024,
    )


async def explore_history(era: str, language: str = "English") -> str:
    """A prose summary of one era of Islamic history."""
    text = await _request(
        "explore_history",
        _HISTORY_PROMPT.format(era=era, language=language),
        max_tokens=1024,
    )
    if not text.strip():
        raise AIDecodeError("explore_history: empty response")
    return text.strip()


async def generate_strategy(topic: str, language: str = "English") -> list[str]:
    """Five study-strategy steps for a backlog topic."""
    return await _request_structured(
        "generate_strategy",
        _STRATEGY_PROMPT.format(topic=topic, language=language),
        list[str],
        max_tokens=768,
    )


async def generate_daily_briefing(
    profile: UserProfile | None,
    schedule: list[ScheduleItem],
    theme: str = "Standard",
    language: str = "English",
) -> str:
    """A two-sentence inspirational morning briefing."""
    text = await _request(
        "generate_daily_briefing",
        _BRIEFING_PROMPT.format(
            name=profile.name if profile else "Guest",
            count=len(schedule),
            theme=theme,
            language=language,
        ),
        max_tokens=256,
    )
    if not text.strip():
        raise AIDecodeError("generate_daily_briefing: empty response")
    return text.strip()

