"""
Noor Companion — LLM Provider Abstraction.

Single public function `complete()` that routes text and structured-JSON
prompts to the configured provider. Provider is selected at startup via the
LLM_PROVIDER env var. Supports: gemini (default), anthropic, openai, cohere.

Gemini-only features (media, grounding tools, live voice) share the client
returned by `get_genai_client()`.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable

from pydantic import TypeAdapter

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors raised by every AI call site
# ---------------------------------------------------------------------------


class AIError(Exception):
    """Base class for every failure of an AI-backed operation."""


class AIOfflineError(AIError):
    """Raised before any network call when the connectivity flag is false."""


class AIRequestError(AIError):
    """Raised when the provider call itself fails."""


class AIDecodeError(AIError):
    """Raised when a response does not match the declared output shape."""


# Type alias for provider implementations:
# (api_key, model, system, user_message, max_tokens, response_schema) -> text
_ProviderFn = Callable[[str, str, str, str, int, Any], Awaitable[str]]


# ---------------------------------------------------------------------------
# Gemini client (google-genai)
# ---------------------------------------------------------------------------

_genai_client: Any = None


def get_genai_client() -> Any:
    """Return the shared google-genai client, building it on first use."""
    global _genai_client

    if _genai_client is None:
        from google import genai

        from src.config import settings

        _genai_client = genai.Client(api_key=settings.gemini_key)
    return _genai_client


def schema_instruction(response_schema: Any) -> str:
    """Render a response schema as a plain-language JSON instruction."""
    json_schema = TypeAdapter(response_schema).json_schema()
    return (
        "Respond ONLY with JSON matching this JSON Schema. "
        "No markdown, no explanation, no extra text.\n"
        f"{json.dumps(json_schema)}"
    )


# ---------------------------------------------------------------------------
# Provider implementations
# ---------------------------------------------------------------------------


async def _complete_gemini(
    api_key: str, model: str, system: str, user_message: str, max_tokens: int,
    response_schema: Any = None,
) -> str:
    from google.genai import types

    config = types.GenerateContentConfig(
        system_instruction=system or None,
        max_output_tokens=max_tokens,
    )
    if response_schema is not None:
        config.response_mime_type = "application/json"
        config.response_schema = response_schema

    response = await get_genai_client().aio.models.generate_content(
        model=model,
        contents=user_message,
        config=config,
    )
    return response.text or ""


async def _complete_anthropic(
    api_key: str, model: str, system: str, user_message: str, max_tokens: int,
    response_schema: Any = None,
) -> str:
    import anthropic

    if response_schema is not None:
        system = f"{system}\n\n{schema_instruction(response_schema)}".strip()

    client = anthropic.AsyncAnthropic(api_key=api_key)
    response = await client.messages.create(
        model=model,
        max_tokens=max_tokens,
        system=system,
        messages=[{"role": "user", "content": user_message}],
    )
    return response.content[0].text


async def _complete_openai(
    api_key: str, model: str, system: str, user_message: str, max_tokens: int,
    response_schema: Any = None,
) -> str:
    from openai import AsyncOpenAI

    if response_schema is not None:
        system = f"{system}\n\n{schema_instruction(response_schema)}".strip()

    client = AsyncOpenAI(api_key=api_key)
    response = await client.chat.completions.create(
        model=model,
        max_tokens=max_tokens,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user_message},
        ],
    )
    return response.choices[0].message.content


async def _complete_cohere(
    api_key: str, model: str, system: str, user_message: str, max_tokens: int,
    response_schema: Any = None,
) -> str:
    import cohere

    if response_schema is not None:
        system = f"{system}\n\n{schema_instruction(response_schema)}".strip()

    client = cohere.AsyncClientV2(api_key=api_key)
    response = await client.chat(
        model=model,
        max_tokens=max_tokens,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user_message},
        ],
    )
    return response.message.content[0].text


# ---------------------------------------------------------------------------
# Provider selection (runs once at first call)
# ---------------------------------------------------------------------------

_PROVIDERS: dict[str, tuple[_ProviderFn, str]] = {
    "gemini":    (_complete_gemini,    "gemini-3-flash-preview"),
    "anthropic": (_complete_anthropic, "claude-haiku-4-5-20251001"),
    "openai":    (_complete_openai,    "gpt-4o-mini"),
    "cohere":    (_complete_cohere,    "command-a-03-2025"),
}


def _select_provider() -> tuple[_ProviderFn, str, str]:
    """Read env vars and return (provider_fn, model, api_key)."""
    from src.config import settings

    provider_name = settings.LLM_PROVIDER.lower()
    if provider_name not in _PROVIDERS:
        raise ValueError(
            f"Unknown LLM_PROVIDER={provider_name!r}. "
            f"Supported: {', '.join(_PROVIDERS)}"
        )

    fn, default_model = _PROVIDERS[provider_name]
    model = settings.LLM_MODEL or default_model
    api_key = settings.LLM_API_KEY

    logger.info("LLM provider: %s, model: %s", provider_name, model)
    return fn, model, api_key


# Lazy singleton — populated on first call to complete()
_provider_fn: _ProviderFn | None = None
_model: str = ""
_api_key: str = ""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def complete(
    system: str,
    user_message: str,
    max_tokens: int = 256,
    response_schema: Any = None,
    model: str | None = None,
) -> str:
    """Send a prompt to the configured LLM provider and return the response text.

    When `response_schema` is given (a pydantic model or a type such as
    `list[str]`), the provider is asked for JSON of that shape. `model`
    overrides the provider default for this call only.

    Raises on API errors — callers should handle exceptions.
    """
    global _provider_fn, _model, _api_key

    if _provider_fn is None:
        _provider_fn, _model, _api_key = _select_provider()

    return await _provider_fn(_api_key, model or _model, system, user_message, max_tokens, response_schema)
