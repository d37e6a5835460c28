"""Completion client used by chains and the chat orchestrator.

Chains never build an OpenAI client themselves; they receive a
``CompletionClient`` so tests can script responses.
"""

import json
from typing import Any, Protocol

import openai
from openai import AsyncOpenAI

from chayo.core.config import Settings, get_settings
from chayo.core.exceptions import AICallError
from chayo.core.logging import get_logger

logger = get_logger(__name__)


class CompletionClient(Protocol):
    """Structured and plain chat completions."""

    async def structured(
        self,
        *,
        system_prompt: str | None,
        messages: list[dict[str, str]],
        response_format: dict[str, Any],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> dict[str, Any]:
        """Return the parsed JSON object conforming to ``response_format``."""
        ...

    async def complete(
        self,
        *,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        """Return the assistant text."""
        ...


def categorize_openai_error(error: Exception) -> str:
    """Map an OpenAI SDK exception to an apology category."""
    if isinstance(error, openai.RateLimitError):
        return "quota"
    if isinstance(error, openai.AuthenticationError):
        return "auth"
    if isinstance(error, openai.BadRequestError):
        return "bad_request"
    return "other"


class OpenAICompletionClient:
    """``CompletionClient`` backed by ``openai.AsyncOpenAI``."""

    def __init__(self, settings: Settings | None = None, client: AsyncOpenAI | None = None):
        self.settings = settings or get_settings()
        self._client = client or AsyncOpenAI(api_key=self.settings.OPENAI_API_KEY)

    async def _create(self, **kwargs: Any) -> str:
        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            category = categorize_openai_error(e)
            logger.error(f"OpenAI call failed ({category}): {e}")
            raise AICallError(category, str(e)) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AICallError("other", "No content in AI response")
        return content

    async def structured(
        self,
        *,
        system_prompt: str | None,
        messages: list[dict[str, str]],
        response_format: dict[str, Any],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> dict[str, Any]:
        full_messages = list(messages)
        if system_prompt:
            full_messages.insert(0, {"role": "system", "content": system_prompt})

        model_name = model or self.settings.CHAT_MODEL
        schema_name = response_format.get("json_schema", {}).get("name", "unnamed")
        logger.debug(
            f"Structured completion with {model_name}",
            extra={"schema": schema_name, "messages": len(full_messages)},
        )

        content = await self._create(
            model=model_name,
            messages=full_messages,
            temperature=temperature,
            max_tokens=max_tokens,
            response_format=response_format,
        )
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            raise AICallError("other", f"Malformed structured response: {e}") from e
        if not isinstance(parsed, dict):
            raise AICallError("other", "Structured response is not an object")
        return parsed

    async def complete(
        self,
        *,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        return await self._create(
            model=model or self.settings.CHAT_MODEL,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
