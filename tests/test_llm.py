"""Tests for the OpenAI-backed completion client."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from chayo.core.exceptions import AI_ERROR_MESSAGES, AICallError
from chayo.core.llm import OpenAICompletionClient, categorize_openai_error
from chayo.core.schemas_chat import VALIDATION_SCHEMA


def _response(content):
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


def _client(create):
    sdk = MagicMock()
    sdk.chat.completions.create = create
    return OpenAICompletionClient(client=sdk)


def _status_error(cls, status_code):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(status_code, request=request)
    return cls("boom", response=response, body=None)


@pytest.mark.parametrize(
    "error_cls,status_code,category",
    [
        (openai.RateLimitError, 429, "quota"),
        (openai.AuthenticationError, 401, "auth"),
        (openai.BadRequestError, 400, "bad_request"),
        (openai.InternalServerError, 500, "other"),
    ],
)
def test_categorize_openai_error(error_cls, status_code, category):
    assert categorize_openai_error(_status_error(error_cls, status_code)) == category


@pytest.mark.asyncio
async def test_structured_prepends_system_prompt_and_parses_json():
    create = AsyncMock(return_value=_response(json.dumps({"answered": False})))
    client = _client(create)

    result = await client.structured(
        system_prompt="SYSTEM",
        messages=[{"role": "user", "content": "hola"}],
        response_format=VALIDATION_SCHEMA,
    )

    assert result == {"answered": False}
    sent = create.call_args.kwargs
    assert sent["messages"][0] == {"role": "system", "content": "SYSTEM"}
    assert sent["response_format"] is VALIDATION_SCHEMA


@pytest.mark.asyncio
async def test_structured_maps_sdk_errors_to_ai_call_error():
    create = AsyncMock(side_effect=_status_error(openai.RateLimitError, 429))
    client = _client(create)

    with pytest.raises(AICallError) as exc:
        await client.structured(system_prompt=None, messages=[], response_format=VALIDATION_SCHEMA)

    assert exc.value.category == "quota"
    assert exc.value.user_message == AI_ERROR_MESSAGES["quota"]


@pytest.mark.asyncio
async def test_empty_content_is_other_error():
    client = _client(AsyncMock(return_value=_response(None)))

    with pytest.raises(AICallError) as exc:
        await client.complete(messages=[{"role": "user", "content": "hi"}])

    assert exc.value.category == "other"


@pytest.mark.asyncio
async def test_malformed_json_is_other_error():
    client = _client(AsyncMock(return_value=_response("not json")))

    with pytest.raises(AICallError) as exc:
        await client.structured(system_prompt=None, messages=[], response_format=VALIDATION_SCHEMA)

    assert exc.value.category == "other"


def test_unknown_category_falls_back_to_other():
    assert AICallError("mystery").user_message == AI_ERROR_MESSAGES["other"]
