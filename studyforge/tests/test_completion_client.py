from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from studyforge.core.errors import CompletionTimeoutError, GenerationError, QuotaError
from studyforge.services.common.retry import RetryConfig
from studyforge.services.generation import CompletionClient
from studyforge.services.generation.prompts import SYSTEM_PROMPT

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def completion_response(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


@pytest.fixture
def openai_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion_response('{"flashcards": []}'))
    return client


@pytest.fixture
def completion(openai_client):
    return CompletionClient(
        client=openai_client,
        model="gpt-test",
        temperature=0.7,
        max_tokens=3000,
        timeout=30.0,
        retry_config=RetryConfig(max_attempts=1, retry_exceptions=(openai.APIConnectionError,)),
    )


async def test_requests_a_json_object(completion, openai_client):
    text = await completion.complete("Genetics", "DNA is a double helix.")

    assert text == '{"flashcards": []}'
    kwargs = openai_client.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "gpt-test"
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["temperature"] == 0.7
    assert kwargs["max_tokens"] == 3000
    system, user = kwargs["messages"]
    assert system == {"role": "system", "content": SYSTEM_PROMPT}
    assert "Genetics" in user["content"]
    assert "DNA is a double helix." in user["content"]


async def test_blank_content_is_rejected(completion, openai_client):
    with pytest.raises(GenerationError):
        await completion.complete("Genetics", "   ")

    openai_client.chat.completions.create.assert_not_awaited()


async def test_rate_limit_maps_to_quota_error(completion, openai_client):
    openai_client.chat.completions.create.side_effect = openai.RateLimitError(
        "Rate limit reached", response=httpx.Response(429, request=REQUEST), body=None
    )

    with pytest.raises(QuotaError):
        await completion.complete("Genetics", "DNA is a double helix.")


async def test_timeout_maps_to_completion_timeout(completion, openai_client):
    openai_client.chat.completions.create.side_effect = openai.APITimeoutError(request=REQUEST)

    with pytest.raises(CompletionTimeoutError):
        await completion.complete("Genetics", "DNA is a double helix.")


async def test_server_error_maps_to_generation_error(completion, openai_client):
    openai_client.chat.completions.create.side_effect = openai.InternalServerError(
        "Internal error", response=httpx.Response(500, request=REQUEST), body=None
    )

    with pytest.raises(GenerationError) as exc_info:
        await completion.complete("Genetics", "DNA is a double helix.")
    assert not isinstance(exc_info.value, QuotaError)


async def test_connection_errors_are_retried(openai_client, monkeypatch):
    monkeypatch.setattr("asyncio.sleep", AsyncMock())
    openai_client.chat.completions.create.side_effect = [
        openai.APIConnectionError(request=REQUEST),
        completion_response('{"summaries": []}'),
    ]
    client = CompletionClient(
        client=openai_client,
        model="gpt-test",
        retry_config=RetryConfig(max_attempts=2, retry_exceptions=(openai.APIConnectionError,)),
    )

    assert await client.complete("Genetics", "DNA is a double helix.") == '{"summaries": []}'
    assert openai_client.chat.completions.create.await_count == 2


async def test_empty_answer_is_a_generation_error(completion, openai_client):
    openai_client.chat.completions.create.return_value = completion_response(None)

    with pytest.raises(GenerationError, match="empty response"):
        await completion.complete("Genetics", "DNA is a double helix.")
