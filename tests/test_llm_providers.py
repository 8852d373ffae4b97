import json

import httpx
import pytest

from smartquery.nlsql.config import LLMProviderConfig
from smartquery.nlsql.errors import ModelUnavailableError
from smartquery.nlsql.llm_providers import (
    ChatGPTProvider,
    ClaudeProvider,
    GeminiProvider,
    LLMProviderFactory,
)


@pytest.fixture()
def config():
    return LLMProviderConfig(
        gemini_api_key="gemini-key",
        claude_api_key="claude-key",
        openai_api_key="openai-key",
        default_provider="gemini",
    )


def _transport(payload, seen=None, status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=payload)

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_gemini_joins_candidate_parts(config):
    seen = []
    payload = {
        "candidates": [{"content": {"parts": [{"text": '{"sqlQuery": '}, {"text": '"SELECT 1"}'}]}}],
        "usageMetadata": {"totalTokenCount": 12},
    }
    provider = GeminiProvider(config=config, transport=_transport(payload, seen))

    completion = await provider.complete("hello")

    assert completion.content == '{"sqlQuery": "SELECT 1"}'
    assert completion.provider == "gemini"
    assert completion.model == "gemini-2.0-flash"
    assert completion.usage == {"totalTokenCount": 12}
    request = seen[0]
    assert request.url.path.endswith("/models/gemini-2.0-flash:generateContent")
    assert request.url.params["key"] == "gemini-key"
    assert json.loads(request.content)["contents"][0]["parts"][0]["text"] == "hello"


@pytest.mark.asyncio
async def test_claude_reads_text_blocks(config):
    seen = []
    payload = {"content": [{"type": "text", "text": "SELECT 1"}], "usage": {"output_tokens": 3}}
    provider = ClaudeProvider(config=config, transport=_transport(payload, seen))

    completion = await provider.complete("hi")

    assert completion.content == "SELECT 1"
    assert completion.usage == {"output_tokens": 3}
    assert seen[0].headers["x-api-key"] == "claude-key"


@pytest.mark.asyncio
async def test_openai_reads_first_choice(config):
    payload = {"choices": [{"message": {"content": "{}"}}]}
    provider = ChatGPTProvider(config=config, transport=_transport(payload))

    completion = await provider.complete("hi")

    assert completion.content == "{}"
    assert completion.provider == "openai"


@pytest.mark.asyncio
async def test_unexpected_payload_shape_is_model_unavailable(config):
    provider = GeminiProvider(config=config, transport=_transport({"candidates": []}))

    with pytest.raises(ModelUnavailableError):
        await provider.complete("hi")


@pytest.mark.asyncio
async def test_http_error_status_is_model_unavailable(config):
    provider = ClaudeProvider(config=config, transport=_transport({"error": "nope"}, status=500))

    with pytest.raises(ModelUnavailableError) as excinfo:
        await provider.complete("hi")

    assert "claude API request failed" in excinfo.value.message


def test_missing_api_key_is_rejected():
    with pytest.raises(ValueError):
        GeminiProvider(config=LLMProviderConfig(gemini_api_key=""))


@pytest.mark.parametrize(
    "name, expected_type, expected_model",
    [
        (None, GeminiProvider, "gemini-2.0-flash"),
        ("anthropic", ClaudeProvider, "claude-haiku-4-5-20251001"),
        ("chatgpt", ChatGPTProvider, "gpt-4o-mini"),
        ("gemini-1.5-pro", GeminiProvider, "gemini-1.5-pro"),
        ("gpt-4o", ChatGPTProvider, "gpt-4o"),
    ],
)
def test_factory_resolves_names(config, name, expected_type, expected_model):
    provider = LLMProviderFactory.create(name, config=config)

    assert isinstance(provider, expected_type)
    assert provider.model == expected_model


def test_factory_rejects_unknown_provider(config):
    with pytest.raises(ValueError):
        LLMProviderFactory.create("llama", config=config)
