"""
Unit tests for app/core/llm.py with a mocked OpenAI client.
"""
import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from app.core.config_loader import Settings
from app.core.exceptions import ProviderError
from app.core.llm import (
    CHAT_PARAMS,
    GENERATION_PARAMS,
    CompletionProvider,
    build_completion_provider,
)


def _chunk(text):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


class FakeStream:
    """Mimics openai.AsyncStream: async iterable with close()."""

    def __init__(self, chunks, stall_after=None, error=None):
        self.chunks = list(chunks)
        self.stall_after = stall_after
        self.error = error
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for i, chunk in enumerate(self.chunks):
            if self.stall_after is not None and i == self.stall_after:
                await asyncio.sleep(10)
            yield chunk
        if self.error is not None:
            raise self.error

    async def close(self):
        self.closed = True


def _provider(stream, idle_timeout=1.0):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=stream)
    return CompletionProvider(client=client, model="gpt-4o", idle_timeout=idle_timeout), client


async def _collect(provider, params=CHAT_PARAMS):
    return [f async for f in provider.stream([{"role": "user", "content": "hi"}], params)]


@pytest.mark.asyncio
async def test_yields_non_empty_deltas_in_order():
    stream = FakeStream([
        SimpleNamespace(choices=[]),  # content-filter chunk
        _chunk("Day 1"),
        _chunk(None),
        _chunk(""),
        _chunk(": Rome"),
    ])
    provider, _ = _provider(stream)
    assert await _collect(provider) == ["Day 1", ": Rome"]
    assert stream.closed


@pytest.mark.asyncio
async def test_request_carries_model_stream_flag_and_params():
    provider, client = _provider(FakeStream([_chunk("x")]))
    await _collect(provider, GENERATION_PARAMS)

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o"
    assert kwargs["stream"] is True
    assert kwargs["max_tokens"] == 4000
    assert kwargs["temperature"] == 0.7
    assert kwargs["top_p"] == 0.95


def test_chat_params_omit_top_p():
    assert "top_p" not in CHAT_PARAMS.as_kwargs()
    assert CHAT_PARAMS.as_kwargs()["max_tokens"] == 2000


@pytest.mark.asyncio
async def test_sdk_error_becomes_provider_error():
    request = httpx.Request("POST", "https://example.invalid/v1/chat/completions")
    stream = FakeStream([_chunk("partial")], error=openai.APIConnectionError(request=request))
    provider, _ = _provider(stream)

    received = []
    with pytest.raises(ProviderError):
        async for fragment in provider.stream([], CHAT_PARAMS):
            received.append(fragment)
    assert received == ["partial"]
    assert stream.closed


@pytest.mark.asyncio
async def test_stalled_stream_hits_idle_timeout():
    stream = FakeStream([_chunk("a"), _chunk("b")], stall_after=1)
    provider, _ = _provider(stream, idle_timeout=0.05)

    with pytest.raises(ProviderError):
        await _collect(provider)


@pytest.mark.asyncio
async def test_failed_request_becomes_provider_error():
    client = MagicMock()
    request = httpx.Request("POST", "https://example.invalid/v1/chat/completions")
    client.chat.completions.create = AsyncMock(side_effect=openai.APITimeoutError(request=request))
    provider = CompletionProvider(client=client, model="gpt-4o")

    with pytest.raises(ProviderError):
        await _collect(provider)


class TestBuildCompletionProvider:
    def test_plain_openai(self):
        provider = build_completion_provider(Settings(OPENAI_API_KEY="sk-test", PROVIDER_IDLE_TIMEOUT_SECONDS=12))
        assert isinstance(provider.client, openai.AsyncOpenAI)
        assert not isinstance(provider.client, openai.AsyncAzureOpenAI)
        assert provider.idle_timeout == 12

    def test_azure_when_endpoint_configured(self):
        provider = build_completion_provider(Settings(
            OPENAI_API_KEY="key",
            AZURE_OPENAI_ENDPOINT="https://example.openai.azure.com",
            OPENAI_MODEL="gpt-4o-deploy",
        ))
        assert isinstance(provider.client, openai.AsyncAzureOpenAI)
        assert provider.model == "gpt-4o-deploy"
