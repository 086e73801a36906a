"""Tests for LiteLLMProvider — single attempt, timeout and error responses."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from echoroom.providers.litellm_provider import DEFAULT_MODEL, LiteLLMProvider


def fake_completion(content: str = "hello", finish_reason: str = "stop"):
    return SimpleNamespace(
        choices=[SimpleNamespace(
            message=SimpleNamespace(content=content),
            finish_reason=finish_reason,
        )],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=3, total_tokens=13),
    )


MESSAGES = [{"role": "system", "content": "be kind"}, {"role": "user", "content": "hi"}]


class TestLiteLLMProvider:
    def test_default_model(self):
        assert LiteLLMProvider().get_default_model() == DEFAULT_MODEL == "mistral/mistral-medium-latest"

    @pytest.mark.asyncio
    async def test_successful_call(self):
        provider = LiteLLMProvider(api_key="sk-test", api_base="https://example.invalid")
        mock = AsyncMock(return_value=fake_completion("Welcome!"))
        with patch("echoroom.providers.litellm_provider.acompletion", mock):
            resp = await provider.chat(MESSAGES, max_tokens=50, temperature=0.3)

        assert resp.content == "Welcome!"
        assert not resp.is_error
        assert resp.usage["total_tokens"] == 13
        assert resp.model == DEFAULT_MODEL
        kwargs = mock.call_args.kwargs
        assert kwargs["model"] == DEFAULT_MODEL
        assert kwargs["api_key"] == "sk-test"
        assert kwargs["api_base"] == "https://example.invalid"
        assert kwargs["max_tokens"] == 50
        assert kwargs["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_model_override_and_no_key(self):
        provider = LiteLLMProvider()
        mock = AsyncMock(return_value=fake_completion())
        with patch("echoroom.providers.litellm_provider.acompletion", mock):
            await provider.chat(MESSAGES, model="openai/gpt-4o-mini")
        kwargs = mock.call_args.kwargs
        assert kwargs["model"] == "openai/gpt-4o-mini"
        assert "api_key" not in kwargs

    @pytest.mark.asyncio
    async def test_exception_becomes_error_response(self):
        provider = LiteLLMProvider()
        mock = AsyncMock(side_effect=RuntimeError("401 unauthorized"))
        with patch("echoroom.providers.litellm_provider.acompletion", mock):
            resp = await provider.chat(MESSAGES)
        assert resp.is_error
        assert "401 unauthorized" in resp.content
        mock.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_timeout_becomes_error_response(self):
        async def hang(**kwargs):
            await asyncio.sleep(5)

        provider = LiteLLMProvider(timeout=0.05)
        with patch("echoroom.providers.litellm_provider.acompletion", hang):
            resp = await provider.chat(MESSAGES)
        assert resp.is_error
        assert "timeout" in resp.content
