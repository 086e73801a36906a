"""LiteLLM provider implementation.

One attempt per call, bounded by a timeout. Timeouts and provider errors
come back as an ``finish_reason="error"`` response rather than an
exception, so callers decide what a failure means for them.
"""

from __future__ import annotations

import asyncio
import time as _time
from typing import Any

import litellm
from litellm import acompletion
from loguru import logger

from echoroom.providers.base import LLMProvider, LLMResponse

DEFAULT_MODEL = "mistral/mistral-medium-latest"

# Timeout for a single completion call
LLM_CALL_TIMEOUT: float = 15.0


class LiteLLMProvider(LLMProvider):
    """Completion provider backed by LiteLLM (Mistral, OpenAI, OpenRouter, ...)."""

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = DEFAULT_MODEL,
        extra_headers: dict[str, str] | None = None,
        timeout: float = LLM_CALL_TIMEOUT,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.extra_headers = extra_headers or {}
        self._timeout = timeout

        # Disable LiteLLM logging noise
        litellm.suppress_debug_info = True
        # Drop parameters a given provider does not accept
        litellm.drop_params = True

    async def _attempt_chat(
        self,
        model: str,
        messages: list[dict[str, Any]],
        max_tokens: int,
        temperature: float,
    ) -> LLMResponse:
        """Make a single LLM call with timeout. Raises on failure."""
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max(1, max_tokens),
            "temperature": temperature,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.extra_headers:
            kwargs["extra_headers"] = self.extra_headers

        response = await asyncio.wait_for(
            acompletion(**kwargs),
            timeout=self._timeout,
        )
        return self._parse_response(response, model)

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 512,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """
        Send a chat completion request via LiteLLM.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            model: Model identifier (e.g., 'mistral/mistral-medium-latest').
            max_tokens: Maximum tokens in response.
            temperature: Sampling temperature.

        Returns:
            LLMResponse with the completion, or an error response on
            timeout / provider failure.
        """
        model = model or self.default_model
        start = _time.perf_counter()
        try:
            result = await self._attempt_chat(model, messages, max_tokens, temperature)
        except asyncio.TimeoutError:
            logger.warning(f"LLM timeout after {self._timeout}s on {model}")
            return LLMResponse(
                content=f"Error calling LLM: timeout on {model}",
                finish_reason="error",
                model=model,
            )
        except Exception as e:
            logger.warning(f"LLM error on {model}: {e}")
            return LLMResponse(
                content=f"Error calling LLM: {str(e)}",
                finish_reason="error",
                model=model,
            )

        logger.debug(f"LLM call on {model} took {int((_time.perf_counter() - start) * 1000)}ms")
        return result

    def _parse_response(self, response: Any, model: str) -> LLMResponse:
        """Parse LiteLLM response into our standard format."""
        choice = response.choices[0]
        message = choice.message

        usage = {}
        if hasattr(response, "usage") and response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=message.content,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
            model=model,
        )

    def get_default_model(self) -> str:
        """Get the default model."""
        return self.default_model
