"""Completion providers."""

from echoroom.providers.base import LLMProvider, LLMResponse

__all__ = ["LLMProvider", "LLMResponse"]
