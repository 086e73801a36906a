"""ReplyOracle — turns recent chat history into a moderator utterance.

Builds the persona directive for the room's category, keeps only the most
recent participant turns, and makes one completion call. Any failure
(timeout, network, provider error, malformed response) degrades to a fixed
phrase: a broken provider must never stop a room from working.
"""

from __future__ import annotations

import asyncio
import time as _time
from typing import TYPE_CHECKING, Sequence

from loguru import logger

from echoroom.moderation.models import (
    EMPTY_REPLY_FALLBACK,
    PROVIDER_FAILURE_FALLBACK,
    ChatMessage,
    persona_for,
)

if TYPE_CHECKING:
    from echoroom.providers.base import LLMProvider

DEFAULT_TURN_WINDOW = 5
DEFAULT_TIMEOUT = 15.0

SUMMON_INSTRUCTION = (
    'Someone directly requested support by mentioning "@mod". Respond with one '
    "helpful coping mechanism, motivational insight, or actionable suggestion. "
    "Be empathetic, warm, and emotionally supportive."
)
IDLE_INSTRUCTION = (
    "Below are recent messages in the room. Reflect on the tone and encourage "
    "continued participation in a thoughtful and natural way."
)


def build_prompt(
    history: Sequence[ChatMessage],
    category: str | None,
    is_direct_summon: bool,
    turn_window: int = DEFAULT_TURN_WINDOW,
) -> list[dict[str, str]]:
    """Build the system + user messages for one completion call.

    ``history`` must be chronological (oldest first). Moderator turns are
    dropped before windowing so the moderator never replies to itself.
    """
    persona = persona_for(category)
    turns = [m for m in history if not m.is_moderator]
    if turn_window > 0:
        turns = turns[-turn_window:]
    transcript = "\n".join(f"{m.sender}: {m.text}" for m in turns)
    instruction = SUMMON_INSTRUCTION if is_direct_summon else IDLE_INSTRUCTION

    user_msg = (
        f"{persona}\n\n"
        f"{instruction}\n\n"
        f"Chat History:\n{transcript}\n\n"
        "Moderator:"
    )
    return [
        {"role": "system", "content": persona},
        {"role": "user", "content": user_msg},
    ]


class ReplyOracle:
    """Stateless adapter from chat history to a moderator reply."""

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 300,
        turn_window: int = DEFAULT_TURN_WINDOW,
        timeout_seconds: float = DEFAULT_TIMEOUT,
    ):
        self._provider = provider
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._turn_window = turn_window
        self._timeout = timeout_seconds

    async def generate_reply(
        self,
        history: Sequence[ChatMessage],
        category: str | None,
        is_direct_summon: bool = False,
    ) -> str:
        """Return a moderator utterance. Never raises."""
        messages = build_prompt(history, category, is_direct_summon, self._turn_window)
        start = _time.perf_counter()

        try:
            response = await asyncio.wait_for(
                self._provider.chat(
                    messages=messages,
                    model=self._model,
                    max_tokens=self._max_tokens,
                    temperature=self._temperature,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Oracle: provider timeout after {self._timeout}s, using fallback")
            return PROVIDER_FAILURE_FALLBACK
        except Exception as e:
            logger.warning(f"Oracle: provider failed ({e}), using fallback")
            return PROVIDER_FAILURE_FALLBACK

        if getattr(response, "finish_reason", None) == "error":
            logger.warning(f"Oracle: provider returned error ({response.content}), using fallback")
            return PROVIDER_FAILURE_FALLBACK

        content = getattr(response, "content", None)
        reply = content.strip() if isinstance(content, str) else ""
        latency_ms = int((_time.perf_counter() - start) * 1000)
        if not reply:
            logger.info(f"Oracle: empty completion ({latency_ms}ms), using fallback")
            return EMPTY_REPLY_FALLBACK

        logger.debug(f"Oracle: reply in {latency_ms}ms (summon={is_direct_summon})")
        return reply
