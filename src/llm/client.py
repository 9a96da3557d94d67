"""Streaming Claude completions for chat turns."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import anthropic

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

    from src.chat.models import Message
    from src.config import Settings

logger = logging.getLogger(__name__)


def split_system(messages: Sequence[Message]) -> tuple[str, list[dict[str, str]]]:
    """Separate system messages from conversation turns.

    Claude takes the system prompt as its own parameter. System messages
    are joined in order; the remaining turns keep their order.
    """
    system_parts = [m.content for m in messages if m.role == "system"]
    turns = [m.to_api() for m in messages if m.role != "system"]
    return "\n\n".join(system_parts), turns


class CompletionStreamer:
    """Streams a completion for an ordered message sequence.

    Errors raised before the first chunk reach the caller of the first
    ``__anext__``; errors mid-stream end the iteration with the exception,
    and whatever was already yielded stays delivered.
    """

    def __init__(
        self,
        client: anthropic.AsyncAnthropic,
        model: str,
        max_tokens: int = 1024,
    ) -> None:
        self._client = client
        self.model = model
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> CompletionStreamer:
        client = anthropic.AsyncAnthropic(
            api_key=settings.anthropic_api_key,
            timeout=settings.request_timeout_seconds,
            max_retries=0,
        )
        return cls(client, settings.chat_model, settings.chat_max_tokens)

    async def stream(self, messages: Sequence[Message], user_id: str) -> AsyncIterator[str]:
        """Yield text deltas for *messages*, scoped to *user_id*."""
        system, turns = split_system(messages)
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": turns,
            "metadata": {"user_id": user_id},
        }
        if system:
            kwargs["system"] = system

        async with self._client.messages.stream(**kwargs) as stream:
            async for text in stream.text_stream:
                yield text

    async def replay(self, text: str) -> AsyncIterator[str]:
        """Deliver a fixed reply through the same streaming interface."""
        yield text

    async def close(self) -> None:
        await self._client.close()
