"""Chat turn orchestration: greeting branch, retrieval, prompt, stream, memory.

A turn runs in two steps. ``prepare()`` does everything that can fail
before any output exists (embedding, retrieval, prompt composition), so
the HTTP layer can still answer with an error status. ``stream()`` then
yields the reply and, once it has been fully delivered, schedules the
memory write in the background.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from src.chat.greetings import is_greeting, pick_greeting
from src.chat.models import Message
from src.llm.prompt import Persona, resolve_persona
from src.memory.store import format_memories

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Coroutine

    from src.chat.models import ChatRequest
    from src.llm.client import CompletionStreamer
    from src.llm.embeddings import EmbeddingClient
    from src.llm.prompt import PromptComposer
    from src.memory.store import MemoryStore
    from src.retrieval.store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class ChatTurn:
    """A prepared turn, ready to stream."""

    user_id: str
    persona: Persona
    query: str
    history: list[Message]
    # system + history + user
    messages: list[Message]
    # Recalled memories; sent to the model but never recorded back
    recalled: Message | None = None
    # Fixed reply for greetings; set means no model call
    greeting: str | None = None
    started_at: float = field(default_factory=time.perf_counter)

    @property
    def is_greeting(self) -> bool:
        return self.greeting is not None

    def streamer_messages(self) -> list[Message]:
        """Messages sent to the completion streamer.

        The recalled-memories block, if any, follows the composed system
        prompt.
        """
        if self.recalled is None:
            return list(self.messages)
        return [self.messages[0], self.recalled, *self.messages[1:]]

    def memory_messages(self, reply: str) -> list[Message]:
        """Sequence persisted after the reply has been delivered.

        A normal turn records system + history + user plus the reply;
        recalled memories are left out. A greeting records prior history
        plus the user/assistant pair.
        """
        assistant = Message(role="assistant", content=reply)
        if self.is_greeting:
            return [*self.history, Message(role="user", content=self.query), assistant]
        return [*self.messages, assistant]


class ChatPipeline:
    """Runs one chat turn end to end.

    Holds no per-request state; the only thing shared across requests is
    the set of in-flight memory writes, which ``drain()`` awaits.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        retriever: DocumentStore,
        prompts: PromptComposer,
        streamer: CompletionStreamer,
        memory: MemoryStore,
        rng: random.Random | None = None,
        memory_recall_limit: int = 0,
    ) -> None:
        self._embedder = embedder
        self._retriever = retriever
        self._prompts = prompts
        self._streamer = streamer
        self._memory = memory
        self._rng = rng or random.Random()
        self._memory_recall_limit = memory_recall_limit
        self._background: set[asyncio.Task] = set()

    async def prepare(self, request: ChatRequest) -> ChatTurn:
        """Resolve persona, branch on greetings, retrieve and compose.

        Embedding and retrieval errors propagate.
        """
        started = time.perf_counter()
        persona = resolve_persona(request.persona)
        query = request.query
        history = request.history

        if is_greeting(query):
            logger.info("Greeting detected, sending default response")
            system = Message(role="system", content=self._prompts.template(persona))
            return ChatTurn(
                user_id=request.user_id,
                persona=persona,
                query=query,
                history=list(history),
                messages=[system, *history, Message(role="user", content=query)],
                greeting=pick_greeting(self._rng),
                started_at=started,
            )

        logger.info("Processing regular query with %s persona", persona.value)
        embedding = await self._embedder.embed_query(query)
        context = await self._retriever.retrieve(embedding)

        system = Message(role="system", content=self._prompts.compose(persona, context))
        recalled = await self._recall(query, request.user_id)

        return ChatTurn(
            user_id=request.user_id,
            persona=persona,
            query=query,
            history=list(history),
            messages=[system, *history, Message(role="user", content=query)],
            recalled=Message(role="system", content=recalled) if recalled else None,
            started_at=started,
        )

    async def stream(self, turn: ChatTurn) -> AsyncIterator[str]:
        """Yield the reply; record memory once it has been fully delivered.

        An exception mid-stream propagates and nothing is recorded.
        """
        if turn.greeting is not None:
            chunks = self._streamer.replay(turn.greeting)
        else:
            chunks = self._streamer.stream(turn.streamer_messages(), turn.user_id)

        parts: list[str] = []
        async for chunk in chunks:
            parts.append(chunk)
            yield chunk

        reply = "".join(parts)
        self._spawn(self._memory.record(turn.memory_messages(reply), turn.user_id))

    async def drain(self) -> None:
        """Wait for outstanding memory writes."""
        if self._background:
            logger.info("Waiting for %d memory write(s)", len(self._background))
            await asyncio.gather(*self._background, return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._background)

    async def _recall(self, query: str, user_id: str) -> str:
        if self._memory_recall_limit <= 0 or not self._memory.enabled:
            return ""
        entries = await self._memory.search(query, user_id, limit=self._memory_recall_limit)
        return format_memories(entries)

    def _spawn(self, coro: Coroutine) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background memory write failed", exc_info=task.exception())
