"""Shared test fixtures."""

from __future__ import annotations

import random
from unittest.mock import AsyncMock

import pytest

from src.chat.pipeline import ChatPipeline
from src.llm.prompt import PromptComposer
from src.memory.store import MemoryStore


class FakeStreamer:
    """Completion streamer double that records what it was asked to stream."""

    def __init__(self, chunks: list[str] | None = None, fail_after: int | None = None) -> None:
        self.chunks = chunks if chunks is not None else ["AWP is ", "a pricing ", "benchmark."]
        self.fail_after = fail_after
        self.calls: list[tuple[list, str]] = []
        self.replayed: list[str] = []

    async def stream(self, messages, user_id):
        self.calls.append((list(messages), user_id))
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i >= self.fail_after:
                raise RuntimeError("provider stream broke")
            yield chunk

    async def replay(self, text):
        self.replayed.append(text)
        yield text


@pytest.fixture
def embedder() -> AsyncMock:
    fake = AsyncMock()
    fake.embed_query.return_value = [0.01] * 1536
    return fake


@pytest.fixture
def retriever() -> AsyncMock:
    fake = AsyncMock()
    fake.retrieve.return_value = "AWP is the Average Wholesale Price."
    return fake


@pytest.fixture
def streamer() -> FakeStreamer:
    return FakeStreamer()


@pytest.fixture
def memory_client() -> AsyncMock:
    client = AsyncMock()
    client.search.return_value = {"results": []}
    return client


@pytest.fixture
def memory(memory_client: AsyncMock) -> MemoryStore:
    return MemoryStore(client=memory_client)


@pytest.fixture(scope="session")
def prompts() -> PromptComposer:
    return PromptComposer()


@pytest.fixture
def pipeline(embedder, retriever, prompts, streamer, memory) -> ChatPipeline:
    return ChatPipeline(
        embedder=embedder,
        retriever=retriever,
        prompts=prompts,
        streamer=streamer,
        memory=memory,
        rng=random.Random(42),
    )


@pytest.fixture
def make_streamer():
    """Factory for streamers with custom chunks or a mid-stream failure."""
    return FakeStreamer
