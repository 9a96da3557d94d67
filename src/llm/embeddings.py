"""Query embeddings via the OpenAI embeddings API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from openai import AsyncOpenAI

if TYPE_CHECKING:
    from src.config import Settings

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """Turns a query string into a single embedding vector.

    Upstream failures propagate to the caller; there is no retry.
    """

    def __init__(self, client: AsyncOpenAI, model: str) -> None:
        self._client = client
        self._model = model

    @classmethod
    def from_settings(cls, settings: Settings) -> EmbeddingClient:
        client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.request_timeout_seconds,
            max_retries=0,
        )
        return cls(client, settings.embedding_model)

    async def embed_query(self, query: str) -> list[float]:
        response = await self._client.embeddings.create(model=self._model, input=query)
        embedding = response.data[0].embedding
        logger.debug("Embedded query (%s, %dd)", self._model, len(embedding))
        return embedding

    async def close(self) -> None:
        await self._client.close()
