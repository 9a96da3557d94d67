"""Nearest-neighbour passage lookup against a pgvector document table.

Similarity is ``1 - (vector <=> query)``, i.e. one minus pgvector's cosine
distance. Only passages strictly above the threshold are returned, best
first, capped at ``top_k``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

import asyncpg

if TYPE_CHECKING:
    from collections.abc import Sequence

    from src.config import Settings

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_SEARCH_SQL = """
SELECT contents, 1 - (vector <=> $1::vector) AS similarity
FROM {table}
WHERE 1 - (vector <=> $1::vector) > $2
ORDER BY similarity DESC
LIMIT $3
"""


@dataclass(frozen=True)
class Passage:
    content: str
    similarity: float


def to_vector_literal(embedding: Sequence[float]) -> str:
    """Format an embedding as a pgvector text literal: ``[0.1,0.2,...]``."""
    return "[" + ",".join(repr(float(x)) for x in embedding) + "]"


class DocumentStore:
    """Similarity search over the document table.

    Shares one bounded asyncpg pool across requests. A query acquires a
    connection for its duration and releases it; callers wait when the
    pool is exhausted.
    """

    def __init__(
        self,
        pool: asyncpg.Pool,
        table: str = "documents_2",
        top_k: int = 5,
        threshold: float = 0.7,
    ) -> None:
        if not _IDENTIFIER.match(table):
            raise ValueError(f"Invalid documents table name: {table!r}")
        self._pool = pool
        self._sql = _SEARCH_SQL.format(table=table)
        self.top_k = top_k
        self.threshold = threshold

    @classmethod
    async def open(cls, settings: Settings) -> DocumentStore:
        """Create the connection pool and return a ready store."""
        pool = await asyncpg.create_pool(
            dsn=settings.documents_database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )
        logger.info(
            "Document store pool ready (table=%s, pool=%d..%d)",
            settings.documents_table,
            settings.db_pool_min_size,
            settings.db_pool_max_size,
        )
        return cls(
            pool,
            table=settings.documents_table,
            top_k=settings.retrieval_top_k,
            threshold=settings.similarity_threshold,
        )

    async def search(self, embedding: Sequence[float]) -> list[Passage]:
        """Return passages above the threshold, most similar first."""
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                self._sql, to_vector_literal(embedding), self.threshold, self.top_k
            )
        # Threshold and limit are enforced here as well as in SQL.
        passages = [
            Passage(content=row["contents"], similarity=float(row["similarity"]))
            for row in rows
            if float(row["similarity"]) > self.threshold
        ]
        return passages[: self.top_k]

    async def retrieve(self, embedding: Sequence[float]) -> str:
        """Joined passage text for prompt injection; empty when nothing matches."""
        passages = await self.search(embedding)
        logger.info(
            "Retrieved %d passage(s)%s",
            len(passages),
            f" (best={passages[0].similarity:.3f})" if passages else "",
        )
        return "\n\n".join(p.content for p in passages)

    async def close(self) -> None:
        await self._pool.close()
