"""InteractionLog: append-only question/response records in libsql."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from src.chat.models import InteractionRecord, utc_timestamp
from src.db import get_connection

if TYPE_CHECKING:
    from src.db import DatabaseTarget

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS interactions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    question TEXT NOT NULL,
    response TEXT NOT NULL,
    created_at TEXT NOT NULL
)
"""

_CREATE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_interactions_user
ON interactions (user_id, created_at)
"""


class InteractionLog:
    """Records each answered question for analytics.

    Rows are only ever inserted; there is no update or delete.
    """

    def __init__(self, target: DatabaseTarget) -> None:
        self._target = target
        self._initialised = False

    async def _connect(self):
        conn = await get_connection(self._target)
        if not self._initialised:
            await conn.execute(_CREATE_TABLE)
            await conn.execute(_CREATE_INDEX)
            await conn.commit()
            self._initialised = True
        return conn

    async def record(
        self,
        user_id: str,
        question: str,
        response: str,
        timestamp: str | None = None,
    ) -> InteractionRecord:
        """Insert one interaction and return the stored record.

        A client *timestamp* is normalised to UTC; an unparseable one
        raises ``ValueError``.
        """
        record = InteractionRecord(
            id=uuid.uuid4().hex,
            user_id=user_id,
            question=question,
            response=response,
            timestamp=utc_timestamp(timestamp or None),
        )

        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO interactions (id, user_id, question, response, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                record.to_row(),
            )
            await conn.commit()
        finally:
            await conn.close()

        logger.info(
            "Stored interaction: user=%s, question=%r, response=%d chars",
            user_id,
            question[:80],
            len(response),
        )
        return record

    async def recent(self, user_id: str, limit: int = 20) -> list[InteractionRecord]:
        """Newest interactions for *user_id* first."""
        conn = await self._connect()
        try:
            cursor = await conn.execute(
                """
                SELECT id, user_id, question, response, created_at
                FROM interactions
                WHERE user_id = ?
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (user_id, limit),
            )
            rows = await cursor.fetchall()
        finally:
            await conn.close()
        return [InteractionRecord.from_row(row) for row in rows]
