"""Long-term conversational memory backed by Mem0.

Supports two modes controlled by environment variables:
- Hosted (default): Set MEM0_API_KEY. Uses Mem0's cloud platform.
- Disabled: No MEM0_API_KEY. Memory operations become no-ops and
  search returns empty results. Chat still works, just without
  long-term memory.

Every operation is best-effort: failures are logged and never raised.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from src.memory.models import MemoryEntry

if TYPE_CHECKING:
    from collections.abc import Sequence

    from src.chat.models import Message
    from src.config import Settings

logger = logging.getLogger(__name__)


class MemoryStore:
    """Per-user memory scoped by the request's user id."""

    def __init__(self, client: Any = None) -> None:
        self._client = client
        self._enabled = client is not None

    @classmethod
    def from_settings(cls, settings: Settings) -> MemoryStore:
        if not settings.mem0_api_key:
            logger.warning(
                "Memory store disabled. Set MEM0_API_KEY to enable. "
                "Get a free key at https://app.mem0.ai"
            )
            return cls()
        try:
            from mem0 import AsyncMemoryClient

            client = AsyncMemoryClient(api_key=settings.mem0_api_key)
        except Exception:
            logger.exception("Failed to init Mem0 client")
            return cls()
        logger.info("Memory store: hosted mode (Mem0 cloud)")
        return cls(client)

    @property
    def enabled(self) -> bool:
        return self._enabled

    # -- Write ---------------------------------------------------------------

    async def record(self, messages: Sequence[Message], user_id: str) -> bool:
        """Persist an ordered turn sequence for *user_id*.

        Returns True if Mem0 accepted the write.
        """
        if not self._enabled:
            return False

        try:
            await self._client.add([m.to_api() for m in messages], user_id=user_id)
        except Exception:
            logger.exception("Failed to record memory for user %s", user_id)
            return False
        logger.info("Recorded %d message(s) to memory for user %s", len(messages), user_id)
        return True

    # -- Read ----------------------------------------------------------------

    async def search(self, query: str, user_id: str, limit: int = 5) -> list[MemoryEntry]:
        """Search *user_id*'s memories by relevance to *query*."""
        if not self._enabled or limit <= 0:
            return []

        try:
            raw = await self._client.search(query, user_id=user_id, limit=limit)
        except Exception:
            logger.exception("Memory search failed for user %s", user_id)
            return []
        return self._normalize(raw)[:limit]

    # -- Helpers -------------------------------------------------------------

    @staticmethod
    def _normalize(raw: Any) -> list[MemoryEntry]:
        """Normalize Mem0 results (v1 list or v2 dict) into MemoryEntry list."""
        if isinstance(raw, dict):
            items = raw.get("results", [])
        elif isinstance(raw, list):
            items = raw
        else:
            items = []

        return [
            MemoryEntry(
                id=item.get("id", ""),
                content=item.get("memory", ""),
                score=item.get("score") or 0.0,
                created_at=item.get("created_at") or "",
            )
            for item in items
            if item.get("memory")
        ]


def format_memories(entries: Sequence[MemoryEntry]) -> str:
    """Format recalled memories as a system prompt section."""
    if not entries:
        return ""
    lines = ["## Recalled Memories\n"]
    lines.extend(f"- {entry.content}" for entry in entries)
    return "\n".join(lines)
