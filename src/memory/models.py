"""Data models for long-term memory."""

from pydantic import BaseModel


class MemoryEntry(BaseModel):
    """A memory recalled from the store."""

    id: str
    content: str
    score: float = 0.0
    created_at: str = ""
