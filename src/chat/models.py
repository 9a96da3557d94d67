"""Request and record models for the chat and logging endpoints."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """A single conversation turn."""

    role: Literal["system", "user", "assistant"]
    content: str

    def to_api(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``.

    The last message is the latest user query; everything before it is
    prior history and is passed through in order.
    """

    model_config = ConfigDict(populate_by_name=True)

    messages: list[Message] = Field(min_length=1)
    user_id: str = Field(alias="userId")
    persona: Any = None

    @property
    def query(self) -> str:
        return self.messages[-1].content

    @property
    def history(self) -> list[Message]:
        return self.messages[:-1]


class LogRequest(BaseModel):
    """Body of ``POST /api/logging``."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    question: str
    response: str
    timestamp: str | None = None


def utc_timestamp(value: str | None = None) -> str:
    """ISO-8601 UTC timestamp with fixed microsecond precision.

    *value* is parsed with ``datetime.fromisoformat``; naive values are
    taken as UTC. Without *value* the current time is used. The fixed
    width keeps string order equal to chronological order.
    """
    if value is None:
        dt = datetime.now(UTC)
    else:
        dt = datetime.fromisoformat(value)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


class InteractionRecord(BaseModel):
    """A stored question/response pair. Write-once."""

    id: str
    user_id: str
    question: str
    response: str
    timestamp: str = Field(default_factory=utc_timestamp)

    def to_row(self) -> tuple[str, str, str, str, str]:
        return (self.id, self.user_id, self.question, self.response, self.timestamp)

    @classmethod
    def from_row(cls, row: tuple) -> InteractionRecord:
        return cls(
            id=row[0],
            user_id=row[1],
            question=row[2],
            response=row[3],
            timestamp=row[4],
        )
