"""Async database connection abstraction over libsql.

Provides a thin async wrapper around the synchronous ``libsql`` driver using
``asyncio.to_thread()``.  Connection target is determined by the caller's
``DatabaseTarget``:

- **Production**: ``TURSO_DATABASE_URL`` + ``TURSO_AUTH_TOKEN`` → remote Turso
- **Dev/test**: no Turso URL → local SQLite file at ``database_path``
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import libsql

if TYPE_CHECKING:
    from pathlib import Path

    from src.config import Settings


@dataclass(frozen=True)
class DatabaseTarget:
    """Where the interaction log lives."""

    path: Path
    turso_url: str = ""
    turso_auth_token: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> DatabaseTarget:
        return cls(
            path=settings.database_path,
            turso_url=settings.turso_database_url,
            turso_auth_token=settings.turso_auth_token,
        )


class _AsyncCursor:
    """Thin async wrapper around a synchronous libsql cursor."""

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor

    async def fetchall(self) -> list[tuple]:
        return await asyncio.to_thread(self._cursor.fetchall)


class _AsyncConnection:
    """Thin async wrapper around a synchronous libsql connection."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    async def execute(self, sql: str, params: tuple = ()) -> _AsyncCursor:
        cursor = await asyncio.to_thread(self._conn.execute, sql, params)
        return _AsyncCursor(cursor)

    async def commit(self) -> None:
        await asyncio.to_thread(self._conn.commit)

    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)


def _open_local(path: str) -> Any:
    """Open a local libsql connection with WAL mode and busy timeout."""
    conn = libsql.connect(path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


async def get_connection(target: DatabaseTarget) -> _AsyncConnection:
    """Return an async-wrapped libsql connection for *target*.

    A Turso URL triggers a remote connection; otherwise the local file at
    ``target.path`` is used and its parent directory created on demand.
    """
    if target.turso_url:
        conn = await asyncio.to_thread(
            libsql.connect,
            database=target.turso_url,
            auth_token=target.turso_auth_token,
        )
        return _AsyncConnection(conn)

    target.path.parent.mkdir(parents=True, exist_ok=True)
    conn = await asyncio.to_thread(_open_local, str(target.path))
    return _AsyncConnection(conn)
