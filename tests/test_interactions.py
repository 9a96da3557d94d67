"""Tests for InteractionLog, the libsql append-only log."""

from pathlib import Path

import pytest

from src.analytics.interactions import InteractionLog
from src.db import DatabaseTarget


@pytest.fixture
def log(tmp_path: Path) -> InteractionLog:
    """Create an InteractionLog backed by a temp database."""
    return InteractionLog(DatabaseTarget(path=tmp_path / "test.db"))


async def test_record_returns_stored_record(log: InteractionLog) -> None:
    record = await log.record("user-1", "What is AWP?", "Average Wholesale Price.")

    assert record.user_id == "user-1"
    assert record.question == "What is AWP?"
    assert record.response == "Average Wholesale Price."
    assert record.id
    assert record.timestamp


async def test_record_then_read_back(log: InteractionLog) -> None:
    stored = await log.record("user-1", "q", "r")

    rows = await log.recent("user-1")

    assert rows == [stored]


async def test_client_timestamp_is_normalised_to_utc(log: InteractionLog) -> None:
    record = await log.record("user-1", "q", "r", timestamp="2025-03-01T10:00:00Z")
    assert record.timestamp == "2025-03-01T10:00:00.000000+00:00"
    rows = await log.recent("user-1")
    assert rows[0].timestamp == "2025-03-01T10:00:00.000000+00:00"


async def test_offset_timestamp_converted_to_utc(log: InteractionLog) -> None:
    record = await log.record("u", "q", "r", timestamp="2025-03-01T12:30:00+02:00")
    assert record.timestamp == "2025-03-01T10:30:00.000000+00:00"


async def test_server_timestamp_is_utc_with_microseconds(log: InteractionLog) -> None:
    record = await log.record("u", "q", "r")
    assert record.timestamp.endswith("+00:00")
    assert len(record.timestamp) == len("2025-03-01T10:00:00.000000+00:00")


async def test_recent_orders_mixed_timestamp_formats_chronologically(
    log: InteractionLog,
) -> None:
    await log.record("u", "earliest", "r", timestamp="2025-01-01T09:00:00Z")
    await log.record("u", "middle", "r", timestamp="2025-01-01T10:00:00.500+01:00")
    await log.record("u", "latest", "r", timestamp="2025-01-01T09:30:00+00:00")

    rows = await log.recent("u")

    assert [r.question for r in rows] == ["latest", "middle", "earliest"]


async def test_unparseable_timestamp_is_rejected(log: InteractionLog) -> None:
    with pytest.raises(ValueError):
        await log.record("u", "q", "r", timestamp="yesterday")
    assert await log.recent("u") == []


async def test_recent_newest_first_and_scoped_to_user(log: InteractionLog) -> None:
    await log.record("user-1", "first", "r", timestamp="2025-01-01T00:00:00")
    await log.record("user-1", "second", "r", timestamp="2025-01-02T00:00:00")
    await log.record("user-2", "other", "r", timestamp="2025-01-03T00:00:00")

    rows = await log.recent("user-1")

    assert [r.question for r in rows] == ["second", "first"]


async def test_recent_respects_limit(log: InteractionLog) -> None:
    for i in range(5):
        await log.record("u", f"q{i}", "r", timestamp=f"2025-01-0{i + 1}T00:00:00")
    rows = await log.recent("u", limit=2)
    assert [r.question for r in rows] == ["q4", "q3"]


async def test_records_are_append_only(log: InteractionLog) -> None:
    first = await log.record("u", "same question", "answer one")
    second = await log.record("u", "same question", "answer two")

    assert first.id != second.id
    assert len(await log.recent("u")) == 2


async def test_recent_empty(log: InteractionLog) -> None:
    assert await log.recent("nobody") == []
