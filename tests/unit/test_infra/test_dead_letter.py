"""Tests for the Redis dead-letter store."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from taskflow.core.settings import RedisSettings, TaskSettings
from taskflow.infra.tasks.dead_letter import (
    DeadLetterEntry,
    RedisDeadLetterStore,
    create_dead_letter_store,
)
from taskflow.infra.tasks.jobs import Job


@pytest.fixture
def mock_redis() -> MagicMock:
    """Mock ``redis.asyncio.Redis`` with a recording pipeline."""
    redis = MagicMock()
    pipeline = MagicMock()
    pipeline.execute = AsyncMock(return_value=[1, True, 1])
    redis.pipeline.return_value = pipeline
    redis.zrevrange = AsyncMock(return_value=[])
    redis.hgetall = AsyncMock(return_value={})
    redis.zrem = AsyncMock(return_value=1)
    redis.zcard = AsyncMock(return_value=0)
    redis.aclose = AsyncMock()
    return redis


@pytest.fixture
def store(mock_redis: MagicMock) -> RedisDeadLetterStore:
    return RedisDeadLetterStore(mock_redis, key_prefix="test:dlq", ttl_seconds=3600)


@pytest.mark.unit
class TestRedisDeadLetterStore:
    @pytest.mark.asyncio
    async def test_record_writes_hash_ttl_and_index(self, store, mock_redis) -> None:
        job = Job(id="job-1", kind="send-email", payload={"to": "x"}, attempt=2)

        entry = await store.record(job, "Unknown job type")

        pipe = mock_redis.pipeline.return_value
        pipe.hset.assert_called_once()
        key = pipe.hset.call_args.args[0]
        mapping = pipe.hset.call_args.kwargs["mapping"]
        assert key == "test:dlq:entry:job-1"
        assert mapping["kind"] == "send-email"
        assert mapping["payload"] == '{"to": "x"}'
        assert mapping["attempt"] == "2"
        pipe.expire.assert_called_once_with("test:dlq:entry:job-1", 3600)
        pipe.zadd.assert_called_once_with("test:dlq:index", {"job-1": entry.failed_at.timestamp()})
        pipe.execute.assert_awaited_once()
        assert entry.reason == "Unknown job type"

    @pytest.mark.asyncio
    async def test_list_entries_newest_first_and_prunes_expired(self, store, mock_redis) -> None:
        failed_at = datetime(2026, 10, 19, 8, 30, tzinfo=UTC)
        stored = DeadLetterEntry(
            job_id="job-2",
            kind="mystery",
            payload={"a": 1},
            attempt=1,
            reason="Unknown job type",
            failed_at=failed_at,
        ).to_redis()
        mock_redis.zrevrange.return_value = [b"job-2", b"job-gone"]
        mock_redis.hgetall.side_effect = [stored, {}]

        entries = await store.list_entries(limit=10)

        mock_redis.zrevrange.assert_awaited_once_with("test:dlq:index", 0, 9)
        assert [e.job_id for e in entries] == ["job-2"]
        assert entries[0].payload == {"a": 1}
        assert entries[0].failed_at == failed_at
        mock_redis.zrem.assert_awaited_once_with("test:dlq:index", "job-gone")

    @pytest.mark.asyncio
    async def test_count_and_close(self, store, mock_redis) -> None:
        mock_redis.zcard.return_value = 3

        assert await store.count() == 3
        await store.close()

        mock_redis.aclose.assert_awaited_once()


@pytest.mark.unit
class TestCreateDeadLetterStore:
    def test_none_without_redis(self) -> None:
        assert create_dead_letter_store(RedisSettings(), TaskSettings()) is None

    def test_none_when_disabled(self) -> None:
        settings = RedisSettings(redis_url="redis://localhost:6379/0")

        assert create_dead_letter_store(settings, TaskSettings(dead_letter_enabled=False)) is None

    def test_builds_store(self) -> None:
        store = create_dead_letter_store(
            RedisSettings(redis_url="redis://localhost:6379/0"),
            TaskSettings(dead_letter_key_prefix="x:dlq", dead_letter_retention_hours=2),
        )

        assert isinstance(store, RedisDeadLetterStore)
        assert store._key_prefix == "x:dlq"
        assert store._ttl_seconds == 7200
