"""Dead-letter store for jobs the worker could not route.

Each entry is a Redis hash with a TTL, indexed by a sorted set scored by
failure time so that the newest entries can be listed first.

Keys:
    <prefix>:entry:<job_id>   hash with the entry fields
    <prefix>:index            sorted set job_id -> failed_at timestamp
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

from redis.asyncio import ConnectionPool, Redis

from taskflow.core.settings import RedisSettings, TaskSettings, get_redis_settings, get_task_settings

if TYPE_CHECKING:
    from taskflow.infra.tasks.jobs import Job

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class DeadLetterEntry:
    """A job parked for manual inspection."""

    job_id: str
    kind: str
    payload: dict[str, Any]
    attempt: int
    reason: str
    failed_at: datetime

    def to_redis(self) -> dict[str, str]:
        data = asdict(self)
        data["payload"] = json.dumps(self.payload, default=str)
        data["attempt"] = str(self.attempt)
        data["failed_at"] = self.failed_at.isoformat()
        return data

    @classmethod
    def from_redis(cls, data: dict[str, str]) -> DeadLetterEntry:
        return cls(
            job_id=data["job_id"],
            kind=data.get("kind", ""),
            payload=json.loads(data.get("payload") or "{}"),
            attempt=int(data.get("attempt") or 1),
            reason=data.get("reason", ""),
            failed_at=datetime.fromisoformat(data["failed_at"]),
        )


class DeadLetterStore(Protocol):
    """Durable record of jobs that could not be processed."""

    async def record(self, job: Job, reason: str) -> DeadLetterEntry: ...

    async def list_entries(self, limit: int = 50) -> list[DeadLetterEntry]: ...

    async def count(self) -> int: ...


class RedisDeadLetterStore:
    """``DeadLetterStore`` backed by ``redis.asyncio``."""

    def __init__(
        self,
        redis: Redis,
        *,
        key_prefix: str = "taskflow:dlq",
        ttl_seconds: int = 7 * 24 * 3600,
    ) -> None:
        self._redis = redis
        self._key_prefix = key_prefix
        self._ttl_seconds = ttl_seconds

    def _entry_key(self, job_id: str) -> str:
        return f"{self._key_prefix}:entry:{job_id}"

    def _index_key(self) -> str:
        return f"{self._key_prefix}:index"

    async def record(self, job: Job, reason: str) -> DeadLetterEntry:
        entry = DeadLetterEntry(
            job_id=job.id,
            kind=job.kind,
            payload=dict(job.payload),
            attempt=job.attempt,
            reason=reason,
            failed_at=datetime.now(UTC),
        )

        entry_key = self._entry_key(job.id)
        pipe = self._redis.pipeline()
        pipe.hset(entry_key, mapping=entry.to_redis())
        pipe.expire(entry_key, self._ttl_seconds)
        pipe.zadd(self._index_key(), {job.id: entry.failed_at.timestamp()})
        await pipe.execute()

        logger.warning(
            "Job moved to dead-letter store",
            extra={"job_id": job.id, "job_kind": job.kind, "reason": reason, "operation": "dlq.record"},
        )
        return entry

    async def list_entries(self, limit: int = 50) -> list[DeadLetterEntry]:
        """Newest entries first; index members whose hash expired are pruned."""
        job_ids = await self._redis.zrevrange(self._index_key(), 0, limit - 1)

        entries: list[DeadLetterEntry] = []
        expired: list[str] = []
        for job_id in job_ids:
            job_id = job_id.decode() if isinstance(job_id, bytes) else job_id
            data = await self._redis.hgetall(self._entry_key(job_id))
            if not data:
                expired.append(job_id)
                continue
            entries.append(DeadLetterEntry.from_redis(_decode(data)))

        if expired:
            await self._redis.zrem(self._index_key(), *expired)
        return entries

    async def count(self) -> int:
        return int(await self._redis.zcard(self._index_key()))

    async def close(self) -> None:
        await self._redis.aclose()


def _decode(data: dict[Any, Any]) -> dict[str, str]:
    return {
        (k.decode() if isinstance(k, bytes) else k): (v.decode() if isinstance(v, bytes) else v)
        for k, v in data.items()
    }


def create_dead_letter_store(
    redis_settings: RedisSettings | None = None,
    task_settings: TaskSettings | None = None,
) -> RedisDeadLetterStore | None:
    """Build the Redis store, or ``None`` when disabled or Redis is not configured."""
    redis_settings = redis_settings or get_redis_settings()
    task_settings = task_settings or get_task_settings()

    if not task_settings.dead_letter_enabled:
        logger.info("Dead-letter store is disabled")
        return None
    if not redis_settings.is_configured:
        logger.warning("Redis not configured - dead-letter store disabled")
        return None

    pool = ConnectionPool.from_url(
        redis_settings.get_url(),
        max_connections=redis_settings.max_connections,
        socket_timeout=redis_settings.socket_timeout,
        decode_responses=True,
    )
    return RedisDeadLetterStore(
        Redis(connection_pool=pool),
        key_prefix=task_settings.dead_letter_key_prefix,
        ttl_seconds=task_settings.dead_letter_ttl_seconds,
    )
