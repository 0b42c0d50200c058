"""Redis sorted-set queue ordering pending reminders by due time.

Members are the serialized reminder bytes and scores are due timestamps.
Identical payloads with the same due time collapse into a single member; that
is the sorted set's own semantics and is accepted.
"""

import redis
import redis.asyncio as aioredis

from remindme.common.config import CommonSettings
from remindme.common.errors import StoreUnavailable
from remindme.common.logging import logger
from remindme.common.metrics import store_errors_total


class ReminderQueue:
    """Narrow insert / peek / remove view over one sorted-set key.

    Each worker owns its own instance and client; nothing is shared in-process.
    """

    def __init__(self, client: aioredis.Redis, key: str = "reminder_queue", service_name: str = "reminder-scheduler") -> None:
        self.client = client
        self.key = key
        self.service_name = service_name

    @classmethod
    def from_url(cls, url: str, key: str, timeout_seconds: float, service_name: str) -> "ReminderQueue":
        client = aioredis.Redis.from_url(
            url,
            decode_responses=False,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
        )
        return cls(client, key=key, service_name=service_name)

    @classmethod
    def from_settings(cls, settings: CommonSettings) -> "ReminderQueue":
        return cls.from_url(
            settings.redis_url,
            key=settings.reminder_queue_key,
            timeout_seconds=settings.store_timeout_seconds,
            service_name=settings.service_name,
        )

    def _unavailable(self, operation: str, exc: Exception) -> StoreUnavailable:
        store_errors_total.labels(service=self.service_name, operation=operation).inc()
        logger.warning("store_error key=%s operation=%s error=%s", self.key, operation, exc)
        return StoreUnavailable(operation, exc)

    async def ping(self) -> None:
        """Verify the store is reachable."""

        try:
            await self.client.ping()
        except (redis.RedisError, OSError) as exc:
            raise self._unavailable("ping", exc) from exc

    async def insert(self, payload: bytes, due_at: int) -> None:
        try:
            await self.client.zadd(self.key, {payload: due_at})
        except (redis.RedisError, OSError) as exc:
            raise self._unavailable("insert", exc) from exc

    async def peek_earliest(self) -> tuple[bytes, int] | None:
        """Return the lowest-scored entry without removing it."""

        try:
            rows = await self.client.zrange(self.key, 0, 0, withscores=True)
        except (redis.RedisError, OSError) as exc:
            raise self._unavailable("peek", exc) from exc
        if not rows:
            return None
        payload, score = rows[0]
        return payload, int(score)

    async def remove(self, payload: bytes) -> bool:
        """Remove one entry by exact payload; absent payloads are a no-op.

        Returns whether this call removed the entry, so concurrent dispatchers
        can tell who claimed it.
        """

        try:
            removed = await self.client.zrem(self.key, payload)
        except (redis.RedisError, OSError) as exc:
            raise self._unavailable("remove", exc) from exc
        return bool(removed)

    async def depth(self) -> int:
        try:
            return int(await self.client.zcard(self.key))
        except (redis.RedisError, OSError) as exc:
            raise self._unavailable("depth", exc) from exc

    async def upcoming(self, limit: int = 20) -> list[tuple[bytes, int]]:
        """Return up to `limit` entries in due order for ops inspection."""

        if limit <= 0:
            return []
        try:
            rows = await self.client.zrange(self.key, 0, limit - 1, withscores=True)
        except (redis.RedisError, OSError) as exc:
            raise self._unavailable("upcoming", exc) from exc
        return [(payload, int(score)) for payload, score in rows]

    async def close(self) -> None:
        await self.client.aclose()
