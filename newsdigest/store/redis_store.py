"""Redis-backed store.

Key structure:
- article:{id} - raw article JSON, expires after the retention window
- article:rewritten:{id} - rewritten article JSON, same expiry
- articles:by_date - sorted set of raw ids scored by publication time (ms)
- digest:latest / digest:history / digest:snapshot:{ts} - digest snapshots
- scrape:last_run / scrape:total_articles - process-wide status fields
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..exceptions import StoreUnavailable
from .base import Store

logger = logging.getLogger(__name__)


class RedisStore(Store):
    """Store implementation over a single redis connection pool."""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        """
        Open a store from a redis URL.

        Args:
            url: redis:// or rediss:// connection URL

        Returns:
            RedisStore sharing one connection pool
        """
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=10,
            retry_on_timeout=True,
        )
        logger.info("[STORE] Redis client created for %s", url.split("@")[-1])
        return cls(client)

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self.client.exists(key))
        except RedisError as e:
            raise StoreUnavailable(f"exists({key}) failed: {e}") from e

    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        try:
            if ttl:
                return bool(await self.client.setex(key, ttl, value))
            return bool(await self.client.set(key, value))
        except RedisError as e:
            raise StoreUnavailable(f"put({key}) failed: {e}") from e

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(key)
        except RedisError as e:
            raise StoreUnavailable(f"get({key}) failed: {e}") from e

    async def get_many(self, keys: list[str]) -> list[Optional[str]]:
        if not keys:
            return []
        try:
            pipe = self.client.pipeline(transaction=False)
            for key in keys:
                pipe.get(key)
            return await pipe.execute()
        except RedisError as e:
            raise StoreUnavailable(f"get_many({len(keys)} keys) failed: {e}") from e

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(await self.client.delete(*keys))
        except RedisError as e:
            raise StoreUnavailable(f"delete failed: {e}") from e

    async def index_by_time(self, namespace: str, member: str, timestamp: float) -> None:
        try:
            await self.client.zadd(namespace, {member: timestamp})
        except RedisError as e:
            raise StoreUnavailable(f"zadd({namespace}) failed: {e}") from e

    async def remove_from_index(self, namespace: str, *members: str) -> int:
        if not members:
            return 0
        try:
            return int(await self.client.zrem(namespace, *members))
        except RedisError as e:
            raise StoreUnavailable(f"zrem({namespace}) failed: {e}") from e

    async def range_by_time_desc(self, namespace: str, offset: int, limit: int) -> list[str]:
        if limit <= 0:
            return []
        try:
            return await self.client.zrevrange(namespace, offset, offset + limit - 1)
        except RedisError as e:
            raise StoreUnavailable(f"zrevrange({namespace}) failed: {e}") from e

    async def index_size(self, namespace: str) -> int:
        try:
            return int(await self.client.zcard(namespace))
        except RedisError as e:
            raise StoreUnavailable(f"zcard({namespace}) failed: {e}") from e

    async def list_keys(self, prefix: str) -> set[str]:
        try:
            return {key async for key in self.client.scan_iter(match=f"{prefix}*", count=500)}
        except RedisError as e:
            raise StoreUnavailable(f"scan({prefix}*) failed: {e}") from e

    async def close(self) -> None:
        await self.client.aclose()
        logger.info("[STORE] Redis connection closed")
