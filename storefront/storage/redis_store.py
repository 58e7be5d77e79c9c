"""
Redis Key-Value Store

Durable persistence layer with:
- Connection pooling
- Namespaced keys
- SCAN-based key enumeration
- Backend errors wrapped as StorageFailure
"""

import re
from typing import List, Optional

import structlog
from redis.asyncio import Redis, ConnectionPool
from redis.exceptions import RedisError

from storefront.config.settings import RedisSettings
from storefront.errors import StorageFailure
from storefront.storage.base import KeyValueStore

logger = structlog.get_logger(__name__)

_GLOB_SPECIAL = re.compile(r"([\\*?\[\]^])")


def escape_glob(text: str) -> str:
    """Escape Redis MATCH metacharacters so text matches literally"""
    return _GLOB_SPECIAL.sub(r"\\\1", text)


class RedisStore(KeyValueStore):
    """
    Key-value store on a Redis database.

    Example:
        store = RedisStore(settings.redis, namespace="shop")
        await store.init()
        await store.set("balance:1000", "500000")
    """

    def __init__(
        self,
        settings: RedisSettings,
        namespace: Optional[str] = None,
        client: Optional[Redis] = None,
    ):
        super().__init__(namespace)
        self.settings = settings
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = client

    async def init(self) -> Redis:
        """Initialize Redis connection pool"""
        if self._client is not None:
            return self._client

        self._pool = ConnectionPool.from_url(
            self.settings.get_url(),
            max_connections=self.settings.max_connections,
            socket_timeout=self.settings.socket_timeout,
            decode_responses=self.settings.decode_responses,
        )
        self._client = Redis(connection_pool=self._pool)

        # Test connection
        try:
            await self._client.ping()
            logger.info("Redis connection established", url=self.settings.get_url())
        except RedisError as e:
            logger.error("Redis connection failed", error=str(e))
            raise StorageFailure("Redis connection failed", operation="ping") from e

        return self._client

    async def close(self) -> None:
        """Close Redis connection pool"""
        if self._client:
            await self._client.aclose()
            self._client = None

        if self._pool:
            await self._pool.disconnect()
            self._pool = None

        logger.info("Redis connection closed")

    def _redis(self) -> Redis:
        if self._client is None:
            raise RuntimeError("Redis not initialized. Call init() first.")
        return self._client

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self._redis().get(self._key(key))
        except RedisError as e:
            raise StorageFailure(f"Redis get failed: {e}", operation="get", key=key) from e
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        try:
            await self._redis().set(self._key(key), value)
        except RedisError as e:
            raise StorageFailure(f"Redis set failed: {e}", operation="set", key=key) from e

    async def delete(self, key: str) -> bool:
        try:
            result = await self._redis().delete(self._key(key))
        except RedisError as e:
            raise StorageFailure(f"Redis delete failed: {e}", operation="delete", key=key) from e
        return result > 0

    async def keys(self, prefix: str = "") -> List[str]:
        """Enumerate keys matching prefix with SCAN"""
        found = []
        try:
            async for key in self._redis().scan_iter(match=f"{escape_glob(self._key(prefix))}*"):
                if isinstance(key, bytes):
                    key = key.decode("utf-8")
                found.append(self._strip(key))
        except RedisError as e:
            raise StorageFailure(f"Redis scan failed: {e}", operation="keys", key=prefix) from e
        return sorted(found)
