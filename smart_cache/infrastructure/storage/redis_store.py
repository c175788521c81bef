"""
Redis Key-Value Store

Persistent store backed by redis.asyncio. All keys are prefixed with a
scope so several apps or users can share one Redis database without
seeing each other's entries.
"""

import logging
from typing import List, Optional, Sequence

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from ...core.config import Settings
from ...domain.cache.repository_interfaces import KeyValueStore
from .exceptions import StoreConnectionException, StoreOperationException

logger = logging.getLogger(__name__)

_GLOB_SPECIAL = "\\*?[]"


def _escape_glob(value: str) -> str:
    """Escape characters with meaning in Redis MATCH patterns."""
    return "".join(f"\\{char}" if char in _GLOB_SPECIAL else char for char in value)


class RedisKeyValueStore(KeyValueStore):
    """
    Redis implementation of the key-value store.

    Uses cursor-based SCAN for enumeration and UNLINK for batch removal so
    large keyspaces never block the server.
    """

    def __init__(self, redis: Redis, scope: str = "", scan_count: int = 100):
        self._redis = redis
        self.scope = scope
        self.scan_count = scan_count

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisKeyValueStore":
        """Create store with a connection pool configured from settings."""
        try:
            redis = Redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                socket_connect_timeout=settings.REDIS_CONNECTION_TIMEOUT,
                socket_timeout=settings.REDIS_OPERATION_TIMEOUT,
                retry_on_timeout=True,
            )
        except (RedisError, ValueError) as e:
            raise StoreConnectionException(
                message=f"Invalid Redis configuration: {e}",
                url=settings.REDIS_URL,
                original_error=e,
            ) from e

        logger.info(
            "Redis cache store configured",
            extra={
                "max_connections": settings.REDIS_MAX_CONNECTIONS,
                "scope": settings.CACHE_STORE_SCOPE,
            },
        )
        return cls(redis, scope=settings.CACHE_STORE_SCOPE)

    def _scoped(self, key: str) -> str:
        return f"{self.scope}{key}"

    def _unscoped(self, key: str) -> str:
        return key[len(self.scope) :]

    def _wrap(self, operation: str, error: RedisError, key: Optional[str] = None):
        if isinstance(error, RedisConnectionError):
            return StoreConnectionException(
                message=f"Redis connection lost during {operation}",
                original_error=error,
            )
        return StoreOperationException(operation, key=key, original_error=error)

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._redis.get(self._scoped(key))
        except RedisError as e:
            raise self._wrap("get", e, key) from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self._redis.set(self._scoped(key), value)
        except RedisError as e:
            raise self._wrap("set", e, key) from e

    async def remove(self, key: str) -> None:
        try:
            await self._redis.delete(self._scoped(key))
        except RedisError as e:
            raise self._wrap("remove", e, key) from e

    async def remove_many(self, keys: Sequence[str]) -> None:
        if not keys:
            return
        try:
            await self._redis.unlink(*(self._scoped(key) for key in keys))
        except RedisError as e:
            raise self._wrap("remove_many", e) from e

    async def list_keys(self) -> List[str]:
        pattern = f"{_escape_glob(self.scope)}*"
        found: List[str] = []

        try:
            cursor = 0
            while True:
                cursor, keys = await self._redis.scan(
                    cursor, match=pattern, count=self.scan_count
                )
                found.extend(self._unscoped(key) for key in keys)
                if cursor == 0:
                    break
        except RedisError as e:
            raise self._wrap("list_keys", e) from e

        # SCAN may return a key more than once
        return list(dict.fromkeys(found))

    async def close(self) -> None:
        await self._redis.aclose()
