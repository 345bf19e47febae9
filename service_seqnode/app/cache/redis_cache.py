"""
Redis caching layer for Sequence Node Service.
"""

from typing import Dict, Any, Optional

import redis.asyncio as redis
from pydantic import ValidationError as PydanticValidationError
from redis.exceptions import RedisError

from shared.logging import get_logger
from shared.errors import AccessLayerException, CacheMissError, CacheTransportError
from ..models import CacheEntry

DEFAULT_KEY_PREFIX = "SEQN:"


class SequenceNodeCache:
    """Redis cache of sequence node entries.

    ``get`` reports an absent key (``CacheMissError``) separately from an
    unreachable store or unreadable entry (``CacheTransportError``).
    Entries are stored as the JSON document
    ``{"hubSession": ..., "sequenceNodeContent": ...}`` under
    ``prefix + key``.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        *,
        client: Optional[redis.Redis] = None,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        ttl_seconds: Optional[int] = None,
    ):
        if redis_url is None and client is None:
            raise ValueError("Either redis_url or client is required")

        self.redis_url = redis_url
        self.redis: Optional[redis.Redis] = client
        self.key_prefix = key_prefix
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger("seqnode.cache.redis")
        self._owns_client = client is None

    async def start(self):
        """Open the Redis connection and verify it answers."""
        try:
            if self.redis is None:
                self.redis = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    retry_on_timeout=True,
                    health_check_interval=30
                )

            await self.redis.ping()

            self.logger.info("Redis cache started", key_prefix=self.key_prefix)

        except (RedisError, OSError) as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise AccessLayerException("REDIS_START_FAILED", str(e))

    async def stop(self):
        """Close the Redis connection if this cache opened it."""
        if self.redis is not None and self._owns_client:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Redis cache stopped")

    def make_key(self, key: str) -> str:
        """Namespace a sequence node key."""
        return f"{self.key_prefix}{key}"

    def _client(self) -> redis.Redis:
        if self.redis is None:
            raise CacheTransportError("Redis cache not started")
        return self.redis

    async def get(self, key: str) -> CacheEntry:
        """Return the entry stored under ``key``.

        Raises:
            CacheMissError: No entry under the key.
            CacheTransportError: Store unreachable or entry unreadable.
        """
        cache_key = self.make_key(key)
        try:
            cached_data = await self._client().get(cache_key)
        except (RedisError, OSError) as e:
            self.logger.error("Error reading cached sequence node", cache_key=cache_key, error=str(e))
            raise CacheTransportError(str(e), details={"key": key}) from e

        if cached_data is None:
            raise CacheMissError(key)

        try:
            return CacheEntry.from_wire(cached_data)
        except PydanticValidationError as e:
            self.logger.error("Corrupt cached sequence node", cache_key=cache_key, error=str(e))
            raise CacheTransportError("Corrupt cache entry", details={"key": key}) from e

    async def set(self, key: str, entry: CacheEntry) -> bool:
        """Store ``entry`` under ``key``, replacing any previous value.

        Raises:
            ValueError: The entry has no sequence node content.
            CacheTransportError: Store unreachable.
        """
        if entry.sequence_node_content is None:
            raise ValueError("Invalid argument: missing sequenceNodeContent field")

        cache_key = self.make_key(key)
        try:
            if self.ttl_seconds:
                await self._client().setex(cache_key, self.ttl_seconds, entry.to_wire())
            else:
                await self._client().set(cache_key, entry.to_wire())
        except (RedisError, OSError) as e:
            self.logger.error("Error caching sequence node", cache_key=cache_key, error=str(e))
            raise CacheTransportError(str(e), details={"key": key}) from e

        self.logger.debug("Cached sequence node", cache_key=cache_key, ttl=self.ttl_seconds)
        return True

    async def delete(self, key: str) -> bool:
        """Remove the entry under ``key``. Returns False if there was none."""
        if not key:
            raise ValueError("Invalid argument: empty key")

        cache_key = self.make_key(key)
        try:
            removed = await self._client().delete(cache_key)
        except (RedisError, OSError) as e:
            self.logger.error("Error removing cached sequence node", cache_key=cache_key, error=str(e))
            raise CacheTransportError(str(e), details={"key": key}) from e

        return bool(removed)

    async def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        try:
            info = await self._client().info()
        except (RedisError, OSError, CacheTransportError) as e:
            self.logger.error("Error getting cache stats", error=str(e))
            return {}

        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        total = hits + misses
        return {
            "redis_version": info.get("redis_version"),
            "used_memory": info.get("used_memory_human"),
            "keyspace_hits": hits,
            "keyspace_misses": misses,
            "hit_rate": hits / total if total else 0.0,
        }

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self._client().ping()
            return True
        except (RedisError, OSError, CacheTransportError):
            return False
