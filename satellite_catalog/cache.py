"""
Redis-backed cache store.

The store is best-effort: an unreachable server or a corrupt payload reads as
a miss, and failed writes are logged and dropped, so the caller can always
fall back to an upstream fetch. Values are stored as JSON with a per-entry
expiry supplied by the caller.

The Redis client is constructed once by the host process (``from_url``) and
injected into the service; this module keeps no global connection.
"""

import json
from typing import Any, Optional

import redis
import redis.asyncio as aioredis

from satellite_catalog.logging_config import get_logger

logger = get_logger(__name__)

SCAN_BATCH_SIZE = 500


class CacheStore:
    """JSON key/value store with TTL on top of ``redis.asyncio``."""

    def __init__(self, client: aioredis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "CacheStore":
        """Create a store for a Redis URL (connection is opened lazily)."""
        return cls(aioredis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> Optional[Any]:
        """
        Read and decode a cached value.

        Returns:
            The decoded JSON value, or None on miss, store failure or corrupt
            payload
        """
        try:
            raw = await self.client.get(key)
        except redis.exceptions.RedisError as e:
            logger.warning("Cache read failed", key=key, error=str(e))
            return None

        if raw is None:
            return None

        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Discarding corrupt cache entry", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """
        Encode and store a value with an expiry.

        Returns:
            True if the value was written
        """
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning("Cache value is not serializable", key=key, error=str(e))
            return False

        try:
            await self.client.set(key, payload, ex=ttl_seconds)
        except redis.exceptions.RedisError as e:
            logger.warning("Cache write failed", key=key, error=str(e))
            return False

        logger.debug("Cache set", key=key, ttl=ttl_seconds)
        return True

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern.

        Returns:
            Number of keys removed
        """
        deleted = 0
        try:
            batch = []
            async for key in self.client.scan_iter(match=pattern, count=SCAN_BATCH_SIZE):
                batch.append(key)
                if len(batch) >= SCAN_BATCH_SIZE:
                    deleted += await self.client.delete(*batch)
                    batch = []
            if batch:
                deleted += await self.client.delete(*batch)
        except redis.exceptions.RedisError as e:
            logger.warning("Cache delete failed", pattern=pattern, error=str(e))

        logger.info("Cache entries cleared", pattern=pattern, deleted=deleted)
        return deleted

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except redis.exceptions.RedisError:
            return False

    async def close(self) -> None:
        await self.client.aclose()
