"""Redis storage backend: the snapshot lives under a single string key."""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from .base import RegistryStorageBase
from ..errors import PersistenceError


class RedisStorage(RegistryStorageBase):
    """Stores the registry snapshot in one Redis key (no TTL)."""

    def __init__(
        self,
        redis_url: Optional[str] = None,
        key: str = "linkreg:links",
        client: Optional[redis.Redis] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize Redis storage.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
            key: Key holding the snapshot
            client: Optional pre-built client (takes precedence over redis_url)
            logger: Optional logger instance
        """
        if client is None and not redis_url:
            raise ValueError("RedisStorage needs redis_url or client")

        self.redis_url = redis_url
        self.key = key
        self.logger = logger or logging.getLogger(__name__)
        self.client = client or redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
        )

    async def read_blob(self) -> Optional[str]:
        try:
            return await self.client.get(self.key)
        except RedisError as e:
            self.logger.error(f"Redis get error: {e}")
            raise PersistenceError(f"Failed to read registry from Redis: {e}") from e

    async def write_blob(self, blob: str) -> None:
        try:
            await self.client.set(self.key, blob)
        except RedisError as e:
            self.logger.error(f"Redis set error: {e}")
            raise PersistenceError(f"Failed to write registry to Redis: {e}") from e

    async def close(self) -> None:
        """Close Redis connection."""
        await self.client.aclose()
        self.logger.info("Redis connection closed")

    async def health_check(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            self.logger.warning(f"Redis ping failed: {e}")
            return False
