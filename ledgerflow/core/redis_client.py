"""Shared Redis client.

One connection pool per process, created on first use.
"""

from typing import Optional

import redis.asyncio as redis

from ledgerflow.core.config import settings


class RedisClient:
    """Lazily connected wrapper around ``redis.asyncio.Redis``."""

    def __init__(self) -> None:
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> redis.Redis:
        """The underlying client, created on first access."""
        if self._client is None:
            self._client = redis.Redis(
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
                password=settings.REDIS_PASSWORD,
                db=settings.REDIS_DB,
                decode_responses=True,
                socket_connect_timeout=5,
                health_check_interval=30,
            )
        return self._client

    async def close(self) -> None:
        """Close the connection pool if one was opened."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


redis_client = RedisClient()
