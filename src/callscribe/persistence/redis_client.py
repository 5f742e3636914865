"""
Shared async Redis connection pool for call record storage.

One pool per process. Request handlers and background transcription tasks
borrow connections from it; ``AppContainer.aclose`` disconnects it on
shutdown. Only used when STORAGE_BACKEND=redis.
"""

from typing import Optional
from urllib.parse import urlsplit

import structlog
from redis.asyncio import ConnectionPool as AsyncConnectionPool
from redis.asyncio import Redis as AsyncRedis

from callscribe.config import Settings

logger = structlog.get_logger(__name__)

# Seconds; a record write should never stall a webhook for long
SOCKET_TIMEOUT = 5
SOCKET_CONNECT_TIMEOUT = 5


def _safe_location(url: str) -> str:
    """host:port/db from a Redis URL, without credentials."""
    parts = urlsplit(url)
    return f"{parts.hostname}:{parts.port or 6379}{parts.path or '/0'}"


class RedisClient:
    """Process-wide async connection pool holder."""

    _async_pool: Optional[AsyncConnectionPool] = None

    @classmethod
    def get_async_client(cls, settings: Settings) -> AsyncRedis:
        """
        Return a client bound to the shared pool, creating the pool on first use.

        Responses are decoded to ``str`` (the repository stores JSON text).
        """
        if cls._async_pool is None:
            cls._async_pool = AsyncConnectionPool.from_url(
                settings.REDIS_URL,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=True,
                socket_timeout=SOCKET_TIMEOUT,
                socket_connect_timeout=SOCKET_CONNECT_TIMEOUT,
                retry_on_timeout=True,
            )
            logger.info(
                "Redis connection pool created",
                location=_safe_location(settings.REDIS_URL),
                max_connections=settings.REDIS_MAX_CONNECTIONS,
            )

        return AsyncRedis(connection_pool=cls._async_pool)

    @classmethod
    async def close_async_pool(cls) -> None:
        if cls._async_pool is None:
            return
        await cls._async_pool.disconnect()
        cls._async_pool = None
        logger.info("Redis connection pool closed")
