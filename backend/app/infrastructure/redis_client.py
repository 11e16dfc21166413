"""
Redis client for the distributed section lock.
Separated from business logic for clean architecture.
"""

import time
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import redis_circuit_breaker_open, redis_connection_errors

logger = get_logger(__name__)


class RedisClient:
    """Lazily connected, process-wide async Redis client with connection pooling.

    A failed connect opens a circuit breaker for REDIS_RETRY_BACKOFF seconds.
    While it is open get_client() returns None at once, so callers fall back
    without paying the connect timeout on every request.
    """

    _instance: Optional[redis.Redis] = None
    _retry_at: float = 0.0

    @classmethod
    async def get_client(cls) -> Optional[redis.Redis]:
        """Get or create the client. Returns None if Redis cannot be reached."""
        if cls._instance is None:
            if time.monotonic() < cls._retry_at:
                return None

            settings = get_settings()
            client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )
            try:
                await client.ping()
            except (RedisError, OSError) as e:
                logger.error("redis_connection_failed", url=settings.REDIS_URL, error=str(e))
                redis_connection_errors.inc()
                redis_circuit_breaker_open.set(1)
                cls._retry_at = time.monotonic() + settings.REDIS_RETRY_BACKOFF
                await client.aclose()
                return None
            logger.info("redis_connected", url=settings.REDIS_URL)
            redis_circuit_breaker_open.set(0)
            cls._retry_at = 0.0
            cls._instance = client
        return cls._instance

    @classmethod
    async def close(cls) -> None:
        if cls._instance is not None:
            await cls._instance.aclose()
            cls._instance = None
        cls._retry_at = 0.0


async def get_redis() -> Optional[redis.Redis]:
    """Get Redis client instance."""
    return await RedisClient.get_client()


async def close_redis() -> None:
    await RedisClient.close()


async def redis_status() -> dict:
    """Connection summary for the health endpoint."""
    client = await get_redis()
    if client is None:
        return {"status": "unavailable"}
    try:
        await client.ping()
        return {"status": "connected"}
    except RedisError as e:
        return {"status": "error", "error": str(e)}
