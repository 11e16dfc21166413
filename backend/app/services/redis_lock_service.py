"""
Distributed section lock backed by Redis.
Implements SectionLockStrategy using redis-py's Lock (SET NX PX + token).

Circuit Breaker Pattern:
  If Redis cannot be reached, the lock falls back to the in-process
  LocalSectionLock instead of refusing every booking.
  On PostgreSQL the SELECT ... FOR UPDATE on the section row inside the
  booking transaction is still taken, so overselling stays impossible;
  only the cross-process queueing moves from Redis to the database.
"""

import time
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

from redis.exceptions import LockError, RedisError

from app.core.exceptions import ServiceBusyError
from app.core.logging import get_logger
from app.core.metrics import redis_lock_fallbacks, section_lock_timeouts, section_lock_wait
from app.infrastructure.redis_client import get_redis
from app.services.interfaces.local_lock import LocalSectionLock
from app.services.interfaces.section_lock import SectionLockStrategy, section_key

logger = get_logger(__name__)


class RedisSectionLock(SectionLockStrategy):
    """
    Use when:
    - Several API processes or hosts serve bookings
    - Flash sales where queueing in Redis protects the database
    """

    backend = "redis"

    def __init__(
        self,
        timeout: float = 10.0,
        lease: float = 30.0,
        client_factory: Callable[[], Awaitable] = get_redis,
        fallback: Optional[LocalSectionLock] = None,
    ):
        self.timeout = timeout
        # The lease must outlive the longest booking transaction
        self.lease = lease
        self._client_factory = client_factory
        self._fallback = fallback or LocalSectionLock(timeout=timeout)

    @asynccontextmanager
    async def hold(self, event_id: int, section_id: int):
        key = section_key(event_id, section_id)
        client = await self._client_factory()

        lock = None
        if client is not None:
            lock = client.lock(f"lock:{key}", timeout=self.lease, blocking_timeout=self.timeout)
            start = time.perf_counter()
            try:
                acquired = await lock.acquire()
            except RedisError as e:
                logger.warning("redis_lock_unavailable", key=key, error=str(e))
                lock = None
            else:
                if not acquired:
                    section_lock_timeouts.labels(backend=self.backend).inc()
                    logger.warning("section_lock_timeout", key=key, timeout=self.timeout)
                    raise ServiceBusyError()
                section_lock_wait.labels(backend=self.backend).observe(time.perf_counter() - start)

        if lock is None:
            redis_lock_fallbacks.inc()
            async with self._fallback.hold(event_id, section_id):
                yield
            return

        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # Lease expired before release; the transaction already finished
                logger.warning("redis_lock_lease_expired", key=key, lease=self.lease)
            except RedisError as e:
                logger.warning("redis_lock_release_failed", key=key, error=str(e))
