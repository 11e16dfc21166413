"""
In-process section lock strategy.
One asyncio.Lock per (event, section), kept in a weak-value registry so
locks disappear once no request is holding or waiting on them.
"""

import asyncio
import time
import weakref
from contextlib import asynccontextmanager

from app.core.exceptions import ServiceBusyError
from app.core.logging import get_logger
from app.core.metrics import section_lock_timeouts, section_lock_wait
from app.services.interfaces.section_lock import SectionLockStrategy, section_key

logger = get_logger(__name__)


class LocalSectionLock(SectionLockStrategy):
    """
    Use when:
    - A single API process serves bookings
    - Tests and development (no Redis required)

    On PostgreSQL the booking transaction also takes a row lock on the
    section, so running several processes with this strategy stays correct;
    they just contend on the database instead of here.
    """

    backend = "local"

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, event_id: int, section_id: int):
        key = section_key(event_id, section_id)
        lock = self._lock_for(key)

        start = time.perf_counter()
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
        except asyncio.TimeoutError:
            section_lock_timeouts.labels(backend=self.backend).inc()
            logger.warning("section_lock_timeout", key=key, timeout=self.timeout)
            raise ServiceBusyError()
        section_lock_wait.labels(backend=self.backend).observe(time.perf_counter() - start)

        try:
            yield
        finally:
            lock.release()

    def active_keys(self) -> list[str]:
        return list(self._locks.keys())
