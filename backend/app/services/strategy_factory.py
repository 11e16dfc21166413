"""
Section lock strategy factory.
Configures which serialization strategy guards booking admission.
"""

from typing import Optional

from app.core.config import get_settings
from app.services.interfaces.section_lock import SectionLockStrategy
from app.services.interfaces.local_lock import LocalSectionLock
from app.services.redis_lock_service import RedisSectionLock


def get_section_lock_strategy() -> SectionLockStrategy:
    """
    Build the configured strategy.

    - local (default): in-process asyncio locks
    - redis: distributed lock, falls back to local when Redis is down

    Selected via the BOOKING_LOCK_BACKEND env var.
    """
    settings = get_settings()

    if settings.BOOKING_LOCK_BACKEND == "redis":
        return RedisSectionLock(
            timeout=settings.BOOKING_LOCK_TIMEOUT,
            lease=settings.BOOKING_LOCK_LEASE,
        )
    return LocalSectionLock(timeout=settings.BOOKING_LOCK_TIMEOUT)


# Singleton instance
_strategy: Optional[SectionLockStrategy] = None


def get_section_lock() -> SectionLockStrategy:
    """Get section lock strategy singleton."""
    global _strategy
    if _strategy is None:
        _strategy = get_section_lock_strategy()
    return _strategy


def reset_section_lock() -> None:
    global _strategy
    _strategy = None
