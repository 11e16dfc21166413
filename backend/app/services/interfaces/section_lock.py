"""
Section lock strategy interface.
Allows swapping between in-process and distributed serialization of the
booking check-and-insert.
"""

from abc import ABC, abstractmethod
from typing import AsyncContextManager


def section_key(event_id: int, section_id: int) -> str:
    return f"booking:{event_id}:{section_id}"


class SectionLockStrategy(ABC):
    """
    Interface for section lock strategies.

    Implementations:
    - LocalSectionLock: per-section asyncio.Lock, one process
    - RedisSectionLock: Redis lock shared by every API process

    Whoever holds the lock for a section is the only caller allowed to read
    the committed quantity and insert a booking for it. The lock must be held
    until the booking transaction has committed.
    """

    backend: str = "abstract"

    @abstractmethod
    def hold(self, event_id: int, section_id: int) -> AsyncContextManager[None]:
        """
        Serialize the enclosed block against all other holders of the same section.

        Raises:
            ServiceBusyError: the lock was not acquired within the configured timeout
        """
        pass
