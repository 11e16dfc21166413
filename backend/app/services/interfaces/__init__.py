"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .section_lock import SectionLockStrategy, section_key
from .local_lock import LocalSectionLock

__all__ = ['SectionLockStrategy', 'LocalSectionLock', 'section_key']
