"""
Cache Repository Interfaces

Abstract storage contract consumed by the cache.
Defines what a persistent key-value store must provide.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence


class KeyValueStore(ABC):
    """
    Abstract async key-value store.

    Values are opaque strings; the cache owns encoding. Implementations must
    tolerate concurrent operations on independent keys.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Read value by key, None if absent."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Write value under key, replacing any previous value."""
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete key. Absent keys are not an error."""
        pass

    @abstractmethod
    async def remove_many(self, keys: Sequence[str]) -> None:
        """Delete several keys in one batch."""
        pass

    @abstractmethod
    async def list_keys(self) -> List[str]:
        """Enumerate every key in the store."""
        pass

    async def close(self) -> None:
        """Release underlying resources."""
        return None
