"""
In-Memory Key-Value Store

Dict-backed store for tests and short-lived processes. Data does not
survive a restart.
"""

from typing import Dict, List, Optional, Sequence

from ...domain.cache.repository_interfaces import KeyValueStore


class MemoryKeyValueStore(KeyValueStore):
    """Key-value store kept in a plain dictionary."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Store values must be str, got {type(value).__name__}")
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def remove_many(self, keys: Sequence[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    async def list_keys(self) -> List[str]:
        return list(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data
