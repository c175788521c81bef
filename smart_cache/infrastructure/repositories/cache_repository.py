"""
Cache Entry Repository Implementation

Infrastructure implementation that persists cache entries in a key-value
store. Owns the JSON envelope format:

    {"data": <value>, "timestamp": <ms since epoch>, "version": <int>}
"""

import json
import logging
import math
from typing import Any, List, Optional, Sequence

from ...domain.cache.entities import CacheEntry
from ...domain.cache.repository_interfaces import KeyValueStore
from ..storage.exceptions import (
    CacheSerializationException,
    CacheStoreException,
    StoreOperationException,
)

logger = logging.getLogger(__name__)


def _check_json_native(value: Any) -> None:
    """Reject values whose JSON form would decode to something unequal."""
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"dict keys must be str, got {type(key).__name__}")
            _check_json_native(item)
    elif isinstance(value, list):
        for item in value:
            _check_json_native(item)
    elif isinstance(value, tuple):
        raise TypeError("tuples do not survive a JSON round trip")


class CacheEntryCodec:
    """Encodes cache entries to the store's string format and back.

    Only JSON-native values are accepted: dicts with str keys, lists, str,
    finite numbers, bool and None.
    """

    @staticmethod
    def encode(entry: CacheEntry, key: Optional[str] = None) -> str:
        try:
            _check_json_native(entry.data)
            return json.dumps(
                {
                    "data": entry.data,
                    "timestamp": entry.timestamp,
                    "version": entry.version,
                },
                separators=(",", ":"),
                allow_nan=False,
            )
        except (TypeError, ValueError, RecursionError) as e:
            raise CacheSerializationException(
                f"Cache value is not JSON serializable: {e}",
                key=key,
                original_error=e,
            ) from e

    @staticmethod
    def decode(raw: str, key: Optional[str] = None) -> CacheEntry:
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CacheSerializationException(
                "Corrupt cache envelope", key=key, original_error=e
            ) from e

        if not isinstance(payload, dict) or "data" not in payload:
            raise CacheSerializationException("Cache envelope missing data", key=key)

        timestamp = payload.get("timestamp")
        version = payload.get("version")
        if (
            isinstance(timestamp, bool)
            or not isinstance(timestamp, (int, float))
            or (isinstance(timestamp, float) and not math.isfinite(timestamp))
        ):
            raise CacheSerializationException(
                "Cache envelope has invalid timestamp", key=key
            )
        if isinstance(version, bool) or not isinstance(version, int):
            raise CacheSerializationException(
                "Cache envelope has invalid version", key=key
            )

        return CacheEntry(data=payload["data"], timestamp=int(timestamp), version=version)


class CacheEntryRepository:
    """
    Store-backed repository for cache entries.

    Every failure, whether from the store or from the codec, surfaces as a
    CacheStoreException with the original error chained.
    """

    def __init__(self, store: KeyValueStore, codec: Optional[CacheEntryCodec] = None):
        self.store = store
        self.codec = codec or CacheEntryCodec()

    async def find_raw(self, key: str) -> Optional[str]:
        """Read the serialized envelope as stored."""
        try:
            return await self.store.get(key)
        except CacheStoreException:
            raise
        except Exception as e:
            raise StoreOperationException("get", key=key, original_error=e) from e

    async def find(self, key: str) -> Optional[CacheEntry]:
        """Read and decode an entry; None when the key is absent."""
        raw = await self.find_raw(key)
        if raw is None:
            return None
        return self.codec.decode(raw, key=key)

    async def save(self, key: str, entry: CacheEntry) -> int:
        """Write an entry; returns the serialized size in bytes."""
        raw = self.codec.encode(entry, key=key)
        try:
            await self.store.set(key, raw)
        except CacheStoreException:
            raise
        except Exception as e:
            raise StoreOperationException("set", key=key, original_error=e) from e

        return len(raw.encode("utf-8"))

    async def delete(self, key: str) -> None:
        """Delete one entry."""
        try:
            await self.store.remove(key)
        except CacheStoreException:
            raise
        except Exception as e:
            raise StoreOperationException("remove", key=key, original_error=e) from e

    async def delete_many(self, keys: Sequence[str]) -> int:
        """Delete several entries in one batch; returns how many were targeted."""
        if not keys:
            return 0
        try:
            await self.store.remove_many(list(keys))
        except CacheStoreException:
            raise
        except Exception as e:
            raise StoreOperationException("remove_many", original_error=e) from e

        return len(keys)

    async def find_keys(self, prefix: str = "") -> List[str]:
        """Keys in the store starting with prefix."""
        try:
            keys = await self.store.list_keys()
        except CacheStoreException:
            raise
        except Exception as e:
            raise StoreOperationException("list_keys", original_error=e) from e

        return [key for key in keys if key.startswith(prefix)]
