"""
Cache Domain Entities

Core domain entities for cache management following DDD principles.
Encapsulates the validity rules of a cached envelope.
"""

from dataclasses import dataclass
from typing import Any, Optional

from ...constants import current_time_ms
from .value_objects import TTL, CacheEntryStatus, CacheKey, CacheVersion


@dataclass(frozen=True)
class CacheConfig:
    """
    Caching policy for one logical cache.

    Pairs the storage key with the maximum age of an entry.
    """

    key: str
    ttl: TTL

    def __post_init__(self) -> None:
        """Validate storage key."""
        CacheKey(self.key)

    def in_namespace(self, namespace: str) -> bool:
        """Check whether the storage key lives under a namespace."""
        return CacheKey(self.key).has_prefix(namespace)


@dataclass
class CacheEntry:
    """
    Cache entry entity.

    Wraps a cached value with the write time (milliseconds since the Unix
    epoch) and the cache version active when it was written.
    """

    data: Any
    timestamp: int
    version: int

    @classmethod
    def create(
        cls,
        data: Any,
        version: CacheVersion,
        now_ms: Optional[int] = None,
    ) -> "CacheEntry":
        """Create new cache entry stamped with the current time and version."""
        return cls(
            data=data,
            timestamp=now_ms if now_ms is not None else current_time_ms(),
            version=version.value,
        )

    def age_ms(self, now_ms: int) -> int:
        """Age of the entry in milliseconds."""
        return now_ms - self.timestamp

    def is_expired(self, ttl: TTL, now_ms: int) -> bool:
        """Check if entry outlived its TTL."""
        return self.age_ms(now_ms) >= ttl.milliseconds

    def is_valid(self, ttl: TTL, current_version: CacheVersion, now_ms: int) -> bool:
        """Check if entry can be served: fresh and written under current version."""
        return current_version.matches(self.version) and not self.is_expired(
            ttl, now_ms
        )

    def get_status(
        self, ttl: TTL, current_version: CacheVersion, now_ms: int
    ) -> CacheEntryStatus:
        """Get current status of cache entry."""
        if not current_version.matches(self.version):
            return CacheEntryStatus.INVALIDATED
        elif self.is_expired(ttl, now_ms):
            return CacheEntryStatus.EXPIRED
        else:
            return CacheEntryStatus.ACTIVE
