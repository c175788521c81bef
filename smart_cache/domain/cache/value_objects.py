"""
Cache Value Objects

Immutable value objects for cache domain following DDD principles.
Provides type safety and business logic encapsulation for cache operations.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field, field_validator


class CacheEntryStatus(str, Enum):
    """Cache entry status enumeration."""

    ACTIVE = "active"
    EXPIRED = "expired"
    INVALIDATED = "invalidated"


class LookupResult(str, Enum):
    """Outcome of a single cache lookup."""

    HIT = "hit"
    MISS = "miss"
    STALE = "stale"
    BYPASS = "bypass"


@dataclass(frozen=True)
class CacheKey:
    """
    Immutable cache key value object.

    Enforces key naming conventions and provides validation.
    """

    value: str

    def __post_init__(self) -> None:
        """Validate cache key format."""
        if not self.value:
            raise ValueError("Cache key cannot be empty")

        if len(self.value) > 250:
            raise ValueError("Cache key too long (max 250 characters)")

        # Validate no whitespace in key
        if any(char.isspace() for char in self.value):
            raise ValueError("Cache key cannot contain whitespace")

    @classmethod
    def namespaced(cls, namespace: str, name: str) -> "CacheKey":
        """Create a storage key under the cache namespace."""
        if not name:
            raise ValueError("Cache name cannot be empty")
        return cls(f"{namespace}{name}")

    def has_prefix(self, prefix: str) -> bool:
        """Check whether the key belongs to a prefix family."""
        return self.value.startswith(prefix)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TTL:
    """
    Time To Live value object for cache expiration.

    Provides type-safe TTL configuration with validation.
    """

    seconds: int

    def __post_init__(self) -> None:
        """Validate TTL value."""
        if self.seconds <= 0:
            raise ValueError("TTL must be positive")
        if self.seconds > 86400 * 365:  # Max 1 year
            raise ValueError("TTL too large (max 1 year)")

    @classmethod
    def of_seconds(cls, seconds: int) -> "TTL":
        """Create TTL from seconds."""
        return cls(seconds)

    @classmethod
    def minutes(cls, minutes: int) -> "TTL":
        """Create TTL from minutes."""
        return cls(minutes * 60)

    @classmethod
    def hours(cls, hours: int) -> "TTL":
        """Create TTL from hours."""
        return cls(hours * 3600)

    @classmethod
    def days(cls, days: int) -> "TTL":
        """Create TTL from days."""
        return cls(days * 86400)

    @property
    def milliseconds(self) -> int:
        """TTL expressed in milliseconds, the unit of entry timestamps."""
        return self.seconds * 1000

    def __str__(self) -> str:
        return f"{self.seconds}s"


@dataclass(frozen=True)
class CacheVersion:
    """
    Cache version value object for cache invalidation.

    Entries written under any other version are stale regardless of age.
    """

    value: int

    def __post_init__(self) -> None:
        """Validate version value."""
        if self.value < 1:
            raise ValueError("Cache version must be at least 1")

    @classmethod
    def initial(cls) -> "CacheVersion":
        """Create initial cache version."""
        return cls(1)

    def next(self) -> "CacheVersion":
        """Get next version."""
        return CacheVersion(self.value + 1)

    def matches(self, version: int) -> bool:
        """Check whether a stored version number belongs to this version."""
        return self.value == version

    def __str__(self) -> str:
        return f"v{self.value}"


class CacheStats(BaseModel):
    """Snapshot of what the cache currently holds in the store."""

    total_caches: int = Field(0, description="Number of cache keys in the store")
    cache_keys: List[str] = Field(
        default_factory=list, description="Storage keys under the namespace"
    )
    sizes: Dict[str, int] = Field(
        default_factory=dict, description="Serialized size per key in bytes"
    )
    version: int = Field(1, description="Current cache version")
    lookups: Dict[str, float] = Field(
        default_factory=dict, description="Lookup counters by result"
    )

    @field_validator("total_caches")
    @classmethod
    def validate_total(cls, v):
        if v < 0:
            raise ValueError("Total caches cannot be negative")
        return v

    @property
    def total_size_bytes(self) -> int:
        """Sum of all serialized entry sizes."""
        return sum(self.sizes.values())
