"""
Cache Storage Infrastructure

Key-value store implementations behind the KeyValueStore contract.

This module provides:
- MemoryKeyValueStore: dict-backed store for tests and ephemeral use
- RedisKeyValueStore: persistent, scoped store on redis.asyncio
- create_store: backend selection from settings
- Store exception hierarchy
"""

from .exceptions import (
    CacheStoreException,
    StoreConnectionException,
    StoreOperationException,
    CacheSerializationException,
)
from .memory_store import MemoryKeyValueStore
from .redis_store import RedisKeyValueStore
from .factory import create_store

__all__ = [
    "CacheStoreException",
    "StoreConnectionException",
    "StoreOperationException",
    "CacheSerializationException",
    "MemoryKeyValueStore",
    "RedisKeyValueStore",
    "create_store",
]
