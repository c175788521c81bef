"""
Store Factory

Selects the persistent store implementation from settings.
"""

import logging
from typing import Optional

from ...core.config import Settings, get_settings
from ...domain.cache.repository_interfaces import KeyValueStore
from .memory_store import MemoryKeyValueStore
from .redis_store import RedisKeyValueStore

logger = logging.getLogger(__name__)


def create_store(settings: Optional[Settings] = None) -> KeyValueStore:
    """Create the store named by CACHE_STORE_BACKEND."""
    settings = settings or get_settings()

    if settings.CACHE_STORE_BACKEND == "redis":
        return RedisKeyValueStore.from_settings(settings)

    logger.debug("Using in-memory cache store")
    return MemoryKeyValueStore()
