"""
Cache Dependencies

Composition root: builds the shared event bus, the store and the smart
cache once at application start and hands them out explicitly.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .core.config import Settings, get_settings
from .domain.cache.repository_interfaces import KeyValueStore
from .infrastructure.storage.factory import create_store
from .services.cache.smart_cache import SmartCache
from .services.events.event_bus import CacheEventBus

logger = logging.getLogger(__name__)


@dataclass
class CacheRuntime:
    """Everything the app needs to use and invalidate the cache."""

    store: KeyValueStore
    events: CacheEventBus
    cache: SmartCache

    async def close(self) -> None:
        """Let running invalidations finish, then release the store."""
        await self.events.close()
        await self.store.close()
        logger.info("Cache runtime closed")


def build_cache_runtime(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    events: Optional[CacheEventBus] = None,
) -> CacheRuntime:
    """
    Wire a store, an event bus and a smart cache together.

    Args:
        settings: Settings to use (global settings if omitted)
        store: Store to use (created from settings if omitted)
        events: Event bus to subscribe to (a new one if omitted)

    Returns:
        Runtime holding the three collaborators
    """
    settings = settings or get_settings()
    store = store if store is not None else create_store(settings)
    events = events if events is not None else CacheEventBus()

    cache = SmartCache(store=store, events=events, settings=settings)

    logger.info(
        "Cache runtime ready",
        extra={
            "store": type(store).__name__,
            "namespace": settings.CACHE_NAMESPACE,
            "single_flight": cache.single_flight,
        },
    )
    return CacheRuntime(store=store, events=events, cache=cache)
