"""
Cache Debug Utilities

Helpers for inspecting and resetting the cache from a shell or a test.
"""

import structlog

from ...domain.cache.value_objects import CacheStats
from .smart_cache import SmartCache

logger = structlog.get_logger(__name__)


async def log_cache_stats(cache: SmartCache) -> CacheStats:
    """Log entry count and per-key sizes, then return the stats."""
    stats = await cache.get_stats()

    logger.info(
        "Smart cache statistics",
        total_caches=stats.total_caches,
        total_kb=round(stats.total_size_bytes / 1024, 2),
        version=stats.version,
        lookups=stats.lookups,
    )
    for key, size in stats.sizes.items():
        logger.info("Cache entry size", key=key, size_kb=round(size / 1024, 2))

    return stats


async def clear_all_caches(cache: SmartCache) -> int:
    """Drop every cache entry and advance the cache version."""
    removed = await cache.clear_all()
    logger.info("All caches cleared", removed=removed, version=cache.version)
    return removed
