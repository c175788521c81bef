"""
Cache Event Services

Publish/subscribe channel carrying domain events to the cache.
"""

from .event_bus import CacheEventBus

__all__ = ["CacheEventBus"]
