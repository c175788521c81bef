"""
Cache Services

Read-through smart cache and its debug helpers.
"""

from .smart_cache import SmartCache
from .debug import log_cache_stats, clear_all_caches

__all__ = ["SmartCache", "log_cache_stats", "clear_all_caches"]
