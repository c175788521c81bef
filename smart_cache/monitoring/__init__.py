"""
Cache Monitoring

Prometheus counters for cache lookups, invalidations and store errors.
"""

from .cache_metrics import CacheMetricsCollector

__all__ = ["CacheMetricsCollector"]
