"""
Cache Metrics Collector

Prometheus counters for cache lookups, invalidations and store errors.
Each collector owns its registry so several caches (e.g. in tests) never
collide on metric names.
"""

from typing import Dict, Optional

from prometheus_client import CollectorRegistry, Counter, generate_latest

from ..domain.cache.value_objects import LookupResult


class CacheMetricsCollector:
    """Counts cache activity for stats and scraping."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.lookups = Counter(
            "smart_cache_lookups",
            "Cache lookups by result",
            ["result"],
            registry=self.registry,
        )
        self.invalidations = Counter(
            "smart_cache_invalidations",
            "Storage keys targeted by invalidation, by kind",
            ["kind"],
            registry=self.registry,
        )
        self.store_errors = Counter(
            "smart_cache_store_errors",
            "Store failures degraded to cache misses, by operation",
            ["operation"],
            registry=self.registry,
        )

    def record_lookup(self, result: LookupResult) -> None:
        self.lookups.labels(result=result.value).inc()

    def record_invalidation(self, kind: str, count: int) -> None:
        if count > 0:
            self.invalidations.labels(kind=kind).inc(count)

    def record_store_error(self, operation: str) -> None:
        self.store_errors.labels(operation=operation).inc()

    def snapshot(self) -> Dict[str, float]:
        """Lookup counters keyed by result, zero for results never seen."""
        return {
            result.value: self.registry.get_sample_value(
                "smart_cache_lookups_total", {"result": result.value}
            )
            or 0.0
            for result in LookupResult
        }

    def hit_rate(self) -> float:
        counts = self.snapshot()
        total = sum(counts.values()) - counts[LookupResult.BYPASS.value]
        if total <= 0:
            return 0.0
        return counts[LookupResult.HIT.value] / total

    def export(self) -> bytes:
        """Metrics in Prometheus text exposition format."""
        return generate_latest(self.registry)
