"""
Smart Cache Service

Orchestrates the registry, the entry repository and the event bus into a
read-through cache with TTL expiry, version stamping and event-driven
invalidation.

The store is the single source of truth: nothing is held in memory between
calls. Every store failure degrades to "fetch fresh data"; the only errors a
caller of get() ever sees come from their own fetcher.

Concurrent get() calls on the same key are not coalesced unless
single_flight is enabled: each caller sees the miss, fetches, and the last
write wins.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping, Optional

from opentelemetry import trace

from ...core.config import Settings, get_settings
from ...domain.cache.domain_services import (
    DEFAULT_INVALIDATION_RULES,
    InvalidationRule,
    event_name,
)
from ...domain.cache.entities import CacheConfig, CacheEntry
from ...domain.cache.registry import CacheRegistry
from ...domain.cache.repository_interfaces import KeyValueStore
from ...domain.cache.value_objects import (
    CacheEntryStatus,
    CacheStats,
    CacheVersion,
    LookupResult,
)
from ...infrastructure.repositories.cache_repository import CacheEntryRepository
from ...infrastructure.storage.exceptions import CacheStoreException
from ...monitoring.cache_metrics import CacheMetricsCollector
from ..events.event_bus import CacheEventBus

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

Fetcher = Callable[[], Awaitable[Any]]


class SmartCache:
    """
    Read-through client cache.

    Subscribes its invalidation rules to the event bus on construction; the
    subscriptions live as long as the bus.
    """

    def __init__(
        self,
        store: KeyValueStore,
        events: CacheEventBus,
        registry: Optional[CacheRegistry] = None,
        rules: Optional[Mapping[Any, InvalidationRule]] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
        single_flight: Optional[bool] = None,
        metrics: Optional[CacheMetricsCollector] = None,
    ):
        settings = settings or get_settings()

        self.repository = CacheEntryRepository(store)
        self.events = events
        self.registry = registry or CacheRegistry(namespace=settings.CACHE_NAMESPACE)
        self.metrics = metrics or CacheMetricsCollector()
        self.debug_mode = settings.cache_debug
        self.single_flight = (
            settings.CACHE_SINGLE_FLIGHT if single_flight is None else single_flight
        )

        self._clock = clock
        self._version = CacheVersion.initial()
        self._in_flight: Dict[str, "asyncio.Future[Any]"] = {}

        self.rules: Dict[str, InvalidationRule] = {
            event_name(event): rule
            for event, rule in (
                DEFAULT_INVALIDATION_RULES if rules is None else rules
            ).items()
        }
        self._setup_event_listeners()

    @property
    def version(self) -> int:
        """Current cache version; entries from other versions are stale."""
        return self._version.value

    @property
    def namespace(self) -> str:
        return self.registry.namespace

    def set_debug_mode(self, enabled: bool) -> None:
        """Enable or disable verbose HIT/MISS/SET logging."""
        self.debug_mode = enabled

    def _now_ms(self) -> int:
        return int(round(self._clock() * 1000))

    def _debug(self, message: str, **extra: Any) -> None:
        if self.debug_mode:
            logger.info(message, extra=extra)

    # Event wiring

    def _setup_event_listeners(self) -> None:
        for name, rule in self.rules.items():
            self.events.on(name, self._make_handler(name, rule))

    def _make_handler(self, name: str, rule: InvalidationRule):
        async def handle(*_args: Any, **_kwargs: Any) -> None:
            self._debug(f"[SmartCache] {name} event", cache_event=name)
            await self.apply_rule(rule)

        handle.__name__ = f"invalidate_on_{name}"
        return handle

    async def apply_rule(self, rule: InvalidationRule) -> int:
        """Run one invalidation rule; returns the number of keys targeted."""
        if rule.invalidate_all:
            return await self.invalidate_all()

        count = 0
        if rule.names:
            count += await self.invalidate_multiple(rule.names)
        for template in rule.templates:
            count += await self.invalidate_by_pattern(
                self.registry.template_prefix(template)
            )
        return count

    # Read-through

    async def get(
        self, name: str, fetcher: Fetcher, config: Optional[CacheConfig] = None
    ) -> Any:
        """
        Get cached data or run fetcher when the entry is missing or stale.

        Args:
            name: Logical cache name
            fetcher: Zero-argument coroutine function producing fresh data
            config: Explicit policy, for parameterized cache names; one whose
                key lies outside the namespace is not cached

        Returns:
            Cached or freshly fetched data

        Raises:
            Whatever fetcher raises, unchanged
        """
        with tracer.start_as_current_span("smart_cache.get") as span:
            span.set_attribute("cache.name", name)

            cache_config = config or self.registry.resolve(name)
            if cache_config is None or not cache_config.in_namespace(self.namespace):
                logger.warning(
                    f"No cache config for {name} in {self.namespace}, "
                    "fetching without cache",
                    extra={"cache_name": name},
                )
                self.metrics.record_lookup(LookupResult.BYPASS)
                span.set_attribute("cache.result", LookupResult.BYPASS.value)
                return await fetcher()

            entry = await self._read_entry(name, cache_config)
            now_ms = self._now_ms()

            if entry is None:
                result = LookupResult.MISS
                self._debug(f"[SmartCache] MISS: {name}", cache_name=name)
            else:
                status = entry.get_status(cache_config.ttl, self._version, now_ms)
                if status is CacheEntryStatus.ACTIVE:
                    self.metrics.record_lookup(LookupResult.HIT)
                    span.set_attribute("cache.result", LookupResult.HIT.value)
                    self._debug(
                        f"[SmartCache] HIT: {name} "
                        f"(age: {round(entry.age_ms(now_ms) / 1000)}s / "
                        f"{cache_config.ttl.seconds}s)",
                        cache_name=name,
                    )
                    return entry.data

                result = LookupResult.STALE
                reason = (
                    "version mismatch"
                    if status is CacheEntryStatus.INVALIDATED
                    else "expired"
                )
                self._debug(f"[SmartCache] STALE: {name} ({reason})", cache_name=name)

            self.metrics.record_lookup(result)
            span.set_attribute("cache.result", result.value)

            if self.single_flight:
                return await self._fetch_shared(cache_config, fetcher)
            return await self._fetch_and_store(cache_config, fetcher)

    async def _read_entry(
        self, name: str, config: CacheConfig
    ) -> Optional[CacheEntry]:
        try:
            return await self.repository.find(config.key)
        except CacheStoreException as e:
            logger.error(
                f"Failed to read cache for {name}, treating as miss: {e}",
                extra={"cache_name": name, "key": config.key, **e.details},
            )
            self.metrics.record_store_error("get")
            return None

    async def _fetch_and_store(self, config: CacheConfig, fetcher: Fetcher) -> Any:
        data = await fetcher()
        await self.set(config.key, data)
        return data

    async def _fetch_shared(self, config: CacheConfig, fetcher: Fetcher) -> Any:
        key = config.key
        pending = self._in_flight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch_and_store(config, fetcher))
            self._in_flight[key] = pending
            pending.add_done_callback(lambda done: self._release_in_flight(key, done))
        return await asyncio.shield(pending)

    def _release_in_flight(self, key: str, done: "asyncio.Future[Any]") -> None:
        if self._in_flight.get(key) is done:
            del self._in_flight[key]

    async def set(self, storage_key: str, data: Any) -> bool:
        """
        Store data under a storage key with the current time and version.

        Returns:
            True if the entry was written
        """
        entry = CacheEntry.create(data, self._version, now_ms=self._now_ms())
        try:
            await self.repository.save(storage_key, entry)
        except CacheStoreException as e:
            logger.error(
                f"Failed to write cache for {storage_key}: {e}",
                extra={"key": storage_key, **e.details},
            )
            self.metrics.record_store_error("set")
            return False

        self._debug(f"[SmartCache] SET: {storage_key}", key=storage_key)
        return True

    # Invalidation

    async def invalidate(self, name: str) -> int:
        """
        Invalidate a single cache by logical name.

        Unknown names and absent keys are no-ops.

        Returns:
            Number of storage keys targeted (0 or 1)
        """
        with tracer.start_as_current_span("smart_cache.invalidate") as span:
            span.set_attribute("cache.name", name)

            config = self.registry.resolve(name)
            if config is None:
                return 0

            try:
                await self.repository.delete(config.key)
            except CacheStoreException as e:
                logger.error(f"Failed to invalidate {name}: {e}", extra=e.details)
                self.metrics.record_store_error("remove")
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                return 0

            self.metrics.record_invalidation("name", 1)
            self._debug(f"[SmartCache] INVALIDATE: {name}", cache_name=name)
            return 1

    async def invalidate_multiple(self, names: Iterable[str]) -> int:
        """
        Invalidate several caches with one batched remove.

        Unknown names are dropped silently.

        Returns:
            Number of storage keys targeted
        """
        names = list(names)
        with tracer.start_as_current_span("smart_cache.invalidate_multiple") as span:
            keys = self.registry.storage_keys(names)
            span.set_attribute("cache.key_count", len(keys))
            if not keys:
                return 0

            try:
                count = await self.repository.delete_many(keys)
            except CacheStoreException as e:
                logger.error(
                    f"Failed to invalidate multiple caches: {e}",
                    extra={"cache_names": names, **e.details},
                )
                self.metrics.record_store_error("remove_many")
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                return 0

            self.metrics.record_invalidation("names", count)
            self._debug(
                f"[SmartCache] INVALIDATE MULTIPLE: {', '.join(names)}",
                cache_names=names,
            )
            return count

    async def invalidate_by_pattern(self, prefix: str) -> int:
        """
        Invalidate every stored key starting with prefix.

        Used for whole parameterized families, e.g. "cache:dna_profile_".

        Returns:
            Number of storage keys removed
        """
        with tracer.start_as_current_span("smart_cache.invalidate_by_pattern") as span:
            span.set_attribute("cache.prefix", prefix)

            try:
                keys = await self.repository.find_keys(prefix)
                count = await self.repository.delete_many(keys)
            except CacheStoreException as e:
                logger.error(
                    f"Failed to invalidate pattern {prefix}: {e}",
                    extra={"prefix": prefix, **e.details},
                )
                self.metrics.record_store_error("remove_pattern")
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                return 0

            span.set_attribute("cache.key_count", count)
            if count:
                self.metrics.record_invalidation("pattern", count)
                self._debug(
                    f"[SmartCache] INVALIDATE PATTERN: {prefix} ({count} keys)",
                    prefix=prefix,
                )
            return count

    async def invalidate_all(self) -> int:
        """Invalidate every key under the cache namespace."""
        count = await self.invalidate_by_pattern(self.namespace)
        self._debug(f"[SmartCache] INVALIDATE ALL ({count} keys)")
        return count

    async def clear_all(self) -> int:
        """
        Invalidate everything and advance the cache version.

        Entries written under the previous version, including writes racing
        this call, are rejected on read even if their TTL has not elapsed.
        """
        count = await self.invalidate_all()
        self._version = self._version.next()
        logger.info(
            f"Cache cleared, version bumped to {self._version}",
            extra={"version": self._version.value, "removed": count},
        )
        return count

    # Stats

    async def get_stats(self) -> CacheStats:
        """Describe the namespaced entries currently in the store."""
        try:
            keys = await self.repository.find_keys(self.namespace)
            sizes: Dict[str, int] = {}
            for key in keys:
                raw = await self.repository.find_raw(key)
                if raw is not None:
                    sizes[key] = len(raw.encode("utf-8"))
        except CacheStoreException as e:
            logger.error(f"Failed to collect cache stats: {e}", extra=e.details)
            self.metrics.record_store_error("stats")
            return CacheStats(version=self.version, lookups=self.metrics.snapshot())

        return CacheStats(
            total_caches=len(keys),
            cache_keys=keys,
            sizes=sizes,
            version=self.version,
            lookups=self.metrics.snapshot(),
        )
