"""
Unit tests for SmartCache.

Tests read-through behaviour, TTL and version validity, graceful
degradation on store failures and invalidation operations.
"""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from smart_cache.core.config import Settings
from smart_cache.domain.cache.registry import (
    conversations_cache_config,
    dna_profile_cache_config,
)
from smart_cache.infrastructure.storage.memory_store import MemoryKeyValueStore
from smart_cache.services.cache.smart_cache import SmartCache
from smart_cache.services.events.event_bus import CacheEventBus


class FailingGetStore(MemoryKeyValueStore):
    async def get(self, key):
        raise RuntimeError("storage unavailable")


class FailingSetStore(MemoryKeyValueStore):
    async def set(self, key, value):
        raise RuntimeError("quota exceeded")


class FailingListStore(MemoryKeyValueStore):
    async def list_keys(self):
        raise RuntimeError("enumeration failed")


def counting_fetcher(value):
    return AsyncMock(return_value=value)


class TestSmartCacheGet:
    """Test read-through lookups."""

    @pytest.mark.asyncio
    async def test_miss_fetches_and_stores(self, smart_cache, memory_store):
        fetcher = counting_fetcher({"xp": 120})

        data = await smart_cache.get("progress_stats", fetcher)

        assert data == {"xp": 120}
        fetcher.assert_awaited_once()
        assert "cache:progress_stats" in memory_store

    @pytest.mark.asyncio
    async def test_hit_skips_fetcher(self, smart_cache):
        await smart_cache.get("progress_stats", counting_fetcher({"xp": 120}))
        fetcher = counting_fetcher({"xp": 999})

        data = await smart_cache.get("progress_stats", fetcher)

        assert data == {"xp": 120}
        fetcher.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_valid_just_before_ttl(self, smart_cache, clock):
        await smart_cache.get("progress_stats", counting_fetcher("old"))
        clock.advance(179.999)
        fetcher = counting_fetcher("new")

        assert await smart_cache.get("progress_stats", fetcher) == "old"
        fetcher.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stale_at_ttl(self, smart_cache, clock):
        await smart_cache.get("progress_stats", counting_fetcher("old"))
        clock.advance(180)
        fetcher = counting_fetcher("new")

        assert await smart_cache.get("progress_stats", fetcher) == "new"
        fetcher.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refetch_restarts_ttl(self, smart_cache, clock):
        await smart_cache.get("notifications", counting_fetcher(["a"]))
        clock.advance(60)
        await smart_cache.get("notifications", counting_fetcher(["b"]))
        clock.advance(59)

        assert await smart_cache.get("notifications", counting_fetcher(["c"])) == ["b"]

    @pytest.mark.asyncio
    async def test_version_dominates_ttl(self, smart_cache, memory_store):
        await smart_cache.get("learning_plans", counting_fetcher(["plan"]))
        old_raw = await memory_store.get("cache:learning_plans")

        await smart_cache.clear_all()
        # Entry written under the previous version lands after the clear
        await memory_store.set("cache:learning_plans", old_raw)
        fetcher = counting_fetcher(["fresh plan"])

        assert await smart_cache.get("learning_plans", fetcher) == ["fresh plan"]
        fetcher.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_name_bypasses_cache(self, smart_cache, memory_store):
        fetcher = counting_fetcher("value")

        assert await smart_cache.get("not_registered", fetcher) == "value"
        assert await smart_cache.get("not_registered", fetcher) == "value"

        assert fetcher.await_count == 2
        assert len(memory_store) == 0

    @pytest.mark.asyncio
    async def test_fetcher_error_propagates_without_retry(
        self, smart_cache, memory_store
    ):
        fetcher = AsyncMock(side_effect=ConnectionError("backend down"))

        with pytest.raises(ConnectionError, match="backend down"):
            await smart_cache.get("daily_stats", fetcher)

        fetcher.assert_awaited_once()
        assert "cache:daily_stats" not in memory_store

    @pytest.mark.asyncio
    async def test_store_read_failure_degrades_to_fetch(
        self, event_bus, clock, test_settings
    ):
        store = FailingGetStore()
        cache = SmartCache(store, event_bus, settings=test_settings, clock=clock)
        fetcher = counting_fetcher({"hearts": 5})

        assert await cache.get("hearts_status", fetcher) == {"hearts": 5}
        fetcher.assert_awaited_once()
        assert "cache:hearts_status" in store

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_a_miss(self, smart_cache, memory_store):
        await memory_store.set("cache:daily_stats", "{not json")
        fetcher = counting_fetcher({"minutes": 12})

        assert await smart_cache.get("daily_stats", fetcher) == {"minutes": 12}
        fetcher.assert_awaited_once()

        # Overwritten with a valid envelope
        assert await smart_cache.get("daily_stats", counting_fetcher(None)) == {
            "minutes": 12
        }

    @pytest.mark.asyncio
    async def test_store_write_failure_still_returns_data(
        self, event_bus, clock, test_settings
    ):
        cache = SmartCache(
            FailingSetStore(), event_bus, settings=test_settings, clock=clock
        )
        fetcher = counting_fetcher("data")

        assert await cache.get("conversations", fetcher) == "data"
        assert await cache.get("conversations", fetcher) == "data"
        assert fetcher.await_count == 2

    @pytest.mark.asyncio
    async def test_dynamic_config(self, smart_cache, memory_store):
        spanish = counting_fetcher({"lang": "es"})
        french = counting_fetcher({"lang": "fr"})

        await smart_cache.get(
            "dna_profile", spanish, config=dna_profile_cache_config("spanish")
        )
        await smart_cache.get(
            "dna_profile", french, config=dna_profile_cache_config("french")
        )
        again = await smart_cache.get(
            "dna_profile",
            counting_fetcher(None),
            config=dna_profile_cache_config("spanish"),
        )

        assert again == {"lang": "es"}
        assert "cache:dna_profile_spanish" in memory_store
        assert "cache:dna_profile_french" in memory_store

    @pytest.mark.asyncio
    async def test_round_trip_preserves_structure(self, smart_cache):
        value = {"plans": [{"id": 1, "done": False, "score": 0.5}], "note": None}

        await smart_cache.get("learning_plans", counting_fetcher(value))
        cached = await smart_cache.get("learning_plans", counting_fetcher(None))

        assert cached == value

    @pytest.mark.asyncio
    async def test_none_is_cached(self, smart_cache):
        await smart_cache.get("notifications", counting_fetcher(None))
        fetcher = counting_fetcher(["new"])

        assert await smart_cache.get("notifications", fetcher) is None
        fetcher.assert_not_awaited()


class TestSmartCacheSet:
    """Test direct writes."""

    @pytest.mark.asyncio
    async def test_set_writes_envelope(self, smart_cache, memory_store):
        assert await smart_cache.set("cache:lifetime_stats", {"days": 40}) is True
        raw = await memory_store.get("cache:lifetime_stats")

        assert '"version":1' in raw
        assert '"timestamp":1700000000000' in raw

    @pytest.mark.asyncio
    async def test_set_unserializable_returns_false(self, smart_cache, memory_store):
        assert await smart_cache.set("cache:lifetime_stats", object()) is False
        assert len(memory_store) == 0

    @pytest.mark.asyncio
    async def test_unserializable_fetch_result_is_returned(self, smart_cache):
        value = {1, 2, 3}
        assert await smart_cache.get("daily_stats", counting_fetcher(value)) == value

    @pytest.mark.asyncio
    async def test_lossy_value_is_not_cached(self, smart_cache, memory_store):
        value = {1: ("a", "b")}
        fetcher = counting_fetcher(value)

        assert await smart_cache.get("daily_stats", fetcher) == value
        assert await smart_cache.get("daily_stats", fetcher) == value

        assert fetcher.await_count == 2
        assert "cache:daily_stats" not in memory_store


class TestSmartCacheCorruptTimestamps:
    """Test envelopes whose timestamp cannot be used."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("timestamp", ["Infinity", "NaN", "1e400"])
    async def test_non_finite_timestamp_is_a_miss(
        self, smart_cache, memory_store, timestamp
    ):
        await memory_store.set(
            "cache:progress_stats",
            '{"data":"old","timestamp":%s,"version":1}' % timestamp,
        )
        fetcher = counting_fetcher("fresh")

        assert await smart_cache.get("progress_stats", fetcher) == "fresh"
        fetcher.assert_awaited_once()
        assert await smart_cache.get("progress_stats", counting_fetcher(None)) == (
            "fresh"
        )


class TestSmartCacheNamespace:
    """Test caches configured with a non-default namespace."""

    @pytest.fixture
    def app_cache(self, memory_store, event_bus, clock):
        settings = Settings(ENVIRONMENT="test", CACHE_NAMESPACE="app:")
        return SmartCache(memory_store, event_bus, settings=settings, clock=clock)

    @pytest.mark.asyncio
    async def test_dynamic_keys_follow_cache_namespace(self, app_cache, memory_store):
        config = dna_profile_cache_config("spanish", registry=app_cache.registry)

        await app_cache.get("dna_profile", counting_fetcher({"lang": "es"}), config)
        await app_cache.get("progress_stats", counting_fetcher({"xp": 1}))

        assert sorted(await memory_store.list_keys()) == [
            "app:dna_profile_spanish",
            "app:progress_stats",
        ]

        assert await app_cache.invalidate_all() == 2
        assert len(memory_store) == 0

    @pytest.mark.asyncio
    async def test_foreign_namespace_config_is_not_cached(
        self, app_cache, memory_store
    ):
        config = dna_profile_cache_config("spanish")
        fetcher = counting_fetcher({"lang": "es"})

        assert config.key == "cache:dna_profile_spanish"
        await app_cache.get("dna_profile", fetcher, config)
        await app_cache.get("dna_profile", fetcher, config)

        assert fetcher.await_count == 2
        assert len(memory_store) == 0
        assert app_cache.metrics.snapshot()["bypass"] == 2


class TestSmartCacheInvalidation:
    """Test invalidation operations."""

    async def populate(self, cache, names):
        for name in names:
            await cache.get(name, counting_fetcher(name))

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self, smart_cache):
        await self.populate(smart_cache, ["learning_plans"])

        assert await smart_cache.invalidate("learning_plans") == 1
        fetcher = counting_fetcher("fresh")

        assert await smart_cache.get("learning_plans", fetcher) == "fresh"
        fetcher.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalidate_is_idempotent(self, smart_cache):
        assert await smart_cache.invalidate("learning_plans") == 1
        assert await smart_cache.invalidate("learning_plans") == 1

    @pytest.mark.asyncio
    async def test_invalidate_unknown_name(self, smart_cache):
        assert await smart_cache.invalidate("not_registered") == 0

    @pytest.mark.asyncio
    async def test_invalidate_multiple(self, smart_cache, memory_store):
        await self.populate(
            smart_cache, ["learning_plans", "daily_stats", "notifications"]
        )

        count = await smart_cache.invalidate_multiple(
            ["learning_plans", "daily_stats", "not_registered"]
        )

        assert count == 2
        assert await memory_store.list_keys() == ["cache:notifications"]

    @pytest.mark.asyncio
    async def test_invalidate_multiple_batches_removal(self, smart_cache, memory_store):
        memory_store.remove_many = AsyncMock()
        memory_store.remove = AsyncMock()

        await smart_cache.invalidate_multiple(["learning_plans", "daily_stats"])

        memory_store.remove_many.assert_awaited_once_with(
            ["cache:learning_plans", "cache:daily_stats"]
        )
        memory_store.remove.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalidate_multiple_nothing_known(self, smart_cache):
        assert await smart_cache.invalidate_multiple(["nope"]) == 0

    @pytest.mark.asyncio
    async def test_invalidate_by_pattern(self, smart_cache, memory_store):
        for key in (
            "cache:dna_profile_spanish",
            "cache:dna_profile_french",
            "cache:progress_stats",
        ):
            await smart_cache.set(key, {})

        count = await smart_cache.invalidate_by_pattern("cache:dna_profile_")

        assert count == 2
        assert await memory_store.list_keys() == ["cache:progress_stats"]

    @pytest.mark.asyncio
    async def test_invalidate_by_pattern_no_match(self, smart_cache):
        assert await smart_cache.invalidate_by_pattern("cache:nothing_") == 0

    @pytest.mark.asyncio
    async def test_invalidate_all_keeps_foreign_keys(self, smart_cache, memory_store):
        await self.populate(smart_cache, ["learning_plans", "hearts_status"])
        await smart_cache.set(conversations_cache_config(20).key, [])
        await memory_store.set("prefs:theme", "dark")

        assert await smart_cache.invalidate_all() == 3
        assert await memory_store.list_keys() == ["prefs:theme"]

    @pytest.mark.asyncio
    async def test_clear_all_bumps_version(self, smart_cache, memory_store):
        await self.populate(smart_cache, ["learning_plans"])

        assert await smart_cache.clear_all() == 1
        assert smart_cache.version == 2
        assert len(memory_store) == 0

        await smart_cache.clear_all()
        assert smart_cache.version == 3

    @pytest.mark.asyncio
    async def test_failed_pattern_invalidation_returns_zero(
        self, event_bus, clock, test_settings
    ):
        cache = SmartCache(
            FailingListStore(), event_bus, settings=test_settings, clock=clock
        )

        assert await cache.invalidate_all() == 0
        assert (
            cache.metrics.registry.get_sample_value(
                "smart_cache_store_errors_total", {"operation": "remove_pattern"}
            )
            == 1.0
        )

    @pytest.mark.asyncio
    async def test_failed_invalidate_returns_zero(self, smart_cache, memory_store):
        memory_store.remove = AsyncMock(side_effect=RuntimeError("locked"))

        assert await smart_cache.invalidate("learning_plans") == 0

    @pytest.mark.asyncio
    async def test_separate_instances_have_separate_versions(
        self, memory_store, clock, test_settings
    ):
        cache_a = SmartCache(
            memory_store, CacheEventBus(), settings=test_settings, clock=clock
        )
        cache_b = SmartCache(
            memory_store, CacheEventBus(), settings=test_settings, clock=clock
        )

        await cache_a.clear_all()
        await cache_b.get("daily_stats", counting_fetcher("from b"))
        fetcher = counting_fetcher("from a")

        assert cache_a.version == 2
        assert cache_b.version == 1
        assert await cache_a.get("daily_stats", fetcher) == "from a"
        fetcher.assert_awaited_once()


class TestSmartCacheStats:
    """Test get_stats and lookup counters."""

    @pytest.mark.asyncio
    async def test_stats(self, smart_cache, memory_store):
        await smart_cache.get("learning_plans", counting_fetcher([1, 2, 3]))
        await smart_cache.get("learning_plans", counting_fetcher(None))
        await smart_cache.get("unregistered", counting_fetcher(None))
        await memory_store.set("prefs:theme", "dark")

        stats = await smart_cache.get_stats()

        raw = await memory_store.get("cache:learning_plans")
        assert stats.total_caches == 1
        assert stats.cache_keys == ["cache:learning_plans"]
        assert stats.sizes == {"cache:learning_plans": len(raw.encode("utf-8"))}
        assert stats.version == 1
        assert stats.lookups["hit"] == 1
        assert stats.lookups["miss"] == 1
        assert stats.lookups["bypass"] == 1
        assert smart_cache.metrics.hit_rate() == 0.5

    @pytest.mark.asyncio
    async def test_stats_on_store_failure(self, event_bus, clock, test_settings):
        cache = SmartCache(
            FailingListStore(), event_bus, settings=test_settings, clock=clock
        )

        stats = await cache.get_stats()

        assert stats.total_caches == 0
        assert stats.cache_keys == []

    @pytest.mark.asyncio
    async def test_stale_lookup_counted(self, smart_cache, clock):
        await smart_cache.get("notifications", counting_fetcher([]))
        clock.advance(61)
        await smart_cache.get("notifications", counting_fetcher([]))

        assert smart_cache.metrics.snapshot()["stale"] == 1


class TestSmartCacheDebug:
    """Test verbose logging switch."""

    @pytest.mark.asyncio
    async def test_debug_logs_hit_and_miss(self, smart_cache, caplog):
        caplog.set_level(logging.INFO, logger="smart_cache")

        await smart_cache.get("progress_stats", counting_fetcher(1))
        await smart_cache.get("progress_stats", counting_fetcher(1))

        assert "[SmartCache] MISS: progress_stats" in caplog.text
        assert "[SmartCache] SET: cache:progress_stats" in caplog.text
        assert "[SmartCache] HIT: progress_stats" in caplog.text

    @pytest.mark.asyncio
    async def test_debug_disabled(self, smart_cache, caplog):
        caplog.set_level(logging.INFO, logger="smart_cache")
        smart_cache.set_debug_mode(False)

        await smart_cache.get("progress_stats", counting_fetcher(1))

        assert "[SmartCache]" not in caplog.text


class TestSmartCacheConcurrency:
    """Test concurrent lookups of the same key."""

    def slow_fetcher(self, calls):
        async def fetch():
            calls.append(1)
            await asyncio.sleep(0.01)
            return {"n": len(calls)}

        return fetch

    @pytest.mark.asyncio
    async def test_concurrent_misses_each_fetch(self, smart_cache):
        calls = []
        fetch = self.slow_fetcher(calls)

        results = await asyncio.gather(
            smart_cache.get("daily_stats", fetch),
            smart_cache.get("daily_stats", fetch),
        )

        assert len(calls) == 2
        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_single_flight_shares_fetch(
        self, memory_store, event_bus, clock, test_settings
    ):
        cache = SmartCache(
            memory_store,
            event_bus,
            settings=test_settings,
            clock=clock,
            single_flight=True,
        )
        calls = []
        fetch = self.slow_fetcher(calls)

        results = await asyncio.gather(
            cache.get("daily_stats", fetch),
            cache.get("daily_stats", fetch),
        )

        assert len(calls) == 1
        assert results == [{"n": 1}, {"n": 1}]
        assert cache._in_flight == {}

    @pytest.mark.asyncio
    async def test_single_flight_shares_errors(
        self, memory_store, event_bus, clock, test_settings
    ):
        cache = SmartCache(
            memory_store,
            event_bus,
            settings=test_settings,
            clock=clock,
            single_flight=True,
        )
        calls = []

        async def failing():
            calls.append(1)
            await asyncio.sleep(0.01)
            raise ValueError("bad response")

        results = await asyncio.gather(
            cache.get("daily_stats", failing),
            cache.get("daily_stats", failing),
            return_exceptions=True,
        )

        assert len(calls) == 1
        assert all(isinstance(result, ValueError) for result in results)
