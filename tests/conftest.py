"""
Main pytest configuration for all cache tests.

Fixtures, configuration, and utilities shared by the unit tests.
"""

import os

import pytest

# Set test environment variables before importing cache modules
os.environ["ENVIRONMENT"] = "test"
os.environ["CACHE_STORE_BACKEND"] = "memory"
os.environ["LOG_LEVEL"] = "DEBUG"

from smart_cache.core.config import Settings
from smart_cache.infrastructure.storage.memory_store import MemoryKeyValueStore
from smart_cache.services.cache.smart_cache import SmartCache
from smart_cache.services.events.event_bus import CacheEventBus


class FakeClock:
    """Controllable wall clock returning seconds since the Unix epoch."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Provide a fake clock frozen until advanced."""
    return FakeClock()


@pytest.fixture
def test_settings():
    """Provide settings for tests with verbose cache logging."""
    return Settings(ENVIRONMENT="test", CACHE_DEBUG=True)


@pytest.fixture
def memory_store():
    """Provide an empty in-memory store."""
    return MemoryKeyValueStore()


@pytest.fixture
def event_bus():
    """Provide a fresh event bus."""
    return CacheEventBus()


@pytest.fixture
def smart_cache(memory_store, event_bus, clock, test_settings):
    """Provide a smart cache wired to the in-memory store and fake clock."""
    return SmartCache(
        store=memory_store, events=event_bus, settings=test_settings, clock=clock
    )


# Test markers and configuration
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "redis: marks tests as Redis-related")
    config.addinivalue_line("markers", "events: marks tests as event-bus tests")


def pytest_collection_modifyitems(config, items):
    """Add markers based on test file location."""
    for item in items:
        if "redis" in item.nodeid:
            item.add_marker(pytest.mark.redis)
        if "event" in item.nodeid:
            item.add_marker(pytest.mark.events)
