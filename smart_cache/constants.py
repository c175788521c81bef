"""
Smart Cache Global Constants

Centralized location for constants shared across the cache layers.
"""

import time

# Every storage key owned by the cache starts with this prefix
CACHE_NAMESPACE = "cache:"


# Timestamp Functions
def current_time_ms() -> int:
    """Get current wall-clock time in milliseconds since the Unix epoch."""
    return int(round(time.time() * 1000))


# Application Constants
APP_NAME = "Smart Cache"
APP_VERSION = "1.0.0"
