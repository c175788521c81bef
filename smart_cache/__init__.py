"""
Smart Cache

Client-side persistent cache with TTL expiry and event-driven invalidation.
"""

from .constants import APP_NAME, APP_VERSION

__version__ = APP_VERSION
