"""
Cache Registry

Maps logical cache names to their caching policy. Fixed names live in a
static table; parameterized families (one cache per language, per page
size, ...) are derived from templates.
"""

from typing import Dict, Iterable, List, Optional

from ...constants import CACHE_NAMESPACE
from ...core.config import get_settings
from .entities import CacheConfig
from .value_objects import TTL, CacheKey

# TTL per fixed cache name
CACHE_TTLS: Dict[str, TTL] = {
    "learning_plans": TTL.minutes(10),
    "progress_stats": TTL.minutes(3),
    "subscription_status": TTL.minutes(15),
    "notifications": TTL.minutes(1),
    "hearts_status": TTL.minutes(2),
    "conversations": TTL.minutes(5),
    "recent_performance": TTL.minutes(5),
    "daily_stats": TTL.minutes(5),
    "lifetime_stats": TTL.minutes(60),
}

# TTL per parameterized cache family
CACHE_TEMPLATE_TTLS: Dict[str, TTL] = {
    "dna_profile": TTL.minutes(5),
    "conversations": TTL.minutes(5),
}


class CacheRegistry:
    """
    Registry of cache policies.

    Defined once at startup and read-only afterwards. Every storage key it
    produces starts with the namespace so prefix scans find all of them.
    """

    def __init__(
        self,
        namespace: str = CACHE_NAMESPACE,
        ttls: Optional[Dict[str, TTL]] = None,
        template_ttls: Optional[Dict[str, TTL]] = None,
    ):
        self.namespace = namespace
        self._configs: Dict[str, CacheConfig] = {}
        self._templates: Dict[str, TTL] = {}

        for name, ttl in (CACHE_TTLS if ttls is None else ttls).items():
            self.register(name, ttl)
        for template, ttl in (
            CACHE_TEMPLATE_TTLS if template_ttls is None else template_ttls
        ).items():
            self.register_template(template, ttl)

    def register(self, name: str, ttl: TTL) -> CacheConfig:
        """Add a fixed cache name."""
        config = CacheConfig(
            key=CacheKey.namespaced(self.namespace, name).value, ttl=ttl
        )
        self._configs[name] = config
        return config

    def register_template(self, template: str, ttl: TTL) -> None:
        """Add a parameterized cache family."""
        CacheKey.namespaced(self.namespace, template)
        self._templates[template] = ttl

    def resolve(self, name: str) -> Optional[CacheConfig]:
        """Look up a fixed cache name; None when no policy is registered."""
        return self._configs.get(name)

    def resolve_dynamic(self, template: str, *params: object) -> CacheConfig:
        """
        Derive the policy for one member of a parameterized family.

        Args:
            template: Family name, e.g. "dna_profile"
            params: Values identifying the member, e.g. "spanish". Whitespace
                inside a value becomes "_", so "brazilian portuguese" and
                "brazilian_portuguese" share one key.

        Returns:
            Config whose key is namespace + template + "_" + params

        Raises:
            ValueError: If the template is not registered
        """
        ttl = self._templates.get(template)
        if ttl is None:
            raise ValueError(f"Unknown cache template: {template}")
        if not params:
            raise ValueError(f"Cache template {template} requires parameters")

        suffix = "_".join("_".join(str(param).split()) for param in params)
        return CacheConfig(key=f"{self.template_prefix(template)}{suffix}", ttl=ttl)

    def template_prefix(self, template: str) -> str:
        """Key prefix shared by every member of a family."""
        if template not in self._templates:
            raise ValueError(f"Unknown cache template: {template}")
        return f"{self.namespace}{template}_"

    def storage_keys(self, names: Iterable[str]) -> List[str]:
        """Storage keys of the known names, unknown names dropped."""
        return [
            config.key
            for config in (self.resolve(name) for name in names)
            if config is not None
        ]

    def names(self) -> List[str]:
        """Registered fixed names."""
        return list(self._configs)

    def templates(self) -> List[str]:
        """Registered template names."""
        return list(self._templates)


# Follows the configured CACHE_NAMESPACE
default_registry = CacheRegistry(namespace=get_settings().CACHE_NAMESPACE)

# Static table of fixed cache names
CACHE_CONFIG: Dict[str, CacheConfig] = {
    name: default_registry.resolve(name) for name in default_registry.names()
}


def dna_profile_cache_config(
    language: str, registry: Optional[CacheRegistry] = None
) -> CacheConfig:
    """Config for the speaking DNA profile of one language.

    Pass the cache's own registry when it was built with another namespace.
    """
    return (registry or default_registry).resolve_dynamic("dna_profile", language)


def conversations_cache_config(
    limit: int, registry: Optional[CacheRegistry] = None
) -> CacheConfig:
    """Config for a conversation list fetched with a given page size."""
    return (registry or default_registry).resolve_dynamic("conversations", limit)
