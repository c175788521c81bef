"""
Cache Domain Services

Business rules deciding which caches die when something happens in the app.
The rules are data; the orchestrator subscribes them to the event bus.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple, Union


class DomainEvent(str, Enum):
    """Application events the cache reacts to."""

    SESSION_COMPLETED = "session_completed"
    SUBSCRIPTION_CHANGED = "subscription_changed"
    APP_FOREGROUND = "app_foreground"
    HEARTS_CONSUMED = "hearts_consumed"


def event_name(event: Union[str, Enum]) -> str:
    """Normalize an event given as enum member or plain string."""
    if isinstance(event, Enum):
        return str(event.value)
    return str(event)


@dataclass(frozen=True)
class InvalidationRule:
    """
    What to invalidate for one event.

    names are fixed cache names, templates are parameterized families
    invalidated by key prefix, invalidate_all drops every namespaced key.
    """

    names: Tuple[str, ...] = ()
    templates: Tuple[str, ...] = ()
    invalidate_all: bool = False

    def __post_init__(self) -> None:
        if not (self.names or self.templates or self.invalidate_all):
            raise ValueError("Invalidation rule must target at least one cache")


DEFAULT_INVALIDATION_RULES: Dict[DomainEvent, InvalidationRule] = {
    # Learning progress, stats and every per-language DNA profile
    DomainEvent.SESSION_COMPLETED: InvalidationRule(
        names=(
            "learning_plans",
            "progress_stats",
            "conversations",
            "recent_performance",
            "daily_stats",
        ),
        templates=("dna_profile",),
    ),
    DomainEvent.SUBSCRIPTION_CHANGED: InvalidationRule(
        names=("subscription_status", "hearts_status"),
    ),
    # Full refresh on resume
    DomainEvent.APP_FOREGROUND: InvalidationRule(invalidate_all=True),
    DomainEvent.HEARTS_CONSUMED: InvalidationRule(names=("hearts_status",)),
}
