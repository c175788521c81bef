"""
Cache Event Bus

Minimal synchronous publish/subscribe channel for domain events.

Handlers run in registration order. A failing handler is logged and never
stops the handlers after it. Coroutine handlers are scheduled on the running
loop and emit() returns without waiting for them; drain() waits.
"""

import asyncio
import inspect
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

import structlog

from ...domain.cache.domain_services import event_name

logger = structlog.get_logger(__name__)

EventHandler = Callable[..., Any]
EventName = Union[str, Enum]


class CacheEventBus:
    """
    Event emitter wiring app events to cache invalidation.

    One instance is created at application start and shared explicitly.
    """

    def __init__(self):
        self._listeners: Dict[str, List[EventHandler]] = {}
        self._pending: Set[asyncio.Task] = set()

    def on(self, event: EventName, handler: EventHandler) -> None:
        """Register a handler for an event."""
        if not callable(handler):
            raise TypeError(f"handler must be callable, got {type(handler).__name__}")
        self._listeners.setdefault(event_name(event), []).append(handler)

    def emit(self, event: EventName, *args: Any, **kwargs: Any) -> int:
        """
        Invoke every handler registered for an event.

        Args:
            event: Event name or DomainEvent member
            args: Positional arguments passed to each handler
            kwargs: Keyword arguments passed to each handler

        Returns:
            Number of handlers started
        """
        name = event_name(event)
        handlers = list(self._listeners.get(name, ()))

        for handler in handlers:
            try:
                result = handler(*args, **kwargs)
            except Exception:
                logger.exception("Cache event handler failed", cache_event=name)
                continue

            if inspect.isawaitable(result):
                self._schedule(name, result)

        return len(handlers)

    def remove_all_listeners(self, event: Optional[EventName] = None) -> None:
        """Clear handlers for one event, or for every event when omitted."""
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event_name(event), None)

    def listener_count(self, event: EventName) -> int:
        """Number of handlers registered for an event."""
        return len(self._listeners.get(event_name(event), ()))

    @property
    def pending(self) -> int:
        """Number of scheduled handler coroutines still running."""
        return len(self._pending)

    async def drain(self) -> None:
        """Wait until every scheduled handler coroutine has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def close(self) -> None:
        """Wait for running handlers and drop all subscriptions."""
        await self.drain()
        self.remove_all_listeners()

    def _schedule(self, name: str, awaitable: Awaitable[Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Called from synchronous code: run the handler to completion here
            asyncio.run(self._guard(name, awaitable))
            return

        task = loop.create_task(self._guard(name, awaitable))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @staticmethod
    async def _guard(name: str, awaitable: Awaitable[Any]) -> None:
        try:
            await awaitable
        except Exception:
            logger.exception("Async cache event handler failed", cache_event=name)
