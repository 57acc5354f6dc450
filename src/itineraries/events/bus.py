"""Domain event publishing.

Services depend on the :class:`EventPublisher` protocol.  The in-process
:class:`InMemoryEventBus` fans events out to subscribed handlers and isolates
handler failures from the publisher.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Callable
from typing import Protocol

import structlog

from itineraries.events.models import DomainEvent

logger = structlog.get_logger()

EventHandler = Callable[[DomainEvent], None]


class EventPublisher(Protocol):
    def publish(self, event: DomainEvent) -> None: ...


class InMemoryEventBus:
    """Synchronous in-process publish/subscribe keyed by event type.

    A handler registered for ``"*"`` receives every event.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        with self._lock:
            self._handlers[event_type].append(handler)

    def publish(self, event: DomainEvent) -> None:
        """Deliver *event* to its handlers; a failing handler is logged and skipped."""
        with self._lock:
            handlers = [*self._handlers.get(event.type, []), *self._handlers.get("*", [])]

        logger.debug("Publishing domain event", event_type=event.type, handlers=len(handlers))
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Domain event handler failed",
                    event_type=event.type,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                )


def publish_safely(publisher: EventPublisher | None, event: DomainEvent) -> None:
    """Publish *event*, logging instead of raising if the publisher fails.

    Args:
        publisher: The configured publisher, or ``None`` when events are disabled.
        event: The event to publish.
    """
    if publisher is None:
        return
    try:
        publisher.publish(event)
    except Exception:
        logger.warning("Domain event publish failed", event_type=event.type, exc_info=True)
