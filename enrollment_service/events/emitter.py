"""In-process publish/subscribe channel for domain events.

Delivery is synchronous and fire-and-forget: ``emit`` calls each
subscriber in registration order and returns.  A subscriber that raises
is logged and counted; it never affects the operation that emitted the
event or the other subscribers.  Nothing is persisted here.

The emitter is constructed explicitly and injected into the operation
classes, so tests can pass any object with an ``emit`` method instead.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from enrollment_service.core.metrics import EVENT_HANDLER_FAILURES, EVENTS_EMITTED
from enrollment_service.events.types import DomainEvent, EventType

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class EventSink(Protocol):
    def emit(self, event: DomainEvent) -> None: ...


class EventEmitter:
    def __init__(self) -> None:
        self._handlers: dict[EventType, list[EventHandler]] = {}
        self._catch_all: list[EventHandler] = []

    def subscribe(
        self, handler: EventHandler, *event_types: EventType
    ) -> Callable[[], None]:
        """Register ``handler`` for the given types, or for all types if none.

        Returns a callable that removes the subscription.
        """
        if not event_types:
            self._catch_all.append(handler)
            return lambda: self._catch_all.remove(handler)

        for event_type in event_types:
            self._handlers.setdefault(event_type, []).append(handler)

        def unsubscribe() -> None:
            for event_type in event_types:
                self._handlers[event_type].remove(handler)

        return unsubscribe

    def handler_count(self, event_type: EventType | None = None) -> int:
        if event_type is None:
            return len(self._catch_all) + sum(len(h) for h in self._handlers.values())
        return len(self._catch_all) + len(self._handlers.get(event_type, []))

    def emit(self, event: DomainEvent) -> None:
        EVENTS_EMITTED.labels(event_type=event.type.value).inc()
        handlers = [*self._handlers.get(event.type, []), *self._catch_all]
        logger.debug(
            "Emitting %s to %d handler(s)",
            event.type.value,
            len(handlers),
            extra={"event_type": event.type.value},
        )
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                EVENT_HANDLER_FAILURES.labels(event_type=event.type.value).inc()
                logger.exception(
                    "Event handler %r failed for %s",
                    getattr(handler, "__name__", handler),
                    event.type.value,
                    extra={"event_type": event.type.value},
                )
