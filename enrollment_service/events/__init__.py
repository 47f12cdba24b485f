from enrollment_service.events.emitter import EventEmitter, EventHandler, EventSink
from enrollment_service.events.types import (
    EVENT_CLASSES,
    DomainEvent,
    EnrollmentEvent,
    EventType,
    ProgressEvent,
    RequestEvent,
)

__all__ = [
    "EVENT_CLASSES",
    "DomainEvent",
    "EnrollmentEvent",
    "EventEmitter",
    "EventHandler",
    "EventSink",
    "EventType",
    "ProgressEvent",
    "RequestEvent",
]
