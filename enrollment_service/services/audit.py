"""Audit trail for domain events.

Processed access requests are deleted from storage, so the log lines
written here are the only lasting record of a request's lifecycle.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from enrollment_service.events import DomainEvent, EventEmitter

logger = logging.getLogger("enrollment_service.audit")


def log_event(event: DomainEvent) -> None:
    logger.info(
        "%s student=%d course=%d actor=%s",
        event.type.value,
        event.student_id,
        event.course_id,
        event.actor_id if event.actor_id is not None else "-",
        extra={
            "event_type": event.type.value,
            "student_id": event.student_id,
            "course_id": event.course_id,
        },
    )


def register_audit_log(emitter: EventEmitter) -> Callable[[], None]:
    """Subscribe the audit logger to every event type."""
    return emitter.subscribe(log_event)
