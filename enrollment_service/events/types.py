"""Closed set of domain events reported by the data operations.

Every mutation emits exactly one of the EventType members below.  The
event classes form a tagged union: ``EVENT_CLASSES`` fixes which class
carries which type, and construction with a mismatched type fails.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


class EventType(str, enum.Enum):
    ENROLLMENT_CREATED = "enrollment.created"
    ENROLLMENT_REMOVED = "enrollment.removed"
    PROGRESS_UPDATED = "progress.updated"
    CHAPTER_COMPLETED = "progress.chapter_completed"
    QUIZ_SUBMITTED = "progress.quiz_submitted"
    REQUEST_CREATED = "request.created"
    REQUEST_APPROVED = "request.approved"
    REQUEST_REJECTED = "request.rejected"


@dataclass(frozen=True, slots=True)
class DomainEvent:
    type: EventType
    timestamp: int
    student_id: int
    course_id: int
    actor_id: int | None = None  # admin or student who triggered the change
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        expected = EVENT_CLASSES.get(self.type)
        if expected is not type(self):
            raise TypeError(
                f"{self.type.name} must be carried by "
                f"{expected.__name__ if expected else '?'}, not {type(self).__name__}"
            )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type.value,
            "timestamp": self.timestamp,
            "student_id": self.student_id,
            "course_id": self.course_id,
            "actor_id": self.actor_id,
            "metadata": dict(self.metadata),
        }
        return data


@dataclass(frozen=True, slots=True)
class EnrollmentEvent(DomainEvent):
    source: str = "manual"  # manual|admin|request_approval|sync

    def to_dict(self) -> dict[str, Any]:
        data = DomainEvent.to_dict(self)
        data["source"] = self.source
        return data


@dataclass(frozen=True, slots=True)
class ProgressEvent(DomainEvent):
    progress: int = 0
    previous_progress: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = DomainEvent.to_dict(self)
        data.update(progress=self.progress, previous_progress=self.previous_progress)
        return data


@dataclass(frozen=True, slots=True)
class RequestEvent(DomainEvent):
    request_id: int = 0
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = DomainEvent.to_dict(self)
        data.update(request_id=self.request_id, reason=self.reason)
        return data


EVENT_CLASSES: dict[EventType, type[DomainEvent]] = {
    EventType.ENROLLMENT_CREATED: EnrollmentEvent,
    EventType.ENROLLMENT_REMOVED: EnrollmentEvent,
    EventType.PROGRESS_UPDATED: ProgressEvent,
    EventType.CHAPTER_COMPLETED: ProgressEvent,
    EventType.QUIZ_SUBMITTED: ProgressEvent,
    EventType.REQUEST_CREATED: RequestEvent,
    EventType.REQUEST_APPROVED: RequestEvent,
    EventType.REQUEST_REJECTED: RequestEvent,
}
