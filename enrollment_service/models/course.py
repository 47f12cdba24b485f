from __future__ import annotations

from dataclasses import dataclass

# Statuses under which a course accepts enrollments
ENROLLABLE_STATUSES = frozenset({"published", "active"})


@dataclass(frozen=True, slots=True)
class Course:
    id: int
    title: str
    status: str = "draft"  # draft|published|active|archived
    is_requestable: bool = True

    @property
    def is_enrollable(self) -> bool:
        return self.status.lower() in ENROLLABLE_STATUSES


@dataclass(frozen=True, slots=True)
class CourseModule:
    id: int
    course_id: int
    title: str
    order: int = 0


@dataclass(frozen=True, slots=True)
class Chapter:
    id: int
    module_id: int
    title: str
    type: str = "video"  # video|textbook|mcq
    order: int = 0
