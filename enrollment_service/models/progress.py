from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field


def clamp_percent(value: float) -> int:
    """Round half up and clamp into [0, 100]."""
    if math.isnan(value):
        return 0
    return max(0, min(100, math.floor(value + 0.5)))


@dataclass(frozen=True, slots=True)
class VideoProgress:
    """Watch state of the video attached to one chapter."""

    chapter_id: int
    progress: float
    last_watched: int


@dataclass(frozen=True, slots=True)
class QuizAttempt:
    quiz_id: int
    chapter_id: int
    score: float
    passed: bool
    attempted_at: int


@dataclass(frozen=True, slots=True)
class StudentProgress:
    """Authoritative progress record for one (student, course) pair.

    - completed_chapters: set semantics, no duplicates
    - watched_videos: keyed by chapter id, replaced on update
    - quiz_attempts: append-only log, never merged or deduplicated
    """

    student_id: int
    course_id: int
    completed_chapters: frozenset[int] = frozenset()
    watched_videos: Mapping[int, VideoProgress] = field(default_factory=dict)
    quiz_attempts: tuple[QuizAttempt, ...] = ()
    total_progress: int = 0
    last_accessed: int | None = None
    id: int | None = None

    @staticmethod
    def new(
        *, student_id: int, course_id: int, now: int, total_progress: int = 0
    ) -> StudentProgress:
        return StudentProgress(
            student_id=student_id,
            course_id=course_id,
            total_progress=total_progress,
            last_accessed=now,
        )

    def has_completed(self, chapter_id: int) -> bool:
        return chapter_id in self.completed_chapters
