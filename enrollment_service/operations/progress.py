"""Progress operations.

Each function reads the StudentProgress row under a row lock, rewrites
it, and mirrors ``total_progress`` onto the Enrollment row in the same
transaction.  Percentages are whole numbers in [0, 100], rounded half up
from completed/total chapters.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from enrollment_service.core.clock import Clock, utc_now
from enrollment_service.events import EventSink, EventType, ProgressEvent
from enrollment_service.models.enrollment import Enrollment
from enrollment_service.models.progress import (
    QuizAttempt,
    StudentProgress,
    VideoProgress,
    clamp_percent,
)
from enrollment_service.operations.errors import (
    ChapterNotInCourseError,
    EnrollmentNotFoundError,
)
from enrollment_service.repos.unit_of_work import Transaction

logger = logging.getLogger(__name__)

# Watching this much of a chapter's video counts as completing the chapter
VIDEO_COMPLETION_THRESHOLD = 90.0


@dataclass(frozen=True, slots=True)
class ProgressUpdateParams:
    user_id: int
    course_id: int
    progress: float
    chapter_id: int | None = None
    source: str = "manual"
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ChapterCompletionParams:
    user_id: int
    course_id: int
    chapter_id: int


@dataclass(frozen=True, slots=True)
class VideoProgressParams:
    user_id: int
    course_id: int
    chapter_id: int
    video_progress: float


@dataclass(frozen=True, slots=True)
class QuizSubmissionParams:
    user_id: int
    course_id: int
    chapter_id: int
    quiz_id: int
    score: float
    passed: bool


ChapterActivityParams = (
    ChapterCompletionParams | VideoProgressParams | QuizSubmissionParams
)


@dataclass(frozen=True, slots=True)
class ProgressUpdateResult:
    progress: int
    previous_progress: int


@dataclass(frozen=True, slots=True)
class ChapterCompletionResult:
    progress: int
    previous_progress: int
    completed_chapters: tuple[int, ...]
    total_chapters: int
    newly_completed: bool


@dataclass(frozen=True, slots=True)
class VideoProgressResult:
    chapter_id: int
    video_progress: float
    chapter_completion: ChapterCompletionResult | None = None

    @property
    def chapter_completed(self) -> bool:
        return self.chapter_completion is not None


@dataclass(frozen=True, slots=True)
class QuizSubmissionResult:
    progress: int
    previous_progress: int
    attempts: int
    chapter_completed: bool


def completion_percent(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return clamp_percent(completed / total * 100)


class ProgressOperations:
    def __init__(self, events: EventSink, *, clock: Clock = utc_now) -> None:
        self._events = events
        self._clock = clock

    async def update_progress(
        self, tx: Transaction, params: ProgressUpdateParams
    ) -> ProgressUpdateResult:
        now = self._clock()
        current = await self._load(tx, params.user_id, params.course_id)
        value = clamp_percent(params.progress)

        await tx.progress.save(
            replace(current, total_progress=value, last_accessed=now)
        )
        await self._mirror_to_enrollment(tx, current, value, now)

        self._publish(
            tx,
            ProgressEvent(
                type=EventType.PROGRESS_UPDATED,
                timestamp=now,
                student_id=params.user_id,
                course_id=params.course_id,
                progress=value,
                previous_progress=current.total_progress,
                metadata={"source": params.source, **params.metadata},
            ),
        )
        return ProgressUpdateResult(
            progress=value, previous_progress=current.total_progress
        )

    async def mark_chapter_complete(
        self, tx: Transaction, params: ChapterCompletionParams
    ) -> ChapterCompletionResult:
        now = self._clock()
        current = await self._load(tx, params.user_id, params.course_id)
        await self._ensure_chapter_in_course(tx, params.chapter_id, params.course_id)

        newly_completed = not current.has_completed(params.chapter_id)
        completed = current.completed_chapters | {params.chapter_id}
        total = await tx.catalog.count_chapters(params.course_id)
        value = completion_percent(len(completed), total)

        await tx.progress.save(
            replace(
                current,
                completed_chapters=completed,
                total_progress=value,
                last_accessed=now,
            )
        )
        await self._mirror_to_enrollment(tx, current, value, now)

        logger.info(
            "Chapter %d complete for user=%d course=%d (%d/%d, %d%%)",
            params.chapter_id,
            params.user_id,
            params.course_id,
            len(completed),
            total,
            value,
        )
        self._publish(
            tx,
            ProgressEvent(
                type=EventType.CHAPTER_COMPLETED,
                timestamp=now,
                student_id=params.user_id,
                course_id=params.course_id,
                progress=value,
                previous_progress=current.total_progress,
                metadata={
                    "chapter_id": params.chapter_id,
                    "completed_chapters": len(completed),
                    "total_chapters": total,
                    "newly_completed": newly_completed,
                },
            ),
        )
        return ChapterCompletionResult(
            progress=value,
            previous_progress=current.total_progress,
            completed_chapters=tuple(sorted(completed)),
            total_chapters=total,
            newly_completed=newly_completed,
        )

    async def update_video_progress(
        self, tx: Transaction, params: VideoProgressParams
    ) -> VideoProgressResult:
        now = self._clock()
        current = await self._load(tx, params.user_id, params.course_id)
        await self._ensure_chapter_in_course(tx, params.chapter_id, params.course_id)

        watched = min(100.0, max(0.0, float(params.video_progress)))
        videos = dict(current.watched_videos)
        videos[params.chapter_id] = VideoProgress(
            chapter_id=params.chapter_id, progress=watched, last_watched=now
        )
        await tx.progress.save(
            replace(current, watched_videos=videos, last_accessed=now)
        )

        completion = None
        if watched >= VIDEO_COMPLETION_THRESHOLD:
            completion = await self.mark_chapter_complete(
                tx,
                ChapterCompletionParams(
                    user_id=params.user_id,
                    course_id=params.course_id,
                    chapter_id=params.chapter_id,
                ),
            )
        return VideoProgressResult(
            chapter_id=params.chapter_id,
            video_progress=watched,
            chapter_completion=completion,
        )

    async def submit_quiz(
        self, tx: Transaction, params: QuizSubmissionParams
    ) -> QuizSubmissionResult:
        """Append a quiz attempt; a passing attempt completes the chapter.

        Attempts are never deduplicated, so replaying a submission records
        a second attempt.
        """
        now = self._clock()
        current = await self._load(tx, params.user_id, params.course_id)
        await self._ensure_chapter_in_course(tx, params.chapter_id, params.course_id)

        attempts = current.quiz_attempts + (
            QuizAttempt(
                quiz_id=params.quiz_id,
                chapter_id=params.chapter_id,
                score=float(params.score),
                passed=params.passed,
                attempted_at=now,
            ),
        )
        completed = current.completed_chapters
        chapter_completed = params.passed and not current.has_completed(
            params.chapter_id
        )
        if params.passed:
            completed = completed | {params.chapter_id}
        total = await tx.catalog.count_chapters(params.course_id)
        value = completion_percent(len(completed), total)

        await tx.progress.save(
            replace(
                current,
                quiz_attempts=attempts,
                completed_chapters=completed,
                total_progress=value,
                last_accessed=now,
            )
        )
        await self._mirror_to_enrollment(tx, current, value, now)

        self._publish(
            tx,
            ProgressEvent(
                type=EventType.QUIZ_SUBMITTED,
                timestamp=now,
                student_id=params.user_id,
                course_id=params.course_id,
                progress=value,
                previous_progress=current.total_progress,
                metadata={
                    "quiz_id": params.quiz_id,
                    "chapter_id": params.chapter_id,
                    "score": float(params.score),
                    "passed": params.passed,
                    "chapter_completed": chapter_completed,
                },
            ),
        )
        return QuizSubmissionResult(
            progress=value,
            previous_progress=current.total_progress,
            attempts=len(attempts),
            chapter_completed=chapter_completed,
        )

    # --- helpers ---

    async def _load(
        self, tx: Transaction, user_id: int, course_id: int
    ) -> StudentProgress:
        current = await tx.progress.get(user_id, course_id, for_update=True)
        if current is None:
            raise EnrollmentNotFoundError(user_id, course_id)
        return current

    async def _ensure_chapter_in_course(
        self, tx: Transaction, chapter_id: int, course_id: int
    ) -> None:
        if await tx.catalog.get_chapter_course_id(chapter_id) != course_id:
            raise ChapterNotInCourseError(chapter_id, course_id)

    async def _mirror_to_enrollment(
        self, tx: Transaction, progress: StudentProgress, value: int, now: int
    ) -> None:
        enrollment = await tx.enrollments.get(
            progress.student_id, progress.course_id, for_update=True
        )
        if enrollment is None:
            await tx.enrollments.add(
                Enrollment.new(
                    user_id=progress.student_id,
                    course_id=progress.course_id,
                    now=now,
                    progress=value,
                )
            )
            logger.warning(
                "Enrollment row missing for user=%d course=%d; recreated",
                progress.student_id,
                progress.course_id,
            )
            return

        if value == 100:
            completed_at = enrollment.completed_at or now
        else:
            completed_at = None
        await tx.enrollments.save(
            replace(
                enrollment, progress=value, completed_at=completed_at, updated_at=now
            )
        )

    def _publish(self, tx: Transaction, event: ProgressEvent) -> None:
        tx.after_commit(lambda: self._events.emit(event))
