from __future__ import annotations

import math

from enrollment_service.operations.progress import (
    ChapterActivityParams,
    ProgressUpdateParams,
    QuizSubmissionParams,
    VideoProgressParams,
)
from enrollment_service.repos.unit_of_work import Store, Transaction
from enrollment_service.validators.checks import check_chapter, check_course
from enrollment_service.validators.result import ValidationResult


def _percent_error(name: str, value: float) -> str | None:
    if not math.isfinite(value) or not 0 <= value <= 100:
        return f"{name} must be between 0 and 100 (got {value})"
    return None


class ProgressValidator:
    """Checks progress-mutating calls against live state.

    All violations are collected rather than stopping at the first, so
    the caller gets one complete VALIDATION_ERROR.
    """

    def __init__(self, store: Store) -> None:
        self._store = store

    async def validate_progress_update(
        self, params: ProgressUpdateParams
    ) -> ValidationResult:
        async with self._store.transaction() as tx:
            errors = await self._common_errors(
                tx, params.user_id, params.course_id, params.chapter_id
            )
        errors.append(_percent_error("Progress", params.progress))
        return ValidationResult.from_messages(e for e in errors if e)

    async def validate_chapter_activity(
        self, params: ChapterActivityParams
    ) -> ValidationResult:
        """Chapter completion, video progress and quiz submission."""
        async with self._store.transaction() as tx:
            errors = await self._common_errors(
                tx, params.user_id, params.course_id, params.chapter_id
            )
        if isinstance(params, VideoProgressParams):
            errors.append(_percent_error("Video progress", params.video_progress))
        elif isinstance(params, QuizSubmissionParams):
            errors.append(_percent_error("Quiz score", params.score))
        return ValidationResult.from_messages(e for e in errors if e)

    async def _common_errors(
        self,
        tx: Transaction,
        user_id: int,
        course_id: int,
        chapter_id: int | None,
    ) -> list[str | None]:
        errors: list[str | None] = []
        if await tx.progress.get(user_id, course_id) is None:
            errors.append(f"User {user_id} is not enrolled in course {course_id}")
        errors.append(await check_course(tx, course_id))
        if chapter_id is not None:
            errors.append(await check_chapter(tx, chapter_id, course_id))
        return errors
