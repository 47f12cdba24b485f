"""DataManager: the one entry point request handlers call.

Each public method builds an OperationDescriptor pairing a validator
with an operation body and hands it to the OperationExecutor.  Results
come back as OperationResult; nothing here raises for business or
storage failures.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from enrollment_service.core.clock import Clock, utc_now
from enrollment_service.events import EventSink
from enrollment_service.operations.enrollment import (
    CourseEnrollmentState,
    DualTableSyncResult,
    EnrollmentOperations,
    EnrollmentParams,
    EnrollmentVerification,
    UnenrollmentParams,
    UnenrollmentResult,
)
from enrollment_service.operations.executor import (
    OperationDescriptor,
    OperationExecutor,
    OperationResult,
)
from enrollment_service.operations.progress import (
    ChapterCompletionParams,
    ChapterCompletionResult,
    ProgressOperations,
    ProgressUpdateParams,
    ProgressUpdateResult,
    QuizSubmissionParams,
    QuizSubmissionResult,
    VideoProgressParams,
    VideoProgressResult,
)
from enrollment_service.operations.requests import (
    ApprovalResult,
    RejectionResult,
    RequestActionParams,
    RequestCreationParams,
    RequestCreationResult,
    RequestOperations,
)
from enrollment_service.repos.unit_of_work import Store, Transaction
from enrollment_service.validators.enrollment_validator import EnrollmentValidator
from enrollment_service.validators.progress_validator import ProgressValidator
from enrollment_service.validators.request_validator import RequestValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PairParams:
    user_id: int
    course_id: int


@dataclass(frozen=True, slots=True)
class StudentParams:
    student_id: int


@dataclass(frozen=True, slots=True)
class ReconciliationReport:
    student_id: int
    courses_checked: int
    progress_rows_created: int
    enrollment_rows_created: int
    enrollments_resynced: int
    stale_requests_removed: int

    @property
    def changed(self) -> bool:
        return bool(
            self.progress_rows_created
            or self.enrollment_rows_created
            or self.enrollments_resynced
            or self.stale_requests_removed
        )


class DataManager:
    def __init__(
        self,
        store: Store,
        events: EventSink,
        *,
        clock: Clock = utc_now,
        default_max_retries: int = 3,
        include_tracebacks: bool = False,
        executor: OperationExecutor | None = None,
    ) -> None:
        self.store = store
        self.executor = executor or OperationExecutor(
            store,
            default_max_retries=default_max_retries,
            include_tracebacks=include_tracebacks,
        )
        self.enrollment = EnrollmentOperations(events, clock=clock)
        self.progress = ProgressOperations(events, clock=clock)
        self.requests = RequestOperations(events, self.enrollment, clock=clock)

        self.enrollment_validator = EnrollmentValidator(store)
        self.progress_validator = ProgressValidator(store)
        self.request_validator = RequestValidator(store)

    # ---- enrollment ----

    async def enroll_student(
        self,
        user_id: int,
        course_id: int,
        *,
        admin_id: int | None = None,
        source: str = "manual",
    ) -> OperationResult[DualTableSyncResult]:
        return await self.executor.execute(
            OperationDescriptor(
                type="enroll_student",
                params=EnrollmentParams(
                    user_id=user_id,
                    course_id=course_id,
                    admin_id=admin_id,
                    source=source,
                ),
                validator=self.enrollment_validator.validate_enrollment,
                executor=self.enrollment.enroll_student,
            )
        )

    async def unenroll_student(
        self,
        user_id: int,
        course_id: int,
        *,
        admin_id: int | None = None,
        reason: str | None = None,
    ) -> OperationResult[UnenrollmentResult]:
        return await self.executor.execute(
            OperationDescriptor(
                type="unenroll_student",
                params=UnenrollmentParams(
                    user_id=user_id,
                    course_id=course_id,
                    admin_id=admin_id,
                    reason=reason,
                ),
                validator=self.enrollment_validator.validate_unenrollment,
                executor=self.enrollment.unenroll_student,
            )
        )

    async def verify_enrollment(
        self, user_id: int, course_id: int
    ) -> OperationResult[EnrollmentVerification]:
        return await self.executor.execute(
            OperationDescriptor(
                type="verify_enrollment",
                params=PairParams(user_id=user_id, course_id=course_id),
                executor=self._verify,
            )
        )

    async def sync_enrollment_state(
        self, user_id: int, course_id: int
    ) -> OperationResult[DualTableSyncResult]:
        return await self.executor.execute(
            OperationDescriptor(
                type="sync_enrollment_state",
                params=PairParams(user_id=user_id, course_id=course_id),
                executor=self._sync,
            )
        )

    async def get_student_enrollment_state(
        self, student_id: int
    ) -> OperationResult[dict[int, CourseEnrollmentState]]:
        return await self.executor.execute(
            OperationDescriptor(
                type="get_enrollment_state",
                params=StudentParams(student_id=student_id),
                executor=self._enrollment_state,
            )
        )

    # ---- progress ----

    async def update_progress(
        self,
        user_id: int,
        course_id: int,
        progress: float,
        *,
        source: str = "manual",
        metadata: Mapping[str, Any] | None = None,
    ) -> OperationResult[ProgressUpdateResult]:
        return await self.executor.execute(
            OperationDescriptor(
                type="update_progress",
                params=ProgressUpdateParams(
                    user_id=user_id,
                    course_id=course_id,
                    progress=progress,
                    source=source,
                    metadata=dict(metadata or {}),
                ),
                validator=self.progress_validator.validate_progress_update,
                executor=self.progress.update_progress,
            )
        )

    async def mark_chapter_complete(
        self, user_id: int, course_id: int, chapter_id: int
    ) -> OperationResult[ChapterCompletionResult]:
        return await self.executor.execute(
            OperationDescriptor(
                type="mark_chapter_complete",
                params=ChapterCompletionParams(
                    user_id=user_id, course_id=course_id, chapter_id=chapter_id
                ),
                validator=self.progress_validator.validate_chapter_activity,
                executor=self.progress.mark_chapter_complete,
            )
        )

    async def update_video_progress(
        self, user_id: int, course_id: int, chapter_id: int, video_progress: float
    ) -> OperationResult[VideoProgressResult]:
        return await self.executor.execute(
            OperationDescriptor(
                type="update_video_progress",
                params=VideoProgressParams(
                    user_id=user_id,
                    course_id=course_id,
                    chapter_id=chapter_id,
                    video_progress=video_progress,
                ),
                validator=self.progress_validator.validate_chapter_activity,
                executor=self.progress.update_video_progress,
            )
        )

    async def submit_quiz(
        self,
        user_id: int,
        course_id: int,
        chapter_id: int,
        quiz_id: int,
        score: float,
        passed: bool,
    ) -> OperationResult[QuizSubmissionResult]:
        # Attempts are appended, so callers must dedupe replays themselves
        return await self.executor.execute(
            OperationDescriptor(
                type="submit_quiz",
                params=QuizSubmissionParams(
                    user_id=user_id,
                    course_id=course_id,
                    chapter_id=chapter_id,
                    quiz_id=quiz_id,
                    score=score,
                    passed=passed,
                ),
                validator=self.progress_validator.validate_chapter_activity,
                executor=self.progress.submit_quiz,
            )
        )

    # ---- access requests ----

    async def create_request(
        self, student_id: int, course_id: int, *, reason: str | None = None
    ) -> OperationResult[RequestCreationResult]:
        return await self.executor.execute(
            OperationDescriptor(
                type="create_request",
                params=RequestCreationParams(
                    student_id=student_id, course_id=course_id, reason=reason
                ),
                validator=self.request_validator.validate_request_creation,
                executor=self.requests.create_request,
            )
        )

    async def approve_request(
        self, request_id: int, admin_id: int, *, reason: str | None = None
    ) -> OperationResult[ApprovalResult]:
        return await self.executor.execute(
            OperationDescriptor(
                type="approve_request",
                params=RequestActionParams(
                    request_id=request_id, admin_id=admin_id, reason=reason
                ),
                validator=self.request_validator.validate_approval,
                executor=self.requests.approve_request,
            )
        )

    async def reject_request(
        self, request_id: int, admin_id: int, *, reason: str | None = None
    ) -> OperationResult[RejectionResult]:
        return await self.executor.execute(
            OperationDescriptor(
                type="reject_request",
                params=RequestActionParams(
                    request_id=request_id, admin_id=admin_id, reason=reason
                ),
                validator=self.request_validator.validate_rejection,
                executor=self.requests.reject_request,
            )
        )

    # ---- maintenance ----

    async def reconcile_student(
        self, student_id: int
    ) -> OperationResult[ReconciliationReport]:
        """Repair every pair the student appears in, then drop stale requests."""
        return await self.executor.execute(
            OperationDescriptor(
                type="reconcile_student",
                params=StudentParams(student_id=student_id),
                executor=self._reconcile,
            )
        )

    async def reconcile_all(self) -> list[OperationResult[ReconciliationReport]]:
        async with self.store.transaction() as tx:
            student_ids = sorted(
                {
                    *await tx.progress.list_student_ids(),
                    *await tx.enrollments.list_user_ids(),
                }
            )
        logger.info("Reconciling %d student(s)", len(student_ids))
        return [await self.reconcile_student(sid) for sid in student_ids]

    # --- descriptor bodies taking dataclass params ---

    async def _verify(
        self, tx: Transaction, params: PairParams
    ) -> EnrollmentVerification:
        return await self.enrollment.verify_enrollment_exists(
            tx, params.user_id, params.course_id
        )

    async def _sync(self, tx: Transaction, params: PairParams) -> DualTableSyncResult:
        return await self.enrollment.sync_enrollment_state(
            tx, params.user_id, params.course_id
        )

    async def _enrollment_state(
        self, tx: Transaction, params: StudentParams
    ) -> dict[int, CourseEnrollmentState]:
        return await self.enrollment.get_student_enrollment_state(
            tx, params.student_id
        )

    async def _reconcile(
        self, tx: Transaction, params: StudentParams
    ) -> ReconciliationReport:
        sid = params.student_id
        course_ids = sorted(
            {p.course_id for p in await tx.progress.list_for_student(sid)}
            | {e.course_id for e in await tx.enrollments.list_for_user(sid)}
        )

        progress_created = enrollment_created = resynced = 0
        for course_id in course_ids:
            sync = await self.enrollment.sync_enrollment_state(tx, sid, course_id)
            progress_created += sync.student_progress_created
            enrollment_created += sync.enrollment_created
            resynced += sync.enrollment_updated

        removed = await self.requests.cleanup_stale_requests(tx, sid)
        return ReconciliationReport(
            student_id=sid,
            courses_checked=len(course_ids),
            progress_rows_created=progress_created,
            enrollment_rows_created=enrollment_created,
            enrollments_resynced=resynced,
            stale_requests_removed=removed,
        )
