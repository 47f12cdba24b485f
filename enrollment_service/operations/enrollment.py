"""Enrollment operations over the dual enrollment tables.

student_progress is authoritative; enrollments is a read replica of the
same facts.  Every function here runs inside a caller-owned
Transaction and leaves both tables agreeing for the (user, course) pair
it touched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from enrollment_service.core.clock import Clock, utc_now
from enrollment_service.events import EnrollmentEvent, EventSink, EventType
from enrollment_service.models.enrollment import Enrollment
from enrollment_service.models.progress import StudentProgress
from enrollment_service.repos.unit_of_work import Transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EnrollmentParams:
    user_id: int
    course_id: int
    admin_id: int | None = None
    source: str = "manual"  # manual|admin|request_approval


@dataclass(frozen=True, slots=True)
class UnenrollmentParams:
    user_id: int
    course_id: int
    admin_id: int | None = None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class DualTableSyncResult:
    student_progress_created: bool = False
    enrollment_created: bool = False
    student_progress_updated: bool = False
    enrollment_updated: bool = False

    @property
    def any_created(self) -> bool:
        return self.student_progress_created or self.enrollment_created


@dataclass(frozen=True, slots=True)
class UnenrollmentResult:
    deleted: bool
    progress_deleted: bool
    enrollment_deleted: bool


@dataclass(frozen=True, slots=True)
class EnrollmentVerification:
    in_progress: bool
    in_enrollments: bool

    @property
    def verified(self) -> bool:
        return self.in_progress and self.in_enrollments


@dataclass(frozen=True, slots=True)
class CourseEnrollmentState:
    course_id: int
    is_enrolled: bool
    verified: bool
    has_pending_request: bool
    progress: int


class EnrollmentOperations:
    def __init__(self, events: EventSink, *, clock: Clock = utc_now) -> None:
        self._events = events
        self._clock = clock

    async def enroll_student(
        self, tx: Transaction, params: EnrollmentParams
    ) -> DualTableSyncResult:
        """Idempotent upsert of both rows; supersedes any pending request."""
        now = self._clock()
        uid, cid = params.user_id, params.course_id

        progress = await tx.progress.get(uid, cid, for_update=True)
        enrollment = await tx.enrollments.get(uid, cid, for_update=True)

        progress_created = False
        if progress is None:
            # An orphaned enrollment row seeds the new progress row
            seed = enrollment.progress if enrollment is not None else 0
            progress = await tx.progress.add(
                StudentProgress.new(
                    student_id=uid, course_id=cid, now=now, total_progress=seed
                )
            )
            progress_created = True

        enrollment_created = False
        enrollment_updated = False
        if enrollment is None:
            await tx.enrollments.add(
                Enrollment.new(
                    user_id=uid,
                    course_id=cid,
                    now=now,
                    progress=progress.total_progress,
                )
            )
            enrollment_created = True
        elif not enrollment.is_active:
            await tx.enrollments.save(
                replace(
                    enrollment,
                    status="active",
                    progress=progress.total_progress,
                    updated_at=now,
                )
            )
            enrollment_updated = True

        superseded = await tx.requests.delete_pending(uid, cid)

        result = DualTableSyncResult(
            student_progress_created=progress_created,
            enrollment_created=enrollment_created,
            student_progress_updated=not progress_created,
            enrollment_updated=enrollment_updated,
        )
        logger.info(
            "Enrolled user=%d course=%d source=%s created=(progress=%s, enrollment=%s)",
            uid,
            cid,
            params.source,
            progress_created,
            enrollment_created,
        )
        self._publish(
            tx,
            EnrollmentEvent(
                type=EventType.ENROLLMENT_CREATED,
                timestamp=now,
                student_id=uid,
                course_id=cid,
                actor_id=params.admin_id,
                source=params.source,
                metadata={
                    "student_progress_created": progress_created,
                    "enrollment_created": enrollment_created,
                    "superseded_requests": superseded,
                },
            ),
        )
        return result

    async def unenroll_student(
        self, tx: Transaction, params: UnenrollmentParams
    ) -> UnenrollmentResult:
        """Hard-delete both rows.  Irreversible."""
        progress_deleted = await tx.progress.delete(params.user_id, params.course_id)
        enrollment_deleted = await tx.enrollments.delete(
            params.user_id, params.course_id
        )

        logger.info(
            "Unenrolled user=%d course=%d (progress=%s, enrollment=%s)",
            params.user_id,
            params.course_id,
            progress_deleted,
            enrollment_deleted,
        )
        self._publish(
            tx,
            EnrollmentEvent(
                type=EventType.ENROLLMENT_REMOVED,
                timestamp=self._clock(),
                student_id=params.user_id,
                course_id=params.course_id,
                actor_id=params.admin_id,
                source="admin",
                metadata={
                    "reason": params.reason,
                    "progress_deleted": progress_deleted,
                    "enrollment_deleted": enrollment_deleted,
                },
            ),
        )
        return UnenrollmentResult(
            deleted=progress_deleted or enrollment_deleted,
            progress_deleted=progress_deleted,
            enrollment_deleted=enrollment_deleted,
        )

    async def verify_enrollment_exists(
        self, tx: Transaction, user_id: int, course_id: int
    ) -> EnrollmentVerification:
        """Read-only post-write assertion that both rows exist."""
        progress = await tx.progress.get(user_id, course_id)
        enrollment = await tx.enrollments.get(user_id, course_id)
        return EnrollmentVerification(
            in_progress=progress is not None,
            in_enrollments=enrollment is not None,
        )

    async def sync_enrollment_state(
        self, tx: Transaction, user_id: int, course_id: int
    ) -> DualTableSyncResult:
        """Repair a pair whose two rows are missing or disagree.

        student_progress wins whenever both rows exist.
        """
        now = self._clock()
        progress = await tx.progress.get(user_id, course_id, for_update=True)
        enrollment = await tx.enrollments.get(user_id, course_id, for_update=True)

        if enrollment is not None and progress is None:
            await tx.progress.add(
                StudentProgress.new(
                    student_id=user_id,
                    course_id=course_id,
                    now=now,
                    total_progress=enrollment.progress,
                )
            )
            logger.warning(
                "Recreated missing student_progress user=%d course=%d",
                user_id,
                course_id,
            )
            return DualTableSyncResult(student_progress_created=True)

        if progress is not None and enrollment is None:
            await tx.enrollments.add(
                Enrollment.new(
                    user_id=user_id,
                    course_id=course_id,
                    now=now,
                    progress=progress.total_progress,
                )
            )
            logger.warning(
                "Recreated missing enrollment user=%d course=%d", user_id, course_id
            )
            return DualTableSyncResult(enrollment_created=True)

        if progress is not None and enrollment is not None:
            if enrollment.progress != progress.total_progress:
                value = progress.total_progress
                await tx.enrollments.save(
                    replace(
                        enrollment,
                        progress=value,
                        completed_at=(enrollment.completed_at or now)
                        if value == 100
                        else None,
                        updated_at=now,
                    )
                )
                logger.warning(
                    "Resynced enrollment progress user=%d course=%d %d -> %d",
                    user_id,
                    course_id,
                    enrollment.progress,
                    value,
                )
                return DualTableSyncResult(enrollment_updated=True)

        return DualTableSyncResult()

    async def get_student_enrollment_state(
        self, tx: Transaction, student_id: int
    ) -> dict[int, CourseEnrollmentState]:
        """Per-course view merging both tables and pending requests."""
        progress_rows = {
            p.course_id: p for p in await tx.progress.list_for_student(student_id)
        }
        enrollment_rows = {
            e.course_id: e for e in await tx.enrollments.list_for_user(student_id)
        }
        pending = {r.course_id for r in await tx.requests.list_pending(student_id)}

        state: dict[int, CourseEnrollmentState] = {}
        for course_id in sorted({*progress_rows, *enrollment_rows, *pending}):
            progress = progress_rows.get(course_id)
            enrollment = enrollment_rows.get(course_id)
            if progress is not None:
                value = progress.total_progress
            elif enrollment is not None:
                value = enrollment.progress
            else:
                value = 0
            state[course_id] = CourseEnrollmentState(
                course_id=course_id,
                is_enrolled=progress is not None or enrollment is not None,
                verified=progress is not None and enrollment is not None,
                has_pending_request=course_id in pending,
                progress=value,
            )
        return state

    def _publish(self, tx: Transaction, event: EnrollmentEvent) -> None:
        tx.after_commit(lambda: self._events.emit(event))
