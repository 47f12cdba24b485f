"""Access-request lifecycle: pending -> approved | rejected.

A request is a transient record.  Approval enrolls the student through
EnrollmentOperations, verifies both tables, and deletes the request in
one transaction; rejection flips its status and deletes it.  The
emitted events are the only lasting trace of a request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from enrollment_service.core.clock import Clock, utc_now
from enrollment_service.events import EventSink, EventType, RequestEvent
from enrollment_service.models.access_request import AccessRequest
from enrollment_service.operations.enrollment import (
    EnrollmentOperations,
    EnrollmentParams,
)
from enrollment_service.operations.errors import (
    CourseNotFoundError,
    DuplicatePendingRequestError,
    EnrollmentVerificationError,
    RequestNotFoundError,
    RequestNotPendingError,
    StudentNotFoundError,
)
from enrollment_service.repos.unit_of_work import Transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RequestCreationParams:
    student_id: int
    course_id: int
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class RequestActionParams:
    request_id: int
    admin_id: int
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class RequestCreationResult:
    request_id: int
    student_id: int
    course_id: int


@dataclass(frozen=True, slots=True)
class ApprovalResult:
    request_id: int
    student_id: int
    course_id: int
    approved: bool
    enrollment_created: bool


@dataclass(frozen=True, slots=True)
class RejectionResult:
    request_id: int
    rejected: bool


class RequestOperations:
    def __init__(
        self,
        events: EventSink,
        enrollment_ops: EnrollmentOperations,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._events = events
        self.enrollment_ops = enrollment_ops
        self._clock = clock

    async def create_request(
        self, tx: Transaction, params: RequestCreationParams
    ) -> RequestCreationResult:
        now = self._clock()
        student = await tx.catalog.get_user(params.student_id)
        if student is None or not student.is_active or not student.is_student:
            raise StudentNotFoundError(params.student_id)
        if await tx.catalog.get_course(params.course_id) is None:
            raise CourseNotFoundError(params.course_id)
        if await tx.requests.find_pending(params.student_id, params.course_id):
            raise DuplicatePendingRequestError(params.student_id, params.course_id)

        request = await tx.requests.add(
            AccessRequest.new(
                student_id=params.student_id,
                course_id=params.course_id,
                now=now,
                reason=params.reason,
            )
        )
        request_id = request.stored_id

        self._publish(
            tx,
            RequestEvent(
                type=EventType.REQUEST_CREATED,
                timestamp=now,
                student_id=params.student_id,
                course_id=params.course_id,
                actor_id=params.student_id,
                request_id=request_id,
                reason=params.reason,
            ),
        )
        return RequestCreationResult(
            request_id=request_id,
            student_id=params.student_id,
            course_id=params.course_id,
        )

    async def approve_request(
        self, tx: Transaction, params: RequestActionParams
    ) -> ApprovalResult:
        """Approve, enroll, verify, then delete the request.

        A failed verification raises, so the whole transaction (status
        flip included) rolls back and nothing is published.
        """
        now = self._clock()
        request = await self._lock_pair_then_request(tx, params.request_id)

        await tx.requests.save(
            replace(
                request,
                status="approved",
                reviewed_at=now,
                reviewed_by=params.admin_id,
            )
        )

        sync = await self.enrollment_ops.enroll_student(
            tx,
            EnrollmentParams(
                user_id=request.student_id,
                course_id=request.course_id,
                admin_id=params.admin_id,
                source="request_approval",
            ),
        )

        verification = await self.enrollment_ops.verify_enrollment_exists(
            tx, request.student_id, request.course_id
        )
        if not verification.verified:
            raise EnrollmentVerificationError(
                request.student_id,
                request.course_id,
                in_progress=verification.in_progress,
                in_enrollments=verification.in_enrollments,
            )

        await tx.requests.delete(params.request_id)

        logger.info(
            "Approved request %d (student=%d course=%d admin=%d)",
            params.request_id,
            request.student_id,
            request.course_id,
            params.admin_id,
        )
        self._publish(
            tx,
            RequestEvent(
                type=EventType.REQUEST_APPROVED,
                timestamp=now,
                student_id=request.student_id,
                course_id=request.course_id,
                actor_id=params.admin_id,
                request_id=params.request_id,
                reason=params.reason,
                metadata={"enrollment_created": sync.any_created},
            ),
        )
        return ApprovalResult(
            request_id=params.request_id,
            student_id=request.student_id,
            course_id=request.course_id,
            approved=True,
            enrollment_created=sync.any_created,
        )

    async def reject_request(
        self, tx: Transaction, params: RequestActionParams
    ) -> RejectionResult:
        now = self._clock()
        request = await self._load_pending(tx, params.request_id)

        await tx.requests.save(
            replace(
                request,
                status="rejected",
                reviewed_at=now,
                reviewed_by=params.admin_id,
            )
        )
        await tx.requests.delete(params.request_id)

        logger.info(
            "Rejected request %d (student=%d course=%d admin=%d)",
            params.request_id,
            request.student_id,
            request.course_id,
            params.admin_id,
        )
        self._publish(
            tx,
            RequestEvent(
                type=EventType.REQUEST_REJECTED,
                timestamp=now,
                student_id=request.student_id,
                course_id=request.course_id,
                actor_id=params.admin_id,
                request_id=params.request_id,
                reason=params.reason,
            ),
        )
        return RejectionResult(request_id=params.request_id, rejected=True)

    async def cleanup_stale_requests(
        self, tx: Transaction, student_id: int | None = None
    ) -> int:
        """Delete pending requests for pairs that are already enrolled."""
        removed = 0
        for request in await tx.requests.list_pending(student_id):
            progress = await tx.progress.get(request.student_id, request.course_id)
            enrollment = await tx.enrollments.get(
                request.student_id, request.course_id
            )
            if progress is None and enrollment is None:
                continue
            if await tx.requests.delete(request.stored_id):
                removed += 1
                logger.info(
                    "Removed stale request %d (student=%d course=%d)",
                    request.stored_id,
                    request.student_id,
                    request.course_id,
                )
        return removed

    # --- helpers ---

    async def _lock_pair_then_request(
        self, tx: Transaction, request_id: int
    ) -> AccessRequest:
        # Progress, then enrollment, then request: the order enroll_student uses
        peek = await tx.requests.get(request_id)
        if peek is None:
            raise RequestNotFoundError(request_id)
        await tx.progress.get(peek.student_id, peek.course_id, for_update=True)
        await tx.enrollments.get(peek.student_id, peek.course_id, for_update=True)
        return await self._load_pending(tx, request_id)

    async def _load_pending(self, tx: Transaction, request_id: int) -> AccessRequest:
        request = await tx.requests.get(request_id, for_update=True)
        if request is None:
            raise RequestNotFoundError(request_id)
        if not request.is_pending:
            raise RequestNotPendingError(request_id, request.status)
        return request

    def _publish(self, tx: Transaction, event: RequestEvent) -> None:
        tx.after_commit(lambda: self._events.emit(event))
