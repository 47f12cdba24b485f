from __future__ import annotations

from typing import Literal

from enrollment_service.operations.requests import (
    RequestActionParams,
    RequestCreationParams,
)
from enrollment_service.repos.unit_of_work import Store
from enrollment_service.validators.checks import (
    check_admin,
    check_course,
    check_student,
    is_enrolled,
)
from enrollment_service.validators.result import ValidationResult

RequestAction = Literal["approve", "reject"]


class RequestValidator:
    def __init__(self, store: Store) -> None:
        self._store = store

    async def validate_request_creation(
        self, params: RequestCreationParams
    ) -> ValidationResult:
        sid, cid = params.student_id, params.course_id
        errors: list[str | None] = []
        async with self._store.transaction() as tx:
            errors.append(await check_student(tx, sid, label="Student"))
            errors.append(await check_course(tx, cid))
            if await is_enrolled(tx, sid, cid):
                errors.append(f"Student {sid} is already enrolled in course {cid}")
            if await tx.requests.find_pending(sid, cid):
                errors.append(
                    f"Student {sid} already has a pending request for course {cid}"
                )
        return ValidationResult.from_messages(e for e in errors if e)

    async def validate_request_action(
        self, params: RequestActionParams, action: RequestAction
    ) -> ValidationResult:
        errors: list[str | None] = []
        warnings: list[str] = []
        async with self._store.transaction() as tx:
            errors.append(await check_admin(tx, params.admin_id))

            request = await tx.requests.get(params.request_id)
            if request is None:
                errors.append(f"Request {params.request_id} does not exist")
            elif not request.is_pending:
                errors.append(
                    f"Request {params.request_id} is not pending "
                    f"(status: {request.status})"
                )
            elif action == "approve" and await is_enrolled(
                tx, request.student_id, request.course_id
            ):
                warnings.append(
                    f"Student {request.student_id} is already enrolled in course "
                    f"{request.course_id}; approval will only clear the request"
                )
        return ValidationResult.from_messages((e for e in errors if e), warnings)

    async def validate_approval(self, params: RequestActionParams) -> ValidationResult:
        return await self.validate_request_action(params, "approve")

    async def validate_rejection(self, params: RequestActionParams) -> ValidationResult:
        return await self.validate_request_action(params, "reject")
