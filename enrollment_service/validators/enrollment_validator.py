from __future__ import annotations

from enrollment_service.operations.enrollment import (
    EnrollmentParams,
    UnenrollmentParams,
)
from enrollment_service.repos.unit_of_work import Store
from enrollment_service.validators.checks import (
    check_course,
    check_student,
    is_enrolled,
)
from enrollment_service.validators.result import ValidationResult


class EnrollmentValidator:
    def __init__(self, store: Store) -> None:
        self._store = store

    async def validate_enrollment(self, params: EnrollmentParams) -> ValidationResult:
        errors: list[str | None] = []
        warnings: list[str] = []
        async with self._store.transaction() as tx:
            errors.append(await check_student(tx, params.user_id))
            errors.append(await check_course(tx, params.course_id, enrollable=True))

            # enroll_student is an idempotent upsert, so these only warn
            if await is_enrolled(tx, params.user_id, params.course_id):
                warnings.append(
                    f"User {params.user_id} is already enrolled in course "
                    f"{params.course_id}"
                )
            if await tx.requests.find_pending(params.user_id, params.course_id):
                warnings.append(
                    "Pending request exists for this enrollment - will be cleaned up"
                )
        return ValidationResult.from_messages((e for e in errors if e), warnings)

    async def validate_unenrollment(
        self, params: UnenrollmentParams
    ) -> ValidationResult:
        errors: list[str] = []
        async with self._store.transaction() as tx:
            if await tx.catalog.get_user(params.user_id) is None:
                errors.append(f"User {params.user_id} does not exist")
            if await tx.catalog.get_course(params.course_id) is None:
                errors.append(f"Course {params.course_id} does not exist")
            if not await is_enrolled(tx, params.user_id, params.course_id):
                errors.append(
                    f"User {params.user_id} is not enrolled in course "
                    f"{params.course_id}"
                )
        return ValidationResult.from_messages(errors)
