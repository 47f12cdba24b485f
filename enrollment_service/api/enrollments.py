"""Enrollment endpoints: enroll, unenroll, verify, sync, per-student state."""

from __future__ import annotations

import dataclasses
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from enrollment_service.api.dependencies import get_data_manager
from enrollment_service.api.results import OperationOut, to_response, unwrap
from enrollment_service.services.data_manager import DataManager

router = APIRouter(prefix="/v1", tags=["enrollments"])

Manager = Annotated[DataManager, Depends(get_data_manager)]


class EnrollIn(BaseModel):
    user_id: int
    course_id: int
    admin_id: int | None = None
    source: str = "manual"


class UnenrollIn(BaseModel):
    admin_id: int | None = None
    reason: str | None = None


# ---------------------------------------------------------------------------
# Enrollment writes
# ---------------------------------------------------------------------------


@router.post(
    "/enrollments",
    response_model=OperationOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll(body: EnrollIn, manager: Manager) -> OperationOut:
    result = await manager.enroll_student(
        body.user_id, body.course_id, admin_id=body.admin_id, source=body.source
    )
    return to_response(result)


@router.post(
    "/enrollments/{user_id}/{course_id}/unenroll", response_model=OperationOut
)
async def unenroll(
    user_id: int, course_id: int, body: UnenrollIn, manager: Manager
) -> OperationOut:
    result = await manager.unenroll_student(
        user_id, course_id, admin_id=body.admin_id, reason=body.reason
    )
    return to_response(result)


# ---------------------------------------------------------------------------
# Verification and maintenance
# ---------------------------------------------------------------------------


@router.get("/enrollments/{user_id}/{course_id}/verify")
async def verify(user_id: int, course_id: int, manager: Manager) -> dict:
    verification = unwrap(await manager.verify_enrollment(user_id, course_id))
    return {
        "in_progress": verification.in_progress,
        "in_enrollments": verification.in_enrollments,
        "verified": verification.verified,
    }


@router.post(
    "/enrollments/{user_id}/{course_id}/sync", response_model=OperationOut
)
async def sync(user_id: int, course_id: int, manager: Manager) -> OperationOut:
    return to_response(await manager.sync_enrollment_state(user_id, course_id))


@router.get("/students/{student_id}/enrollments")
async def enrollment_state(student_id: int, manager: Manager) -> list[dict]:
    state = unwrap(await manager.get_student_enrollment_state(student_id))
    return [dataclasses.asdict(course) for course in state.values()]


@router.post("/students/{student_id}/reconcile", response_model=OperationOut)
async def reconcile(student_id: int, manager: Manager) -> OperationOut:
    return to_response(await manager.reconcile_student(student_id))
