from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from enrollment_service.api.dependencies import get_data_manager
from enrollment_service.api.results import OperationOut, to_response
from enrollment_service.services.data_manager import DataManager

router = APIRouter(prefix="/v1/requests", tags=["requests"])

Manager = Annotated[DataManager, Depends(get_data_manager)]


class RequestIn(BaseModel):
    student_id: int
    course_id: int
    reason: str | None = None


class ReviewIn(BaseModel):
    admin_id: int
    reason: str | None = None


@router.post("", response_model=OperationOut, status_code=status.HTTP_201_CREATED)
async def create_request(body: RequestIn, manager: Manager) -> OperationOut:
    result = await manager.create_request(
        body.student_id, body.course_id, reason=body.reason
    )
    return to_response(result)


@router.post("/{request_id}/approve", response_model=OperationOut)
async def approve_request(
    request_id: int, body: ReviewIn, manager: Manager
) -> OperationOut:
    result = await manager.approve_request(
        request_id, body.admin_id, reason=body.reason
    )
    return to_response(result)


@router.post("/{request_id}/reject", response_model=OperationOut)
async def reject_request(
    request_id: int, body: ReviewIn, manager: Manager
) -> OperationOut:
    result = await manager.reject_request(
        request_id, body.admin_id, reason=body.reason
    )
    return to_response(result)
