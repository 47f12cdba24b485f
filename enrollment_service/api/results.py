"""Translate OperationResult into HTTP responses.

    VALIDATION_ERROR             -> 422
    OPERATION_ERROR, retryable   -> 503 (with Retry-After)
    *_NOT_FOUND domain codes     -> 404
    other OPERATION_ERROR        -> 409
"""

from __future__ import annotations

import dataclasses
from typing import Any, TypeVar

from fastapi import HTTPException, status
from pydantic import BaseModel

from enrollment_service.operations.executor import (
    VALIDATION_ERROR,
    OperationFailure,
    OperationResult,
)

T = TypeVar("T")

NOT_FOUND_CODES = frozenset(
    {
        "ENROLLMENT_NOT_FOUND",
        "STUDENT_NOT_FOUND",
        "COURSE_NOT_FOUND",
        "REQUEST_NOT_FOUND",
    }
)


class OperationOut(BaseModel):
    operation_id: str
    timestamp: int
    duration_ms: float
    warnings: list[str] = []
    data: Any = None


def status_for(failure: OperationFailure) -> int:
    if failure.code == VALIDATION_ERROR:
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if failure.retryable:
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if failure.details and failure.details[0] in NOT_FOUND_CODES:
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_409_CONFLICT


def unwrap(result: OperationResult[T]) -> T:
    """Return the data of a successful result, else raise HTTPException."""
    failure = result.error
    if result.success or failure is None:
        return result.data  # type: ignore[return-value]

    headers = None
    if failure.retryable:
        headers = {"Retry-After": "1"}
    raise HTTPException(
        status_code=status_for(failure),
        detail={
            "code": failure.code,
            "message": failure.message,
            "details": list(failure.details),
            "retryable": failure.retryable,
            "max_retries": failure.max_retries,
            "operation_id": result.operation_id,
        },
        headers=headers,
    )


def to_response(result: OperationResult[Any]) -> OperationOut:
    data = unwrap(result)
    if dataclasses.is_dataclass(data):
        data = dataclasses.asdict(data)
    return OperationOut(
        operation_id=result.operation_id,
        timestamp=result.timestamp,
        duration_ms=result.duration_ms,
        warnings=list(result.warnings),
        data=data,
    )
