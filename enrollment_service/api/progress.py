"""Progress endpoints.

Chapter completion and video progress are safe to replay; a replayed
quiz submission records a second attempt, so offline clients must
deduplicate before posting to /quizzes.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from enrollment_service.api.dependencies import get_data_manager
from enrollment_service.api.results import OperationOut, to_response
from enrollment_service.services.data_manager import DataManager

router = APIRouter(prefix="/v1/progress", tags=["progress"])

Manager = Annotated[DataManager, Depends(get_data_manager)]


class ProgressIn(BaseModel):
    progress: float
    source: str = "manual"
    metadata: dict[str, Any] = Field(default_factory=dict)


class VideoProgressIn(BaseModel):
    video_progress: float


class QuizSubmissionIn(BaseModel):
    chapter_id: int
    quiz_id: int
    score: float
    passed: bool


@router.put("/{user_id}/{course_id}", response_model=OperationOut)
async def update_progress(
    user_id: int, course_id: int, body: ProgressIn, manager: Manager
) -> OperationOut:
    result = await manager.update_progress(
        user_id,
        course_id,
        body.progress,
        source=body.source,
        metadata=body.metadata,
    )
    return to_response(result)


@router.post(
    "/{user_id}/{course_id}/chapters/{chapter_id}/complete",
    response_model=OperationOut,
)
async def complete_chapter(
    user_id: int, course_id: int, chapter_id: int, manager: Manager
) -> OperationOut:
    result = await manager.mark_chapter_complete(user_id, course_id, chapter_id)
    return to_response(result)


@router.put(
    "/{user_id}/{course_id}/chapters/{chapter_id}/video",
    response_model=OperationOut,
)
async def update_video_progress(
    user_id: int,
    course_id: int,
    chapter_id: int,
    body: VideoProgressIn,
    manager: Manager,
) -> OperationOut:
    result = await manager.update_video_progress(
        user_id, course_id, chapter_id, body.video_progress
    )
    return to_response(result)


@router.post("/{user_id}/{course_id}/quizzes", response_model=OperationOut)
async def submit_quiz(
    user_id: int, course_id: int, body: QuizSubmissionIn, manager: Manager
) -> OperationOut:
    result = await manager.submit_quiz(
        user_id,
        course_id,
        body.chapter_id,
        body.quiz_id,
        body.score,
        body.passed,
    )
    return to_response(result)
