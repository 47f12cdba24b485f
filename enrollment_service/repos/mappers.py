"""Row <-> domain model conversion shared by the in-memory and Pg repos.

Both stores hand rows around as column-name mappings (SQLAlchemy
``RowMapping`` or a plain dict), so one set of converters serves both.
This is the only place the codec is applied to student_progress.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from enrollment_service.db import codec
from enrollment_service.models.access_request import AccessRequest
from enrollment_service.models.course import Chapter, Course, CourseModule
from enrollment_service.models.enrollment import Enrollment
from enrollment_service.models.progress import StudentProgress, clamp_percent
from enrollment_service.models.user import User

Columns = Mapping[str, Any]


def user_from_columns(row: Columns) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        name=row.get("name") or "",
        role=row["role"],
        is_active=bool(row["is_active"]),
    )


def course_from_columns(row: Columns) -> Course:
    return Course(
        id=row["id"],
        title=row["title"],
        status=row["status"],
        is_requestable=bool(row.get("is_requestable", True)),
    )


def module_from_columns(row: Columns) -> CourseModule:
    return CourseModule(
        id=row["id"], course_id=row["course_id"], title=row["title"], order=row["order"]
    )


def chapter_from_columns(row: Columns) -> Chapter:
    return Chapter(
        id=row["id"],
        module_id=row["module_id"],
        title=row["title"],
        type=row["type"],
        order=row["order"],
    )


def progress_from_columns(row: Columns) -> StudentProgress:
    return StudentProgress(
        id=row.get("id"),
        student_id=row["student_id"],
        course_id=row["course_id"],
        completed_chapters=codec.decode_completed_chapters(row["completed_chapters"]),
        watched_videos=codec.decode_watched_videos(row["watched_videos"]),
        quiz_attempts=codec.decode_quiz_attempts(row["quiz_attempts"]),
        total_progress=clamp_percent(row["total_progress"] or 0),
        last_accessed=row.get("last_accessed"),
    )


def progress_to_columns(progress: StudentProgress) -> dict[str, Any]:
    return {
        "student_id": progress.student_id,
        "course_id": progress.course_id,
        "completed_chapters": codec.encode_completed_chapters(
            progress.completed_chapters
        ),
        "watched_videos": codec.encode_watched_videos(progress.watched_videos),
        "quiz_attempts": codec.encode_quiz_attempts(progress.quiz_attempts),
        "total_progress": progress.total_progress,
        "last_accessed": progress.last_accessed,
    }


def enrollment_from_columns(row: Columns) -> Enrollment:
    return Enrollment(
        id=row.get("id"),
        user_id=row["user_id"],
        course_id=row["course_id"],
        status=row["status"],
        progress=clamp_percent(row["progress"] or 0),
        enrolled_at=row.get("enrolled_at"),
        completed_at=row.get("completed_at"),
        updated_at=row.get("updated_at"),
    )


def enrollment_to_columns(enrollment: Enrollment) -> dict[str, Any]:
    return {
        "user_id": enrollment.user_id,
        "course_id": enrollment.course_id,
        "status": enrollment.status,
        "progress": enrollment.progress,
        "enrolled_at": enrollment.enrolled_at,
        "completed_at": enrollment.completed_at,
        "updated_at": enrollment.updated_at,
    }


def request_from_columns(row: Columns) -> AccessRequest:
    return AccessRequest(
        id=row["id"],
        student_id=row["student_id"],
        course_id=row["course_id"],
        reason=row.get("reason") or "",
        status=row["status"],
        requested_at=row.get("requested_at"),
        reviewed_at=row.get("reviewed_at"),
        reviewed_by=row.get("reviewed_by"),
    )


def request_to_columns(request: AccessRequest) -> dict[str, Any]:
    return {
        "student_id": request.student_id,
        "course_id": request.course_id,
        "reason": request.reason,
        "status": request.status,
        "requested_at": request.requested_at,
        "reviewed_at": request.reviewed_at,
        "reviewed_by": request.reviewed_by,
    }
